"""
Pre-flight estimate of inference token usage and cost.
"""
import logging
import math
from typing import Optional

from budget_extractor.models import CostEstimate

logger = logging.getLogger(__name__)

FILE_SIZE_THRESHOLD = 1_000_000
CHARS_PER_KB = 40
MAX_ESTIMATED_CHARS = 200_000
DEFAULT_TEXT_LENGTH = 10_000
CHARS_PER_TOKEN = 4
CHARS_PER_CHUNK = 3500
MAX_CHUNKS = 6
OUTPUT_TOKENS_PER_CHUNK = 1500
INPUT_COST_PER_1K = 0.003
OUTPUT_COST_PER_1K = 0.015
HIGH_COST_USD = 1.0
MEDIUM_COST_USD = 0.3


class CostEstimator:
    """Estimate tokens, chunks and price before any inference call is made."""

    def __init__(self, usd_to_local_rate: float = 950.0):
        self.usd_to_local_rate = usd_to_local_rate

    def estimate(self, value: Optional[int]) -> CostEstimate:
        """
        Estimate from either a file size or a text length.

        Values above one million are taken to be file sizes in bytes, since a
        PDF's extractable text is far smaller than the file.

        Args:
            value: File size in bytes or text length in characters

        Returns:
            CostEstimate
        """
        if value and value > FILE_SIZE_THRESHOLD:
            return self.estimate_from_file_size(value)
        return self.estimate_from_text_length(value)

    def estimate_from_file_size(self, file_size: int) -> CostEstimate:
        """Convert bytes to an expected text length (~40 chars per KB) and estimate."""
        size_mb = file_size / (1024 * 1024)
        text_length = int(min(size_mb * 1024 * CHARS_PER_KB, MAX_ESTIMATED_CHARS))
        logger.debug(f"Estimating {size_mb:.1f}MB file as ~{text_length} chars of text")
        return self._estimate(text_length, was_file_size=True)

    def estimate_from_text_length(self, text_length: Optional[int]) -> CostEstimate:
        return self._estimate(text_length or DEFAULT_TEXT_LENGTH, was_file_size=False)

    def _estimate(self, text_length: int, was_file_size: bool) -> CostEstimate:
        input_tokens = math.ceil(text_length / CHARS_PER_TOKEN)
        chunks = min(math.ceil(text_length / CHARS_PER_CHUNK), MAX_CHUNKS)
        output_tokens = OUTPUT_TOKENS_PER_CHUNK * chunks
        cost_usd = (input_tokens * INPUT_COST_PER_1K + output_tokens * OUTPUT_COST_PER_1K) / 1000

        if cost_usd > HIGH_COST_USD:
            warning = 'high'
        elif cost_usd > MEDIUM_COST_USD:
            warning = 'medium'
        else:
            warning = 'low'

        estimate = CostEstimate(
            text_length_estimated=text_length,
            was_file_size=was_file_size,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            chunks_to_process=chunks,
            estimated_cost_usd=round(cost_usd, 6),
            estimated_cost_local=round(cost_usd * self.usd_to_local_rate, 2),
            cost_warning=warning,
        )
        logger.info(
            f"Cost estimate: ${estimate.estimated_cost_usd:.3f} USD "
            f"({chunks} chunk(s), ~{text_length} chars, {warning})"
        )
        return estimate

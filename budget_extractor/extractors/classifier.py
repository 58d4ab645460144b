"""
Document classification by local text yield.
"""
import logging
from typing import Optional

from budget_extractor.errors import ClassificationError
from budget_extractor.models import DocumentClassification, PdfType, Statistics
from budget_extractor.utils.helpers import combine_pages_text, get_statistics, normalize_text
from .pdf_text_extractor import PDFTextExtractor

logger = logging.getLogger(__name__)


class DocumentClassifier:
    """Classify a PDF as native text, hybrid or scanned."""

    def __init__(
        self,
        text_extractor: Optional[PDFTextExtractor] = None,
        native_min_chars: int = 500,
        hybrid_min_chars: int = 50
    ):
        """
        Initialize the classifier.

        Args:
            text_extractor: Local text extractor (pdfplumber based by default)
            native_min_chars: More characters than this means native text
            hybrid_min_chars: At least this many characters means hybrid
        """
        self.text_extractor = text_extractor or PDFTextExtractor()
        self.native_min_chars = native_min_chars
        self.hybrid_min_chars = hybrid_min_chars

    def pdf_type_for_length(self, text_length: int) -> PdfType:
        if text_length > self.native_min_chars:
            return PdfType.NATIVE_TEXT
        if text_length >= self.hybrid_min_chars:
            return PdfType.HYBRID
        return PdfType.SCANNED

    def classify(self, buffer: bytes, filename: str = '') -> DocumentClassification:
        """
        Extract local text and classify the document by its length.

        Text extraction problems never propagate: the document is treated as
        scanned and the reason is kept on the result.

        Args:
            buffer: Raw PDF bytes
            filename: Original file name, for logging

        Returns:
            DocumentClassification
        """
        try:
            pages_data = self.text_extractor.extract_text(buffer)
        except ClassificationError as e:
            logger.warning(f"Local text extraction unavailable for {filename or 'document'}: {e}")
            return DocumentClassification(
                pdf_type=PdfType.SCANNED,
                text_length=0,
                extraction_error=str(e),
            )

        text = normalize_text(combine_pages_text(pages_data)).strip()
        pdf_type = self.pdf_type_for_length(len(text))
        logger.info(
            f"Classified {filename or 'document'} as {pdf_type.value} "
            f"({len(text)} chars over {len(pages_data)} page(s))"
        )
        return DocumentClassification(
            pdf_type=pdf_type,
            text_length=len(text),
            extracted_text=text,
            page_count=len(pages_data),
            statistics=Statistics(**get_statistics(pages_data)),
        )

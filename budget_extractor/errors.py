"""
Exception hierarchy for the budget extraction pipeline.

Every error carries a caller-facing ``error_code`` and a list of actionable
``suggestions`` so request handlers can report failures without inspecting
messages themselves.
"""
from typing import Any, Dict, List, Optional


class BudgetExtractionError(Exception):
    """Base class for all pipeline errors."""

    error_code = 'PDF_PROCESSING_ERROR'

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.suggestions = list(suggestions or [])
        self.details = dict(details or {})


class ClassificationError(BudgetExtractionError):
    """Local text extraction unavailable. Non-fatal: the document is treated as scanned."""

    error_code = 'TEXT_EXTRACTION_UNAVAILABLE'


class RasterizationError(BudgetExtractionError):
    """Page conversion tool missing or conversion failed."""

    error_code = 'PDF_CONVERSION_ERROR'


class InferenceCategory:
    """Categories used to classify failures of the inference service."""

    AUTHENTICATION = 'authentication'
    RATE_LIMIT = 'rate_limit'
    OVERLOADED = 'overloaded'
    TRANSPORT = 'transport'
    PAYLOAD_TOO_LARGE = 'payload_too_large'
    UNKNOWN = 'unknown'

    RETRYABLE = frozenset({RATE_LIMIT, OVERLOADED, TRANSPORT})


INFERENCE_ERROR_CODES = {
    InferenceCategory.AUTHENTICATION: 'AI_SERVICE_UNAVAILABLE',
    InferenceCategory.RATE_LIMIT: 'RATE_LIMIT_EXCEEDED',
    InferenceCategory.OVERLOADED: 'AI_SERVICE_OVERLOADED',
    InferenceCategory.TRANSPORT: 'AI_TRANSPORT_ERROR',
    InferenceCategory.PAYLOAD_TOO_LARGE: 'PAYLOAD_TOO_LARGE',
    InferenceCategory.UNKNOWN: 'AI_SERVICE_ERROR',
}

INFERENCE_SUGGESTIONS = {
    InferenceCategory.AUTHENTICATION: [
        'Check that ANTHROPIC_API_KEY / OPENAI_API_KEY is set and valid',
    ],
    InferenceCategory.RATE_LIMIT: [
        'Analysis limit reached, try again in a few minutes',
    ],
    InferenceCategory.OVERLOADED: [
        'The inference service is overloaded, try again later',
    ],
    InferenceCategory.TRANSPORT: [
        'Check network connectivity to the inference service',
    ],
    InferenceCategory.PAYLOAD_TOO_LARGE: [
        'For very large PDFs (>30MB), consider splitting the document',
    ],
}


class InferenceError(BudgetExtractionError):
    """Transport, auth or rate-limit failure reported by the inference service."""

    def __init__(
        self,
        message: str,
        category: str = InferenceCategory.UNKNOWN,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message,
            error_code=INFERENCE_ERROR_CODES.get(category, 'AI_SERVICE_ERROR'),
            suggestions=INFERENCE_SUGGESTIONS.get(category),
            details=details
        )
        self.category = category

    @property
    def retryable(self) -> bool:
        return self.category in InferenceCategory.RETRYABLE

    @property
    def fatal(self) -> bool:
        """Authentication failures cannot succeed on any later unit."""
        return self.category == InferenceCategory.AUTHENTICATION


class ParseError(BudgetExtractionError):
    """Malformed structured response. Always recovered by the fallback extractor."""

    error_code = 'MALFORMED_RESPONSE'


class ValidationError(BudgetExtractionError):
    """Document rejected by pre-flight checks before the pipeline starts."""

    error_code = 'INVALID_FILE'


class PipelineError(BudgetExtractionError):
    """Pipeline-level failure: no strategy produced usable data."""

    error_code = 'PDF_PROCESSING_ERROR'

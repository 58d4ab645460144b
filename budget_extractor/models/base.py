"""
Base models shared across the pipeline stages.
"""
import base64
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class PdfType(str, Enum):
    """Document type decided from the amount of locally extractable text."""

    NATIVE_TEXT = 'native_text'
    HYBRID = 'hybrid'
    SCANNED = 'scanned'


class ExtractionMethod(str, Enum):
    """Strategy that produced the consolidated data."""

    DIRECT_DOCUMENT = 'direct_document'
    PAGINATED_VISION = 'paginated_vision'
    CHUNKED_TEXT = 'chunked_text'


class PipelineStage(str, Enum):
    """States of the document processing state machine."""

    RECEIVED = 'received'
    CLASSIFIED = 'classified'
    DIRECT_ANALYSIS = 'direct_analysis'
    PAGED_ANALYSIS = 'paged_analysis'
    TEXT_ANALYSIS = 'text_analysis'
    CONSOLIDATING = 'consolidating'
    COMPOSED = 'composed'
    DONE = 'done'
    FAILED = 'failed'


class Statistics(BaseModel):
    """Document statistics from local text extraction."""

    total_pages: int = Field(..., ge=0, description="Total number of pages")
    total_characters: int = Field(..., ge=0, description="Total characters extracted")
    total_words: int = Field(..., ge=0, description="Total words extracted")
    avg_chars_per_page: float = Field(..., ge=0, description="Average characters per page")
    avg_words_per_page: float = Field(..., ge=0, description="Average words per page")


class DocumentClassification(BaseModel):
    """Result of inspecting a document's local text yield."""

    pdf_type: PdfType
    text_length: int = Field(..., ge=0)
    extracted_text: str = Field(default='', repr=False)
    page_count: Optional[int] = Field(None, ge=0)
    statistics: Optional[Statistics] = None
    extraction_error: Optional[str] = Field(
        None,
        description="Why local text extraction was unavailable, if it was"
    )


class PageImage(BaseModel):
    """One rasterized page ready to be sent to the inference service."""

    page_number: int = Field(..., ge=1)
    media_type: str = 'image/png'
    data: bytes = Field(..., repr=False)
    width: Optional[int] = None
    height: Optional[int] = None

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode('ascii')


class FileValidationResult(BaseModel):
    """Outcome of the pre-flight file checks."""

    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    file_size: int = Field(..., ge=0)
    file_size_mb: float = Field(..., ge=0)


class PreValidationResult(BaseModel):
    """Heuristic budget-likeness of extracted text."""

    is_analyzable: bool
    confidence: int = Field(..., ge=0, le=100)
    recommendation: str
    indicators: int = Field(..., ge=0, description="Distinct keyword categories found")
    prices: int = Field(..., ge=0, description="Price-like tokens found")
    has_table_structure: bool = False


class CostEstimate(BaseModel):
    """Pre-flight estimate of inference usage and price."""

    text_length_estimated: int = Field(..., ge=0)
    was_file_size: bool = False
    input_tokens: int = Field(..., ge=0)
    output_tokens: int = Field(..., ge=0)
    total_tokens: int = Field(..., ge=0)
    chunks_to_process: int = Field(..., ge=0)
    estimated_cost_usd: float = Field(..., ge=0)
    estimated_cost_local: float = Field(..., ge=0)
    cost_warning: str = Field(..., pattern='^(low|medium|high)$')


class ExtractionResult(BaseModel):
    """Summary of how a document's content was extracted. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(default='', description="Locally extracted text, if any")
    extraction_method: ExtractionMethod
    confidence: int = Field(..., ge=0, le=100)
    success: bool
    pdf_type: PdfType
    processing_time: float = Field(..., ge=0, description="Seconds spent extracting")
    metadata: Dict[str, Any] = Field(default_factory=dict)

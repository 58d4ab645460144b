"""
Pre-flight checks on uploaded budget documents.
"""
from pathlib import Path

from budget_extractor.config import MB
from budget_extractor.errors import ValidationError
from budget_extractor.models import FileValidationResult

PDF_MAGIC = b'%PDF-'


def validate_pdf_document(
    buffer: bytes,
    filename: str,
    max_bytes: int = 30 * MB,
    warn_bytes: int = 10 * MB
) -> FileValidationResult:
    """
    Check that a buffer looks like a PDF the pipeline can take.

    Args:
        buffer: Raw file bytes
        filename: Original file name, used for the extension check
        max_bytes: Hard size limit
        warn_bytes: Size above which a warning is added

    Returns:
        FileValidationResult with errors and warnings
    """
    errors = []
    warnings = []
    size = len(buffer or b'')

    if not size:
        errors.append('No PDF file received or the file is empty')
    else:
        if Path(filename or '').suffix.lower() != '.pdf':
            errors.append(f"Only PDF files are allowed: {filename!r}")
        if not buffer.lstrip()[:len(PDF_MAGIC)] == PDF_MAGIC:
            errors.append('File does not start with a PDF header')
        if size > max_bytes:
            errors.append(f"File too large: {size / MB:.1f}MB, maximum {max_bytes / MB:.0f}MB")
        elif size > warn_bytes:
            warnings.append(f"Large file ({size / MB:.1f}MB): analysis may take several minutes")

    return FileValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        file_size=size,
        file_size_mb=round(size / MB, 2),
    )


def ensure_valid_pdf(buffer: bytes, filename: str, max_bytes: int, warn_bytes: int) -> FileValidationResult:
    """Run ``validate_pdf_document`` and raise ``ValidationError`` on failure."""
    result = validate_pdf_document(buffer, filename, max_bytes=max_bytes, warn_bytes=warn_bytes)
    if not result.is_valid:
        raise ValidationError(
            '; '.join(result.errors),
            suggestions=[
                'Verify the file is a valid, non-corrupted PDF',
                f"For very large PDFs (>{max_bytes / MB:.0f}MB), consider splitting the document",
            ],
            details={'filename': filename, 'file_size': result.file_size},
        )
    return result

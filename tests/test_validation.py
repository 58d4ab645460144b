"""
Tests for the pre-flight file checks.
"""
import pytest

from budget_extractor.config import MB
from budget_extractor.errors import ValidationError
from budget_extractor.utils.validation import ensure_valid_pdf, validate_pdf_document


class TestValidatePdfDocument:
    def test_valid_pdf(self, pdf_bytes):
        result = validate_pdf_document(pdf_bytes, 'presupuesto.PDF')
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []
        assert result.file_size == len(pdf_bytes)

    @pytest.mark.parametrize('buffer', [b'', None])
    def test_empty_file(self, buffer):
        result = validate_pdf_document(buffer, 'budget.pdf')
        assert not result.is_valid
        assert result.errors == ['No PDF file received or the file is empty']

    def test_wrong_extension(self, pdf_bytes):
        result = validate_pdf_document(pdf_bytes, 'budget.docx')
        assert not result.is_valid
        assert 'Only PDF files are allowed' in result.errors[0]

    def test_missing_header(self):
        result = validate_pdf_document(b'PK\x03\x04 not a pdf', 'budget.pdf')
        assert result.errors == ['File does not start with a PDF header']

    def test_size_limits(self, pdf_bytes):
        big = pdf_bytes + b'0' * (2 * MB)
        assert 'File too large' in validate_pdf_document(big, 'big.pdf', max_bytes=MB, warn_bytes=MB // 2).errors[0]

        result = validate_pdf_document(big, 'big.pdf', max_bytes=4 * MB, warn_bytes=MB)
        assert result.is_valid
        assert result.warnings[0].startswith('Large file (2.0MB)')


class TestEnsureValidPdf:
    def test_raises_with_suggestions(self):
        with pytest.raises(ValidationError) as exc_info:
            ensure_valid_pdf(b'hello', 'notes.txt', max_bytes=30 * MB, warn_bytes=10 * MB)
        error = exc_info.value
        assert error.error_code == 'INVALID_FILE'
        assert error.suggestions
        assert error.details['filename'] == 'notes.txt'

    def test_returns_result(self, pdf_bytes):
        result = ensure_valid_pdf(pdf_bytes, 'budget.pdf', max_bytes=30 * MB, warn_bytes=10 * MB)
        assert result.is_valid

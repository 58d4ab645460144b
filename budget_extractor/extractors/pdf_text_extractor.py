"""
PDF text extraction using pdfplumber.
"""
import io
import logging
from typing import List, Dict, Any

from budget_extractor.errors import ClassificationError

logger = logging.getLogger(__name__)


class PDFTextExtractor:
    """Extract per-page text from in-memory PDF documents using pdfplumber."""

    def __init__(self, extract_tables: bool = False):
        """
        Initialize the PDF extractor.

        Args:
            extract_tables: If True, also extract tables from pages with tab or
                pipe separated layouts (slow on large documents)
        """
        self.extract_tables = extract_tables
        try:
            import pdfplumber
            self._pdfplumber = pdfplumber
        except ImportError:
            self._pdfplumber = None

    @property
    def available(self) -> bool:
        return self._pdfplumber is not None

    def extract_text(self, buffer: bytes) -> List[Dict[str, Any]]:
        """
        Extract text from a PDF held in memory.

        Args:
            buffer: Raw PDF bytes

        Returns:
            List of page dictionaries with 'page_num' and 'text' keys

        Raises:
            ClassificationError: pdfplumber is missing or the file cannot be read
        """
        if not self.available:
            raise ClassificationError('pdfplumber is not installed, local text extraction unavailable')

        pages_data = []
        try:
            with self._pdfplumber.open(io.BytesIO(buffer)) as pdf:
                for page_num, page in enumerate(pdf.pages, start=1):
                    text = page.extract_text() or ''
                    pages_data.append({
                        'page_num': page_num,
                        'text': text,
                        'width': page.width,
                        'height': page.height,
                        'tables': self._extract_tables(page, text),
                    })
        except Exception as e:
            # pdfplumber raises several unrelated types for encrypted or broken files
            raise ClassificationError(
                f"Could not read PDF text: {e}",
                suggestions=[
                    'Verify the file is not password protected',
                    'Verify the file is not corrupted',
                ],
            ) from e

        logger.debug(f"Extracted text from {len(pages_data)} page(s)")
        return pages_data

    def _extract_tables(self, page, text: str) -> List[Any]:
        """Extract tables only when the page text shows clear table indicators."""
        if not self.extract_tables or not text:
            return []
        if '\t' not in text and text.count('|') <= 15:
            return []
        try:
            return page.extract_tables(table_settings={
                "vertical_strategy": "lines_strict",
                "horizontal_strategy": "lines_strict",
                "snap_tolerance": 5,
                "join_tolerance": 5,
                "edge_tolerance": 5,
            }) or []
        except Exception as e:
            logger.debug(f"Table extraction failed on page {page.page_number}: {e}")
            return []

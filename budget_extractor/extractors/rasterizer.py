"""
Page rasterization through poppler's pdftoppm, driven by pdf2image.
"""
import io
import logging
import shutil
import tempfile
from pathlib import Path
from typing import List

from pdf2image import convert_from_path
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
)
from PIL import Image

from budget_extractor.errors import RasterizationError
from budget_extractor.models import PageImage

logger = logging.getLogger(__name__)

POPPLER_HINT = (
    'Install poppler-utils: apt-get install poppler-utils (Linux) '
    'or brew install poppler (macOS)'
)


class PageRasterizer:
    """Convert PDF pages into ordered PNG images."""

    REQUIRED_TOOL = 'pdftoppm'

    def __init__(
        self,
        dpi: int = 200,
        max_pages: int = 40,
        max_dimension: int = 1600,
        timeout: int = 120
    ):
        """
        Initialize the rasterizer.

        Args:
            dpi: Rendering resolution
            max_pages: Pages after this one are not converted
            max_dimension: Longest image side in pixels, larger images are downscaled
            timeout: Seconds allowed for the conversion subprocess
        """
        self.dpi = dpi
        self.max_pages = max_pages
        self.max_dimension = max_dimension
        self.timeout = timeout

    def ensure_tool(self) -> None:
        """Raise RasterizationError when pdftoppm is not on PATH."""
        if shutil.which(self.REQUIRED_TOOL) is None:
            raise RasterizationError(
                f"{self.REQUIRED_TOOL} not found: poppler-utils is required to convert PDF pages",
                suggestions=[POPPLER_HINT],
                details={'tool': self.REQUIRED_TOOL},
            )

    def rasterize(self, buffer: bytes) -> List[PageImage]:
        """
        Render the first ``max_pages`` pages of a PDF.

        The PDF and the rendered pages live in a temporary directory that is
        removed before this method returns, whether it succeeds or not.

        Args:
            buffer: Raw PDF bytes

        Returns:
            Page images in page order

        Raises:
            RasterizationError: Tool missing, conversion failed or no page produced
        """
        self.ensure_tool()

        with tempfile.TemporaryDirectory(prefix='budget_pages_') as tmp_dir:
            pdf_path = Path(tmp_dir) / 'document.pdf'
            pdf_path.write_bytes(buffer)
            try:
                paths = convert_from_path(
                    str(pdf_path),
                    dpi=self.dpi,
                    first_page=1,
                    last_page=self.max_pages,
                    output_folder=tmp_dir,
                    output_file='page',
                    fmt='png',
                    paths_only=True,
                    timeout=self.timeout,
                )
            except PDFInfoNotInstalledError as e:
                raise RasterizationError(
                    f"poppler is not installed: {e}",
                    suggestions=[POPPLER_HINT],
                ) from e
            except (PDFPageCountError, PDFSyntaxError) as e:
                raise RasterizationError(
                    f"Could not convert PDF pages: {e}",
                    suggestions=[
                        'Verify the file is not corrupted',
                        'Verify the file is not password protected',
                    ],
                ) from e
            except PDFPopplerTimeoutError as e:
                raise RasterizationError(f"Page conversion timed out after {self.timeout}s") from e

            try:
                pages = [
                    self._load_page(path, page_number)
                    for page_number, path in enumerate(sorted(paths), start=1)
                ]
            except (OSError, Image.DecompressionBombError) as e:
                raise RasterizationError(
                    f"Could not read rendered page image: {e}",
                    suggestions=['Verify the file is not corrupted'],
                ) from e

        if not pages:
            raise RasterizationError(
                'Page conversion produced no images',
                suggestions=['If the PDF is scanned, make sure the scan is legible'],
            )

        logger.info(f"Rasterized {len(pages)} page(s) at {self.dpi} DPI")
        return pages

    def _load_page(self, path: str, page_number: int) -> PageImage:
        """Read one rendered page, downscaling it when it exceeds max_dimension."""
        with Image.open(path) as image:
            if max(image.size) > self.max_dimension:
                image.thumbnail((self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS)
            output = io.BytesIO()
            image.save(output, format='PNG', optimize=True)
            width, height = image.size

        return PageImage(
            page_number=page_number,
            media_type='image/png',
            data=output.getvalue(),
            width=width,
            height=height,
        )

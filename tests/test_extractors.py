"""
Tests for text extraction, classification and page rasterization.
"""
import os
from unittest.mock import Mock, patch

import pytest
from PIL import Image
from pdf2image.exceptions import PDFPageCountError

from budget_extractor.errors import ClassificationError, RasterizationError
from budget_extractor.extractors import DocumentClassifier, PageRasterizer, PDFTextExtractor
from budget_extractor.models import PdfType


class TestDocumentClassifier:
    @pytest.mark.parametrize('length,expected', [
        (501, PdfType.NATIVE_TEXT),
        (500, PdfType.HYBRID),
        (50, PdfType.HYBRID),
        (49, PdfType.SCANNED),
        (0, PdfType.SCANNED),
    ])
    def test_thresholds(self, text_extractor, length, expected):
        classifier = DocumentClassifier(text_extractor=text_extractor('x' * length))
        result = classifier.classify(b'%PDF-1.4', 'budget.pdf')
        assert result.pdf_type == expected
        assert result.text_length == length

    def test_statistics_and_text(self, text_extractor):
        classifier = DocumentClassifier(text_extractor=text_extractor('Cemento 10 sacos', 'Arena 2 m3'))
        result = classifier.classify(b'%PDF-1.4')
        assert result.page_count == 2
        assert result.statistics.total_pages == 2
        assert result.extracted_text == 'Cemento 10 sacos\n\nArena 2 m3'
        assert result.extraction_error is None

    def test_unavailable_extraction_degrades_to_scanned(self):
        extractor = Mock()
        extractor.extract_text.side_effect = ClassificationError('file is encrypted')
        result = DocumentClassifier(text_extractor=extractor).classify(b'%PDF-1.4', 'locked.pdf')
        assert result.pdf_type == PdfType.SCANNED
        assert result.text_length == 0
        assert result.extraction_error == 'file is encrypted'


class TestPDFTextExtractor:
    def test_missing_library_raises_classification_error(self):
        extractor = PDFTextExtractor()
        extractor._pdfplumber = None
        with pytest.raises(ClassificationError):
            extractor.extract_text(b'%PDF-1.4')

    def test_unreadable_file_raises_classification_error(self):
        extractor = PDFTextExtractor()
        extractor._pdfplumber = Mock()
        extractor._pdfplumber.open.side_effect = RuntimeError('broken xref')
        with pytest.raises(ClassificationError) as exc_info:
            extractor.extract_text(b'not a pdf')
        assert 'password' in ' '.join(exc_info.value.suggestions)

    def test_pages_are_read_in_order(self):
        pages = []
        for number, text in enumerate(['first', None], start=1):
            page = Mock(width=612, height=792, page_number=number)
            page.extract_text.return_value = text
            pages.append(page)
        pdf = Mock(pages=pages)
        pdf.__enter__ = Mock(return_value=pdf)
        pdf.__exit__ = Mock(return_value=False)

        extractor = PDFTextExtractor()
        extractor._pdfplumber = Mock()
        extractor._pdfplumber.open.return_value = pdf

        result = extractor.extract_text(b'%PDF-1.4')
        assert [(p['page_num'], p['text']) for p in result] == [(1, 'first'), (2, '')]


def fake_convert(sizes):
    """Build a convert_from_path replacement writing real PNGs to the output folder."""
    calls = {}

    def convert(pdf_path, dpi, first_page, last_page, output_folder, output_file, fmt, paths_only, timeout):
        calls.update(pdf_path=pdf_path, dpi=dpi, last_page=last_page, output_folder=output_folder)
        assert os.path.exists(pdf_path)
        paths = []
        for i, size in enumerate(sizes, start=1):
            path = os.path.join(output_folder, f"{output_file}-{i:02d}.png")
            Image.new('RGB', size, 'white').save(path)
            paths.append(path)
        return paths

    return convert, calls


class TestPageRasterizer:
    def test_missing_tool_names_poppler(self):
        with patch('budget_extractor.extractors.rasterizer.shutil.which', return_value=None):
            with pytest.raises(RasterizationError) as exc_info:
                PageRasterizer().rasterize(b'%PDF-1.4')
        assert 'poppler-utils' in exc_info.value.message
        assert exc_info.value.error_code == 'PDF_CONVERSION_ERROR'

    def test_pages_are_loaded_and_temp_files_removed(self):
        convert, calls = fake_convert([(800, 1000), (3000, 2000)])
        with patch('budget_extractor.extractors.rasterizer.shutil.which', return_value='/usr/bin/pdftoppm'), \
                patch('budget_extractor.extractors.rasterizer.convert_from_path', side_effect=convert):
            pages = PageRasterizer(dpi=150, max_pages=8, max_dimension=1600).rasterize(b'%PDF-1.4')

        assert [p.page_number for p in pages] == [1, 2]
        assert (pages[0].width, pages[0].height) == (800, 1000)
        assert max(pages[1].width, pages[1].height) == 1600
        assert pages[0].media_type == 'image/png'
        assert pages[0].data.startswith(b'\x89PNG')
        assert calls['dpi'] == 150
        assert calls['last_page'] == 8
        assert not os.path.exists(calls['output_folder'])

    def test_conversion_error_is_wrapped_and_temp_files_removed(self):
        seen = {}

        def convert(pdf_path, **kwargs):
            seen['folder'] = kwargs['output_folder']
            raise PDFPageCountError('Unable to get page count')

        with patch('budget_extractor.extractors.rasterizer.shutil.which', return_value='/usr/bin/pdftoppm'), \
                patch('budget_extractor.extractors.rasterizer.convert_from_path', side_effect=convert):
            with pytest.raises(RasterizationError):
                PageRasterizer().rasterize(b'%PDF-1.4')
        assert not os.path.exists(seen['folder'])

    def test_no_images_is_an_error(self):
        with patch('budget_extractor.extractors.rasterizer.shutil.which', return_value='/usr/bin/pdftoppm'), \
                patch('budget_extractor.extractors.rasterizer.convert_from_path', return_value=[]):
            with pytest.raises(RasterizationError):
                PageRasterizer().rasterize(b'%PDF-1.4')

    def test_unreadable_page_image_is_a_conversion_error(self):
        seen = {}

        def convert(pdf_path, **kwargs):
            seen['folder'] = kwargs['output_folder']
            path = os.path.join(kwargs['output_folder'], 'page-1.png')
            with open(path, 'wb') as f:
                f.write(b'not an image')
            return [path]

        with patch('budget_extractor.extractors.rasterizer.shutil.which', return_value='/usr/bin/pdftoppm'), \
                patch('budget_extractor.extractors.rasterizer.convert_from_path', side_effect=convert):
            with pytest.raises(RasterizationError) as exc_info:
                PageRasterizer().rasterize(b'%PDF-1.4')
        assert exc_info.value.error_code == 'PDF_CONVERSION_ERROR'
        assert not os.path.exists(seen['folder'])

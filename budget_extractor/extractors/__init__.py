"""
Local document inspection: text extraction, classification and rasterization.
"""
from .pdf_text_extractor import PDFTextExtractor
from .classifier import DocumentClassifier
from .rasterizer import PageRasterizer

__all__ = ['PDFTextExtractor', 'DocumentClassifier', 'PageRasterizer']

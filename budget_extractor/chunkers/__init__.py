"""
Text chunking for inference-sized units.
"""
from .section_chunker import SectionChunker, SECTION_KEYWORDS

__all__ = ['SectionChunker', 'SECTION_KEYWORDS']

"""
Section-aware chunking of long budget text.

Text is first split on recognised section header lines (materials, labor,
equipment, ...). Sections longer than the chunk size are then cut with a
sliding window that overlaps by ``overlap`` characters and prefers to end
on a line break. Dropping the first ``overlap`` characters of every
sub-chunk but the first and concatenating gives the section back unchanged.
"""
import logging
import re
from typing import List, Optional, Tuple

from budget_extractor.models import Chunk, ChunkMetadata
from budget_extractor.utils.helpers import normalize_text

logger = logging.getLogger(__name__)

SECTION_KEYWORDS = {
    'materials': ['materiales', 'material', 'insumos', 'suministros', 'materials', 'supplies'],
    'labor': ['mano de obra', 'personal', 'trabajadores', 'labor', 'labour', 'workforce'],
    'equipment': ['equipos', 'equipo', 'maquinaria', 'herramientas', 'equipment', 'machinery', 'tools'],
    'subcontracts': ['subcontratos', 'subcontrato', 'servicios externos', 'subcontracts', 'subcontractors'],
    'overhead': ['gastos generales', 'gastos administrativos', 'administrativos', 'overhead', 'general expenses'],
    'summary': ['presupuesto total', 'resumen', 'total general', 'summary', 'grand total'],
}

MAX_HEADER_LENGTH = 80

_NUMBERING = r'(?:(?:\d+(?:\.\d+)*|[IVXLC]+|[A-Za-z])[.)\-:]?\s+)?'
_PRICE_IN_LINE = re.compile(r'\$\s?\d|\d{1,3}(?:[.,]\d{3})+|\d{4,}')
_BUDGET_CONTENT = re.compile(r'[\d$]')


def _header_pattern(keywords: List[str]) -> re.Pattern:
    alternatives = '|'.join(re.escape(k).replace(r'\ ', r'\s+') for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf'^\s*{_NUMBERING}(?:{alternatives})\b', re.IGNORECASE)


SECTION_PATTERNS = {section: _header_pattern(words) for section, words in SECTION_KEYWORDS.items()}


class SectionChunker:
    """Split budget text into bounded, overlapping, section-aware chunks."""

    def __init__(self, chunk_size: int = 15000, overlap: int = 200, boundary_tolerance: int = 200):
        """
        Initialize the chunker.

        Args:
            chunk_size: Maximum characters per chunk
            overlap: Characters shared between consecutive sub-chunks of a section
            boundary_tolerance: How far before the cut point to look for a line break
        """
        if chunk_size <= 0:
            raise ValueError('chunk_size must be positive')
        if not 0 <= overlap < chunk_size:
            raise ValueError('overlap must be non-negative and smaller than chunk_size')
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.boundary_tolerance = boundary_tolerance

    def section_type(self, line: str) -> Optional[str]:
        """Return the section type when ``line`` is a section header, else None."""
        stripped = line.strip()
        if not stripped or len(stripped) > MAX_HEADER_LENGTH:
            return None
        for section, pattern in SECTION_PATTERNS.items():
            if not pattern.match(stripped):
                continue
            # A priced line is an item row, except under the summary heading
            if section != 'summary' and _PRICE_IN_LINE.search(stripped):
                return None
            return section
        return None

    def split_sections(self, text: str) -> List[Tuple[str, str, str]]:
        """
        Segment text into (section_type, header_line, content) tuples.

        Content runs from the header line (inclusive) up to the next header.
        Text before the first header is ignored, unless there is no header at
        all, in which case the whole text is a single 'general' section.
        """
        lines = text.splitlines(keepends=True)
        starts = []
        offset = 0
        for line in lines:
            section = self.section_type(line)
            if section:
                starts.append((offset, section, line.strip()))
            offset += len(line)

        if not starts:
            return [('general', 'general', text)] if text.strip() else []

        sections = []
        for i, (start, section, header) in enumerate(starts):
            end = starts[i + 1][0] if i + 1 < len(starts) else len(text)
            sections.append((section, header, text[start:end]))
        return sections

    def split_section(self, content: str) -> List[Tuple[int, str]]:
        """
        Cut one section into (start_offset, chunk_text) windows.

        Each window ends at most ``chunk_size`` characters after it starts; the
        next one starts ``overlap`` characters before that end.
        """
        if len(content) <= self.chunk_size:
            return [(0, content)]

        tolerance = min(self.boundary_tolerance, self.chunk_size - self.overlap - 1)
        windows = []
        start = 0
        while True:
            end = start + self.chunk_size
            if end >= len(content):
                windows.append((start, content[start:]))
                break
            if tolerance > 0:
                newline = content.rfind('\n', end - tolerance, end)
                # Cut after the newline, keeping the window longer than the overlap
                if newline != -1 and newline + 1 > start + self.overlap:
                    end = newline + 1
            windows.append((start, content[start:end]))
            start = end - self.overlap
        return windows

    def chunk(self, text: str) -> List[Chunk]:
        """
        Produce ordered chunks for ``text``.

        Chunks without any digit or currency sign are dropped.

        Args:
            text: Extracted document text

        Returns:
            List of Chunk
        """
        text = normalize_text(text)
        chunks = []
        dropped = 0
        for section, header, content in self.split_sections(text):
            windows = self.split_section(content)
            total = len(windows)
            for sub_index, (start, window) in enumerate(windows, start=1):
                if not _BUDGET_CONTENT.search(window):
                    dropped += 1
                    continue
                chunks.append(Chunk(
                    type=section,
                    content=window,
                    metadata=ChunkMetadata(
                        section=header,
                        sub_index=sub_index if total > 1 else None,
                        sub_total=total if total > 1 else None,
                        start_char=start,
                    ),
                ))

        logger.info(f"Chunked {len(text)} chars into {len(chunks)} chunk(s), {dropped} without budget content dropped")
        return chunks

    @staticmethod
    def reassemble(chunks: List[Chunk], overlap: int) -> str:
        """Join consecutive sub-chunks of one section, removing the overlap."""
        if not chunks:
            return ''
        parts = [chunks[0].content]
        parts.extend(chunk.content[overlap:] for chunk in chunks[1:])
        return ''.join(parts)

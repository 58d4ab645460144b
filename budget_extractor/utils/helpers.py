"""
Utility functions and helpers for budget extraction.
"""
import re
from typing import List, Dict, Any, Optional

_NUMBER_RE = re.compile(r'[-+]?\d[\d.,]*')
_THOUSANDS_DOT_RE = re.compile(r'[-+]?\d{1,3}(?:\.\d{3})+')
_THOUSANDS_COMMA_RE = re.compile(r'[-+]?\d{1,3}(?:,\d{3})+')


def combine_pages_text(pages_data: List[Dict[str, Any]]) -> str:
    """
    Combine text from multiple pages.

    Args:
        pages_data: List of page dictionaries with 'text' key

    Returns:
        Combined text from all pages
    """
    texts = [page.get('text', '') for page in pages_data]
    return '\n\n'.join(texts)


def get_statistics(pages_data: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Calculate statistics for extracted pages.

    Args:
        pages_data: List of page dictionaries

    Returns:
        Dictionary with statistics
    """
    total_chars = sum(len(page.get('text', '')) for page in pages_data)
    total_words = sum(len(page.get('text', '').split()) for page in pages_data)

    return {
        'total_pages': len(pages_data),
        'total_characters': total_chars,
        'total_words': total_words,
        'avg_chars_per_page': total_chars / len(pages_data) if pages_data else 0,
        'avg_words_per_page': total_words / len(pages_data) if pages_data else 0,
    }


def parse_amount(value: Any) -> Optional[float]:
    """
    Parse a numeric value that may be formatted as a local currency string.

    Handles "$5.000", "1.234.567", "1.234,50", "1,234.50", "2.5" and plain
    numbers. A dot followed by groups of three digits is read as a thousands
    separator, as in Chilean budgets.

    Args:
        value: Number or string from a parsed response

    Returns:
        Float value, or None when nothing numeric can be read
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None

    match = _NUMBER_RE.search(value.replace(' ', ''))
    if not match:
        return None
    number = match.group(0).rstrip('.,')

    if '.' in number and ',' in number:
        # Whichever separator comes last is the decimal one
        if number.rfind(',') > number.rfind('.'):
            number = number.replace('.', '').replace(',', '.')
        else:
            number = number.replace(',', '')
    elif ',' in number:
        if _THOUSANDS_COMMA_RE.fullmatch(number):
            number = number.replace(',', '')
        else:
            number = number.replace(',', '.')
    elif '.' in number and _THOUSANDS_DOT_RE.fullmatch(number):
        number = number.replace('.', '')

    try:
        return float(number)
    except ValueError:
        return None


def normalize_text(text: str) -> str:
    """
    Normalize extracted text before chunking.

    Unifies line endings, drops NUL and form-feed characters and collapses
    runs of blank lines.
    """
    if not text:
        return ''
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = text.replace('\x00', '').replace('\x0c', '\n')
    return re.sub(r'\n{3,}', '\n\n', text)


def snippet(text: Optional[str], limit: int = 200) -> Optional[str]:
    """Return the first ``limit`` characters of text."""
    if text is None:
        return None
    return text[:limit]

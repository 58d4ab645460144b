"""
Utility functions and helpers for budget extraction.
"""
from .helpers import (
    combine_pages_text,
    get_statistics,
    parse_amount,
    normalize_text,
    snippet,
)

__all__ = [
    'combine_pages_text',
    'get_statistics',
    'parse_amount',
    'normalize_text',
    'snippet',
]

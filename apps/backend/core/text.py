"""
Text cleaning and URL validation helpers shared by every scraping strategy.
"""
import re
from typing import Optional
from urllib.parse import urlparse

from core.errors import ErrorCode, ScraperError

_WHITESPACE_RUN = re.compile(r'[ \t\r\f\v]+')
_BLANK_LINES = re.compile(r'\n\s*\n(\s*\n)+')
_LINE_EDGES = re.compile(r' *\n *')


def clean_text(text: Optional[str]) -> str:
    """
    Normalize extracted page text.

    Collapses runs of spaces and tabs to one space, strips spaces around
    line breaks and squeezes three or more consecutive line breaks down to
    a single blank line. Returns '' for None/empty input.
    """
    if not text:
        return ''

    text = text.replace('\xa0', ' ')
    text = _WHITESPACE_RUN.sub(' ', text)
    text = _LINE_EDGES.sub('\n', text)
    text = _BLANK_LINES.sub('\n\n', text)
    return text.strip()


def truncate(text: str, max_chars: int) -> str:
    """Cut text to at most max_chars characters."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def is_valid_url(url: Optional[str]) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def validate_url(url: Optional[str]) -> str:
    """
    Validate and normalize a URL.

    Returns:
        The trimmed URL

    Raises:
        ScraperError: with code INVALID_URL
    """
    if not url or not isinstance(url, str):
        raise ScraperError('URL is required and must be a string', ErrorCode.INVALID_URL)

    trimmed = url.strip()
    if not is_valid_url(trimmed):
        raise ScraperError(f'Invalid URL format: {trimmed}', ErrorCode.INVALID_URL)
    return trimmed

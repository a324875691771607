"""
Main-content text extraction from HTML.

Static fetch and both browser strategies hand their final DOM to
extract_main_text so that every strategy applies the same selector policy.
"""
import logging
from typing import Optional, Tuple

from bs4 import BeautifulSoup

from core.text import clean_text

logger = logging.getLogger(__name__)

# Tried in order; the first region with enough text wins
CONTENT_SELECTORS = [
    'article',
    'main',
    '[role="main"]',
    '.job-description',
    '.job-content',
    '.posting-description',
    '#job-description',
    '[class*="job-description"]',
    '[class*="jobDescription"]',
    '[data-testid*="job-description"]',
]

# A content region must carry at least this much text to beat the full body
MIN_REGION_CHARS = 200

NOISE_TAGS = ['script', 'style', 'noscript', 'template', 'svg', 'iframe']
CHROME_TAGS = ['nav', 'header', 'footer']


def _text_of(element) -> str:
    return clean_text(element.get_text(separator='\n'))


def extract_title(soup: BeautifulSoup) -> Optional[str]:
    if soup.title and soup.title.string:
        title = clean_text(soup.title.string)
        if title:
            return title

    og_title = soup.find('meta', attrs={'property': 'og:title'})
    if og_title and og_title.get('content'):
        return clean_text(og_title['content']) or None

    h1 = soup.find('h1')
    if h1:
        return _text_of(h1) or None
    return None


def extract_main_text(html: str, min_region_chars: int = MIN_REGION_CHARS) -> Tuple[Optional[str], str]:
    """
    Extract (title, cleaned text) from an HTML document.

    Content-bearing selectors are tried in priority order; if none yields
    min_region_chars of text the whole body is used, minus page chrome.
    """
    if not html:
        return None, ''

    soup = BeautifulSoup(html, 'lxml')
    title = extract_title(soup)

    for tag in soup(NOISE_TAGS):
        tag.decompose()

    for selector in CONTENT_SELECTORS:
        try:
            elements = soup.select(selector)
        except Exception as e:
            logger.debug(f"[content] Selector failed: {selector} - {e}")
            continue
        for element in elements:
            text = _text_of(element)
            if len(text) >= min_region_chars:
                logger.debug(f"[content] Using selector {selector} ({len(text)} chars)")
                return title, text

    body = soup.body or soup
    for tag in body.find_all(CHROME_TAGS):
        tag.decompose()
    return title, _text_of(body)

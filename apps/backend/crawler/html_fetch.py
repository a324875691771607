"""
Static fetch strategy: one HTTP GET and DOM text extraction, no JavaScript.
"""
import logging
from typing import Optional

import httpx

from core.errors import ErrorCode, ScraperError, error_for_status, timeout_error
from core.net import HTTPClient
from crawler.content import extract_main_text
from crawler.models import ScrapeMethod, ScrapeOptions, StrategyOutcome
from crawler.strategy import ScrapeStrategy

logger = logging.getLogger(__name__)


class StaticFetchStrategy(ScrapeStrategy):
    """Fastest and cheapest strategy; fails on pages rendered client-side."""

    name = "static"
    method = ScrapeMethod.STATIC

    def __init__(self, http_client: Optional[HTTPClient] = None):
        self.http_client = http_client or HTTPClient()

    async def _scrape(self, url: str, options: ScrapeOptions) -> StrategyOutcome:
        try:
            status, headers, html, size = await self.http_client.fetch(
                url,
                timeout=options.timeout_ms / 1000,
                user_agent=options.user_agent,
            )
        except httpx.TimeoutException:
            raise timeout_error(url, options.timeout_ms)
        except httpx.HTTPError as e:
            raise ScraperError(f"Network error for URL {url}: {e}", ErrorCode.NETWORK_ERROR)

        if status >= 400:
            raise error_for_status(status, url)

        content_type = headers.get('content-type', '')
        if content_type and 'html' not in content_type and 'xml' not in content_type and 'text' not in content_type:
            raise ScraperError(f"Unsupported content type '{content_type}' for URL: {url}", ErrorCode.PARSING_ERROR)

        title, content = extract_main_text(html)
        if not content:
            raise ScraperError(f"No text content found at {url}", ErrorCode.PARSING_ERROR)

        logger.info(f"[static_fetch] Extracted {len(content)} chars from {url}")
        return StrategyOutcome(success=True, content=content, title=title)

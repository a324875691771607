"""
Headless-browser strategies using Playwright for JavaScript-rendered pages.

Browser A (Chromium) is the fast path after static fetch fails. Browser B
(Firefox) is the final fallback: a different engine, a longer settle
period, and images/fonts/stylesheets blocked.
"""
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Route
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from core.errors import ErrorCode, ScraperError, error_for_status, timeout_error
from crawler.browser_manager import BrowserManager
from crawler.content import extract_main_text
from crawler.models import ScrapeMethod, ScrapeOptions, StrategyOutcome
from crawler.strategy import ScrapeStrategy

logger = logging.getLogger(__name__)

BLOCKED_RESOURCE_TYPES = {'image', 'stylesheet', 'font', 'media'}


async def block_subresources(route: Route) -> None:
    """Abort non-document sub-resources, let everything else through."""
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class BrowserStrategy(ScrapeStrategy):
    """Navigate in a shared browser, let the page settle, extract text."""

    engine = 'chromium'
    default_settle_ms = 2000
    default_block_resources = False

    def __init__(
        self,
        manager: Optional[BrowserManager] = None,
        settle_ms: Optional[int] = None,
        user_agent: Optional[str] = None,
    ):
        self.manager = manager or BrowserManager(self.engine, user_agent=user_agent)
        self.settle_ms = settle_ms if settle_ms is not None else self.default_settle_ms

    async def _scrape(self, url: str, options: ScrapeOptions) -> StrategyOutcome:
        timeout_ms = options.timeout_ms
        settle_ms = options.settle_ms if options.settle_ms is not None else self.settle_ms
        block = options.block_resources if options.block_resources is not None else self.default_block_resources

        async with self.manager.page() as page:
            if block:
                await page.route('**/*', block_subresources)
            if options.user_agent:
                await page.set_extra_http_headers({'User-Agent': options.user_agent})

            page.set_default_timeout(timeout_ms)
            page.set_default_navigation_timeout(timeout_ms)

            try:
                response = await page.goto(url, wait_until='domcontentloaded', timeout=timeout_ms)
            except PlaywrightTimeoutError:
                raise timeout_error(url, timeout_ms)
            except PlaywrightError as e:
                raise ScraperError(f"Navigation failed for URL {url}: {e}", ErrorCode.NETWORK_ERROR)

            if response is not None and response.status >= 400:
                raise error_for_status(response.status, url)

            if options.wait_for_selector:
                try:
                    await page.wait_for_selector(options.wait_for_selector, timeout=settle_ms)
                except PlaywrightTimeoutError:
                    logger.debug(f"[{self.name}] Selector {options.wait_for_selector} not found, continuing")
            else:
                await page.wait_for_timeout(settle_ms)

            try:
                html = await page.content()
                page_title = await page.title()
            except PlaywrightError as e:
                raise ScraperError(f"Could not read rendered page {url}: {e}", ErrorCode.PARSING_ERROR)

        title, content = extract_main_text(html)
        logger.info(f"[{self.name}] Extracted {len(content)} chars from {url}")
        return StrategyOutcome(success=True, content=content, title=page_title or title)

    def deadline_seconds(self, options: ScrapeOptions) -> float:
        settle_ms = options.settle_ms if options.settle_ms is not None else self.settle_ms
        return super().deadline_seconds(options) + settle_ms / 1000

    async def close(self) -> None:
        await self.manager.close()


class FastBrowserStrategy(BrowserStrategy):
    name = "browser_a"
    method = ScrapeMethod.BROWSER_A
    engine = 'chromium'
    default_settle_ms = 2000
    default_block_resources = False


class ResilientBrowserStrategy(BrowserStrategy):
    name = "browser_b"
    method = ScrapeMethod.BROWSER_B
    engine = 'firefox'
    default_settle_ms = 5000
    default_block_resources = True

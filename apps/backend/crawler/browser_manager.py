"""
Shared headless-browser lifecycle.

Starting a browser dominates the cost of a browser scrape, so each engine
keeps one browser and one context alive for the life of the process.
Every scrape gets its own page, which is always closed afterwards; the
browser and context are only closed by close().
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from app.config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

CHROMIUM_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-accelerated-2d-canvas',
    '--disable-gpu',
]

VIEWPORT = {'width': 1920, 'height': 1080}


class BrowserManager:
    """Lazily launched, lock-guarded browser + context for one engine."""

    def __init__(
        self,
        engine: str = 'chromium',
        user_agent: Optional[str] = None,
        headless: bool = True,
        playwright_factory: Callable = async_playwright,
    ):
        if engine not in ('chromium', 'firefox', 'webkit'):
            raise ValueError(f"Unsupported browser engine: {engine}")
        self.engine = engine
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.headless = headless
        self._playwright_factory = playwright_factory
        self._lock = asyncio.Lock()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.launch_count = 0

    @property
    def is_running(self) -> bool:
        return self._context is not None

    def _is_healthy(self) -> bool:
        if self._browser is None or self._context is None:
            return False
        try:
            return self._browser.is_connected()
        except Exception:
            return False

    async def get_context(self) -> BrowserContext:
        """Return the shared context, launching the browser on first use."""
        async with self._lock:
            if self._is_healthy():
                return self._context

            if self._browser is not None:
                logger.warning(f"[browser] {self.engine} browser disconnected, relaunching")
                await self._shutdown()

            if self._playwright is None:
                self._playwright = await self._playwright_factory().start()

            browser_type = getattr(self._playwright, self.engine)
            launch_kwargs = {'headless': self.headless}
            if self.engine == 'chromium':
                launch_kwargs['args'] = CHROMIUM_ARGS

            self._browser = await browser_type.launch(**launch_kwargs)
            self._context = await self._browser.new_context(
                viewport=VIEWPORT,
                user_agent=self.user_agent,
            )
            self.launch_count += 1
            logger.info(f"[browser] Launched {self.engine} (launch #{self.launch_count})")
            return self._context

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Open a fresh page in the shared context and close it on exit."""
        context = await self.get_context()
        page = await context.new_page()
        try:
            yield page
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.warning(f"[browser] Failed to close {self.engine} page: {e}")

    async def _shutdown(self) -> None:
        context, browser, playwright = self._context, self._browser, self._playwright
        self._context = None
        self._browser = None
        self._playwright = None

        if context is not None:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"[browser] Error closing {self.engine} context: {e}")
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning(f"[browser] Error closing {self.engine} browser: {e}")
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning(f"[browser] Error stopping playwright ({self.engine}): {e}")

    async def close(self) -> None:
        """Close context then browser. Safe to call repeatedly; never raises."""
        async with self._lock:
            if self._context is None and self._browser is None and self._playwright is None:
                return
            await self._shutdown()
            logger.info(f"[browser] Closed {self.engine}")

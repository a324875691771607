"""
Unit tests for the shared browser lifecycle, using in-memory Playwright fakes.
"""

import asyncio

import pytest

from crawler.browser_manager import BrowserManager


class FakePage:
    def __init__(self, fail_close=False):
        self.closed = False
        self.fail_close = fail_close

    async def close(self):
        if self.fail_close:
            raise RuntimeError("target closed")
        self.closed = True


class FakeContext:
    def __init__(self, fail_close=False):
        self.pages = []
        self.closed = False
        self.fail_close = fail_close
        self.fail_page_close = False

    async def new_page(self):
        page = FakePage(fail_close=self.fail_page_close)
        self.pages.append(page)
        return page

    async def close(self):
        if self.fail_close:
            raise RuntimeError("context already closed")
        self.closed = True


class FakeBrowser:
    def __init__(self):
        self.connected = True
        self.closed = False
        self.contexts = []
        self.context_kwargs = None

    def is_connected(self):
        return self.connected

    async def new_context(self, **kwargs):
        self.context_kwargs = kwargs
        context = FakeContext()
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class FakeBrowserType:
    def __init__(self):
        self.browsers = []
        self.launch_kwargs = None

    async def launch(self, **kwargs):
        # Yield so concurrent callers can interleave with the launch
        await asyncio.sleep(0.01)
        self.launch_kwargs = kwargs
        browser = FakeBrowser()
        self.browsers.append(browser)
        return browser


class FakePlaywright:
    def __init__(self):
        self.chromium = FakeBrowserType()
        self.firefox = FakeBrowserType()
        self.webkit = FakeBrowserType()
        self.stopped = False

    async def stop(self):
        self.stopped = True


class FakePlaywrightFactory:
    """Stands in for async_playwright: factory() -> object with async start()."""

    def __init__(self):
        self.playwright = FakePlaywright()
        self.starts = 0

    def __call__(self):
        return self

    async def start(self):
        self.starts += 1
        return self.playwright


@pytest.fixture
def factory():
    return FakePlaywrightFactory()


@pytest.fixture
def manager(factory):
    return BrowserManager('chromium', user_agent="TestAgent/1.0", playwright_factory=factory)


class TestLazyInit:

    @pytest.mark.asyncio
    async def test_nothing_launched_until_used(self, manager, factory):
        assert manager.is_running is False
        assert factory.starts == 0

    @pytest.mark.asyncio
    async def test_concurrent_first_use_launches_once(self, manager, factory):
        contexts = await asyncio.gather(*(manager.get_context() for _ in range(10)))

        assert manager.launch_count == 1
        assert factory.starts == 1
        assert len(factory.playwright.chromium.browsers) == 1
        assert all(c is contexts[0] for c in contexts)

    @pytest.mark.asyncio
    async def test_context_is_reused(self, manager):
        first = await manager.get_context()
        second = await manager.get_context()
        assert first is second
        assert manager.launch_count == 1

    @pytest.mark.asyncio
    async def test_context_options(self, manager, factory):
        await manager.get_context()
        browser = factory.playwright.chromium.browsers[0]
        assert browser.context_kwargs["user_agent"] == "TestAgent/1.0"
        assert factory.playwright.chromium.launch_kwargs["headless"] is True
        assert "--no-sandbox" in factory.playwright.chromium.launch_kwargs["args"]

    @pytest.mark.asyncio
    async def test_firefox_engine(self, factory):
        manager = BrowserManager('firefox', playwright_factory=factory)
        await manager.get_context()
        assert len(factory.playwright.firefox.browsers) == 1
        assert factory.playwright.chromium.browsers == []
        assert "args" not in factory.playwright.firefox.launch_kwargs

    def test_unknown_engine(self, factory):
        with pytest.raises(ValueError):
            BrowserManager('netscape', playwright_factory=factory)

    @pytest.mark.asyncio
    async def test_relaunch_after_disconnect(self, manager, factory):
        await manager.get_context()
        old_browser = factory.playwright.chromium.browsers[0]
        old_browser.connected = False

        await manager.get_context()

        assert manager.launch_count == 2
        assert old_browser.closed


class TestPages:

    @pytest.mark.asyncio
    async def test_each_call_gets_its_own_page(self, manager):
        async with manager.page() as first:
            async with manager.page() as second:
                assert first is not second

    @pytest.mark.asyncio
    async def test_page_closed_on_success(self, manager):
        async with manager.page() as page:
            pass
        assert page.closed

    @pytest.mark.asyncio
    async def test_page_closed_on_failure(self, manager):
        with pytest.raises(RuntimeError, match="navigation exploded"):
            async with manager.page() as page:
                raise RuntimeError("navigation exploded")
        assert page.closed
        assert manager.is_running

    @pytest.mark.asyncio
    async def test_page_closed_on_cancellation(self, manager):
        opened = asyncio.Event()
        pages = []

        async def work():
            async with manager.page() as page:
                pages.append(page)
                opened.set()
                await asyncio.sleep(10)

        task = asyncio.create_task(work())
        await opened.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert pages[0].closed

    @pytest.mark.asyncio
    async def test_page_close_error_does_not_mask_primary_error(self, manager):
        context = await manager.get_context()
        context.fail_page_close = True

        with pytest.raises(ValueError, match="primary"):
            async with manager.page():
                raise ValueError("primary")


class TestShutdown:

    @pytest.mark.asyncio
    async def test_close_tears_down_everything(self, manager, factory):
        context = await manager.get_context()
        browser = factory.playwright.chromium.browsers[0]

        await manager.close()

        assert context.closed
        assert browser.closed
        assert factory.playwright.stopped
        assert manager.is_running is False

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, manager):
        await manager.get_context()
        await manager.close()
        await manager.close()

    @pytest.mark.asyncio
    async def test_close_before_use(self, manager):
        await manager.close()

    @pytest.mark.asyncio
    async def test_close_errors_are_swallowed(self, manager, factory):
        context = await manager.get_context()
        context.fail_close = True
        browser = factory.playwright.chromium.browsers[0]

        await manager.close()

        assert browser.closed
        assert factory.playwright.stopped

    @pytest.mark.asyncio
    async def test_reusable_after_close(self, manager):
        await manager.get_context()
        await manager.close()
        await manager.get_context()
        assert manager.launch_count == 2

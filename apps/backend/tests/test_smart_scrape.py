"""
Unit tests for the smart-scrape gateway decision table.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from crawler.models import ScrapeAttempt, ScrapeMethod, ScrapeOptions, ScrapeResult
from crawler.orchestrator import FallbackOrchestrator
from crawler.smart_scrape import (
    METHOD_AUTO,
    METHOD_FAILED,
    METHOD_MANUAL,
    MIN_MANUAL_CONTENT_CHARS,
    SmartScrapeGateway,
    usable_manual_content,
)

PASTED = "Research Assistant, Biology Lab. Apply by May 1, 2026. Undergraduates welcome to apply."
SCRAPED = "Software Engineer Intern at Acme. " * 5

SUCCESS = ScrapeResult(
    success=True,
    content=SCRAPED,
    title="Acme Careers",
    method_used=ScrapeMethod.STATIC,
    fallback_chain=(ScrapeAttempt("static", True, None, 120),),
)
FAILURE = ScrapeResult(
    success=False,
    fallback_chain=(
        ScrapeAttempt("static", False, "ACCESS_DENIED: Access denied", 80),
        ScrapeAttempt("browser_a", False, "TIMEOUT: Request timed out", 30000),
        ScrapeAttempt("browser_b", False, "TIMEOUT: Request timed out", 30000),
    ),
    error="All scraping methods failed: TIMEOUT: Request timed out",
)


def make_orchestrator(result=SUCCESS):
    orchestrator = MagicMock(spec=FallbackOrchestrator)
    orchestrator.default_options.return_value = ScrapeOptions(timeout_ms=30000)
    orchestrator.scrape = AsyncMock(return_value=result)
    orchestrator.close = AsyncMock()
    return orchestrator


class TestRestrictedSites:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", [
        "https://www.linkedin.com/jobs/view/3812345",
        "https://www.facebook.com/groups/jobs/permalink/1",
        "https://x.com/acme/status/1",
        "https://twitter.com/acme/status/1",
    ])
    @pytest.mark.parametrize("manual", [None, "", "short", PASTED])
    async def test_orchestrator_is_never_invoked(self, url, manual):
        orchestrator = make_orchestrator()
        gateway = SmartScrapeGateway(orchestrator)

        await gateway.smart_scrape(url, manual_content=manual)

        orchestrator.scrape.assert_not_called()

    @pytest.mark.asyncio
    async def test_with_pasted_content(self):
        gateway = SmartScrapeGateway(make_orchestrator())

        result = await gateway.smart_scrape("https://www.linkedin.com/jobs/view/1", manual_content=PASTED)

        assert result.success
        assert result.method == METHOD_MANUAL
        assert result.content == PASTED
        assert result.is_restricted
        assert result.requires_manual is False

    @pytest.mark.asyncio
    async def test_without_pasted_content(self):
        gateway = SmartScrapeGateway(make_orchestrator())

        result = await gateway.smart_scrape("https://www.linkedin.com/jobs/view/1")

        assert result.success is False
        assert result.method == METHOD_FAILED
        assert result.requires_manual is True
        assert "LinkedIn" in result.restricted_site_message
        assert result.content is None


class TestOpenSites:

    @pytest.mark.asyncio
    async def test_automation_succeeds(self):
        orchestrator = make_orchestrator(SUCCESS)
        gateway = SmartScrapeGateway(orchestrator)

        result = await gateway.smart_scrape("https://example.com/job")

        assert result.success
        assert result.method == METHOD_AUTO
        assert result.content == SCRAPED
        assert result.title == "Acme Careers"
        assert result.scrape_result is SUCCESS

    @pytest.mark.asyncio
    async def test_pasted_content_is_not_a_shortcut(self):
        orchestrator = make_orchestrator(SUCCESS)
        gateway = SmartScrapeGateway(orchestrator)

        result = await gateway.smart_scrape("https://example.com/job", manual_content=PASTED)

        orchestrator.scrape.assert_awaited_once()
        assert result.method == METHOD_AUTO
        assert result.content == SCRAPED

    @pytest.mark.asyncio
    async def test_falls_back_to_pasted_content(self):
        orchestrator = make_orchestrator(FAILURE)
        gateway = SmartScrapeGateway(orchestrator)

        result = await gateway.smart_scrape("https://example.com/job", manual_content=PASTED)

        orchestrator.scrape.assert_awaited_once()
        assert result.success
        assert result.method == METHOD_MANUAL
        assert result.content == PASTED
        assert result.scrape_result is FAILURE

    @pytest.mark.asyncio
    async def test_total_failure_requires_manual(self):
        gateway = SmartScrapeGateway(make_orchestrator(FAILURE))

        result = await gateway.smart_scrape("https://example.com/job")

        assert result.success is False
        assert result.requires_manual is True
        assert result.is_restricted is False
        assert "All scraping methods failed" in result.error
        assert result.to_dict()["scrape"]["fallback_chain"][0]["strategy"] == "static"

    @pytest.mark.asyncio
    async def test_49_chars_is_treated_as_absent(self):
        gateway = SmartScrapeGateway(make_orchestrator(FAILURE))
        manual = "   " + "a" * 49 + "   "

        result = await gateway.smart_scrape("https://example.com/job", manual_content=manual)

        assert result.success is False
        assert result.requires_manual is True

    @pytest.mark.asyncio
    async def test_50_chars_is_enough(self):
        gateway = SmartScrapeGateway(make_orchestrator(FAILURE))

        result = await gateway.smart_scrape("https://example.com/job", manual_content="a" * 50)

        assert result.success
        assert result.method == METHOD_MANUAL

    @pytest.mark.asyncio
    async def test_orchestrator_exception_is_a_failure(self):
        orchestrator = make_orchestrator()
        orchestrator.scrape.side_effect = RuntimeError("event loop closed")
        gateway = SmartScrapeGateway(orchestrator)

        result = await gateway.smart_scrape("https://example.com/job")

        assert result.success is False
        assert result.requires_manual is True
        assert "event loop closed" in result.error

    @pytest.mark.asyncio
    async def test_timeout_override(self):
        orchestrator = make_orchestrator()
        gateway = SmartScrapeGateway(orchestrator)

        await gateway.smart_scrape("https://example.com/job", timeout_ms=5000)

        options = orchestrator.scrape.call_args.args[1]
        assert options.timeout_ms == 5000

    @pytest.mark.asyncio
    async def test_close_delegates(self):
        orchestrator = make_orchestrator()
        await SmartScrapeGateway(orchestrator).close()
        orchestrator.close.assert_awaited_once()


def test_usable_manual_content():
    assert MIN_MANUAL_CONTENT_CHARS == 50
    assert usable_manual_content(None) is None
    assert usable_manual_content("  " + "b" * 49) is None
    assert usable_manual_content("  " + "b" * 50 + "\n\n\n\n") == "b" * 50

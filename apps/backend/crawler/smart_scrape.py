"""
Smart-scrape gateway.

Restricted sites never go through automated scraping: their content must
be pasted by the user. Every other site is scraped automatically first,
and pasted content is only used when all strategies have failed.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from core.site_policy import classify, restricted_site_message
from core.text import clean_text
from crawler.models import ScrapeOptions, ScrapeResult
from crawler.orchestrator import FallbackOrchestrator

logger = logging.getLogger(__name__)

MIN_MANUAL_CONTENT_CHARS = 50

METHOD_AUTO = "auto"
METHOD_MANUAL = "manual"
METHOD_FAILED = "failed"


@dataclass(frozen=True)
class SmartScrapeResult:
    success: bool
    method: str
    content: Optional[str] = None
    title: Optional[str] = None
    requires_manual: bool = False
    is_restricted: bool = False
    error: Optional[str] = None
    restricted_site_message: Optional[str] = None
    scrape_result: Optional[ScrapeResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "method": self.method,
            "content": self.content,
            "title": self.title,
            "requires_manual": self.requires_manual,
            "is_restricted": self.is_restricted,
            "error": self.error,
            "restricted_site_message": self.restricted_site_message,
            "scrape": self.scrape_result.to_dict() if self.scrape_result else None,
        }


def usable_manual_content(manual_content: Optional[str]) -> Optional[str]:
    """Cleaned pasted content, or None if it is below the length floor."""
    cleaned = clean_text(manual_content)
    if len(cleaned) < MIN_MANUAL_CONTENT_CHARS:
        return None
    return cleaned


class SmartScrapeGateway:
    """Decides between automated scraping and user-pasted content"""

    def __init__(self, orchestrator: Optional[FallbackOrchestrator] = None):
        self.orchestrator = orchestrator or FallbackOrchestrator()

    async def smart_scrape(
        self,
        url: str,
        manual_content: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> SmartScrapeResult:
        manual = usable_manual_content(manual_content)

        if classify(url).restricted:
            if manual:
                logger.info(f"[smart_scrape] Restricted site, using pasted content for {url}")
                return SmartScrapeResult(success=True, method=METHOD_MANUAL, content=manual, is_restricted=True)

            logger.info(f"[smart_scrape] Restricted site without usable pasted content: {url}")
            return SmartScrapeResult(
                success=False,
                method=METHOD_FAILED,
                requires_manual=True,
                is_restricted=True,
                error="This site requires manual content paste (LinkedIn, Facebook, etc.)",
                restricted_site_message=restricted_site_message(url),
            )

        options = self.orchestrator.default_options()
        if timeout_ms is not None:
            options = ScrapeOptions(timeout_ms=timeout_ms)

        try:
            scrape_result = await self.orchestrator.scrape(url, options)
        except Exception as e:
            logger.error(f"[smart_scrape] Orchestrator raised for {url}: {e}", exc_info=True)
            scrape_result = ScrapeResult(success=False, error=str(e))

        if scrape_result.success:
            return SmartScrapeResult(
                success=True,
                method=METHOD_AUTO,
                content=scrape_result.content,
                title=scrape_result.title,
                scrape_result=scrape_result,
            )

        if manual:
            logger.info(f"[smart_scrape] Auto-scrape failed, falling back to pasted content for {url}")
            return SmartScrapeResult(success=True, method=METHOD_MANUAL, content=manual, scrape_result=scrape_result)

        return SmartScrapeResult(
            success=False,
            method=METHOD_FAILED,
            requires_manual=True,
            error=f"Auto-scraping failed: {scrape_result.error}. Please paste the content manually.",
            scrape_result=scrape_result,
        )

    async def close(self) -> None:
        await self.orchestrator.close()

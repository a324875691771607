"""
Common interface for content-acquisition strategies.
"""
import logging
from abc import ABC, abstractmethod

from core.errors import ScraperError
from crawler.models import ScrapeMethod, ScrapeOptions, StrategyOutcome

logger = logging.getLogger(__name__)

# Slack on top of a strategy's own timeout before the orchestrator gives up on it
DEADLINE_GRACE_SECONDS = 5.0


class ScrapeStrategy(ABC):
    """
    One way of turning a URL into page text.

    Subclasses implement _scrape and raise ScraperError for classified
    failures; run() turns those into a failed StrategyOutcome so the
    orchestrator only has to deal with unexpected exceptions and timeouts.
    """

    name: str = "strategy"
    method: ScrapeMethod = ScrapeMethod.STATIC

    @abstractmethod
    async def _scrape(self, url: str, options: ScrapeOptions) -> StrategyOutcome:
        ...

    async def run(self, url: str, options: ScrapeOptions) -> StrategyOutcome:
        try:
            return await self._scrape(url, options)
        except ScraperError as e:
            logger.info(f"[{self.name}] {e}")
            return StrategyOutcome.failure(str(e), e.code)

    def deadline_seconds(self, options: ScrapeOptions) -> float:
        """Hard upper bound the orchestrator enforces on one run()."""
        return options.timeout_ms / 1000 + DEADLINE_GRACE_SECONDS

    async def close(self) -> None:
        """Release long-lived resources. Strategies without any do nothing."""

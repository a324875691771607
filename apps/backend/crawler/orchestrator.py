"""
Fallback orchestrator: static fetch, then browser A, then browser B.

Strategies run strictly in order and the first one that yields meaningful
content wins. Each strategy is time-bounded on its own; a failure or
timeout is recorded in the fallback chain and the next strategy runs.
scrape() always returns a ScrapeResult.
"""
import asyncio
import logging
import time
from typing import List, Optional, Sequence, Tuple

from app.config import ScraperSettings
from core.errors import ErrorCode, ScraperError
from core.site_policy import classify
from core.text import validate_url
from crawler.browser_crawler import FastBrowserStrategy, ResilientBrowserStrategy
from crawler.html_fetch import StaticFetchStrategy
from crawler.models import ScrapeAttempt, ScrapeMethod, ScrapeOptions, ScrapeResult, StrategyOutcome
from crawler.strategy import ScrapeStrategy

logger = logging.getLogger(__name__)

SCRIPT_HEAVY_SKIP_REASON = "skipped: script-heavy site"


def default_strategies(settings: ScraperSettings) -> List[ScrapeStrategy]:
    return [
        StaticFetchStrategy(),
        FastBrowserStrategy(settle_ms=settings.fast_settle_ms, user_agent=settings.user_agent),
        ResilientBrowserStrategy(settle_ms=settings.resilient_settle_ms, user_agent=settings.user_agent),
    ]


class FallbackOrchestrator:
    """Runs an ordered list of strategies until one produces meaningful content"""

    def __init__(
        self,
        strategies: Optional[Sequence[ScrapeStrategy]] = None,
        settings: Optional[ScraperSettings] = None,
    ):
        self.settings = settings or ScraperSettings.from_env()
        self.strategies: List[ScrapeStrategy] = list(strategies) if strategies is not None else default_strategies(self.settings)
        self.min_content_chars = self.settings.min_content_chars

    def default_options(self) -> ScrapeOptions:
        return ScrapeOptions(timeout_ms=self.settings.timeout_ms)

    async def _run_strategy(
        self,
        strategy: ScrapeStrategy,
        url: str,
        options: ScrapeOptions,
    ) -> Tuple[ScrapeAttempt, StrategyOutcome]:
        """Run one strategy under its deadline. Never raises except on cancellation."""
        start = time.monotonic()
        deadline = strategy.deadline_seconds(options)

        try:
            outcome = await asyncio.wait_for(strategy.run(url, options), timeout=deadline)
        except asyncio.TimeoutError:
            outcome = StrategyOutcome.failure(
                f"{ErrorCode.TIMEOUT.value}: {strategy.name} exceeded {deadline:.1f}s for URL: {url}",
                ErrorCode.TIMEOUT,
            )
        except Exception as e:
            logger.error(f"[orchestrator] {strategy.name} raised unexpectedly for {url}: {e}", exc_info=True)
            outcome = StrategyOutcome.failure(f"{ErrorCode.UNKNOWN.value}: {e}", ErrorCode.UNKNOWN)

        if outcome.success and len(outcome.content) < self.min_content_chars:
            outcome = StrategyOutcome.failure(
                f"{ErrorCode.PARSING_ERROR.value}: Insufficient content extracted "
                f"({len(outcome.content)} chars, need {self.min_content_chars})",
                ErrorCode.PARSING_ERROR,
                content=outcome.content,
                title=outcome.title,
            )

        duration_ms = int((time.monotonic() - start) * 1000)
        attempt = ScrapeAttempt(
            strategy_name=strategy.name,
            succeeded=outcome.success,
            error_reason=None if outcome.success else (outcome.error or f"{strategy.name} failed"),
            duration_ms=duration_ms,
        )
        logger.info(
            f"[orchestrator] {strategy.name} {'succeeded' if outcome.success else 'failed'} "
            f"for {url} in {duration_ms}ms ({len(outcome.content)} chars)"
        )
        return attempt, outcome

    def _select(self, force_method: Optional[ScrapeMethod]) -> List[ScrapeStrategy]:
        if force_method is None:
            return self.strategies
        return [s for s in self.strategies if s.method == force_method]

    async def scrape(self, url: str, options: Optional[ScrapeOptions] = None) -> ScrapeResult:
        """
        Scrape a URL through the fallback chain.

        Args:
            url: Page to scrape
            options: Timeout, user agent, selector to wait for, or a single
                     strategy to force (skips the chain and the script-heavy skip)

        Returns:
            ScrapeResult; on failure fallback_chain lists every strategy tried
        """
        options = options or self.default_options()

        try:
            url = validate_url(url)
        except ScraperError as e:
            return ScrapeResult(success=False, error=str(e))

        strategies = self._select(options.force_method)
        if not strategies:
            return ScrapeResult(
                success=False,
                error=f"{ErrorCode.UNKNOWN.value}: No strategy registered for method {options.force_method.value}",
            )

        forced = options.force_method is not None
        policy = classify(url)
        chain: List[ScrapeAttempt] = []
        last_error: Optional[str] = None

        for strategy in strategies:
            if not forced and policy.script_heavy and strategy.method == ScrapeMethod.STATIC:
                logger.info(f"[orchestrator] Skipping {strategy.name} for script-heavy site {url}")
                chain.append(ScrapeAttempt(strategy.name, False, SCRIPT_HEAVY_SKIP_REASON, 0))
                continue

            attempt, outcome = await self._run_strategy(strategy, url, options)
            chain.append(attempt)

            if attempt.succeeded:
                return ScrapeResult(
                    success=True,
                    content=outcome.content,
                    title=outcome.title,
                    method_used=strategy.method,
                    fallback_chain=tuple(chain),
                )

            last_error = attempt.error_reason
            logger.info(f"[orchestrator] Falling back after {strategy.name}: {last_error}")

        message = "All scraping methods failed" if not forced else f"{strategies[0].name} failed"
        if last_error:
            message = f"{message}: {last_error}"
        return ScrapeResult(success=False, fallback_chain=tuple(chain), error=message)

    async def close(self) -> None:
        """Release every strategy's shared resources. Never raises."""
        for strategy in self.strategies:
            try:
                await strategy.close()
            except Exception as e:
                logger.warning(f"[orchestrator] Error closing {strategy.name}: {e}")

"""
Result types for scraping strategies and the fallback orchestrator.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from core.errors import ErrorCode


class ScrapeMethod(str, Enum):
    STATIC = "static"
    BROWSER_A = "browser_a"
    BROWSER_B = "browser_b"
    MANUAL = "manual"


@dataclass(frozen=True)
class ScrapeOptions:
    """Per-call options shared by every strategy."""

    timeout_ms: int = 30000
    user_agent: Optional[str] = None
    wait_for_selector: Optional[str] = None
    settle_ms: Optional[int] = None
    block_resources: Optional[bool] = None
    force_method: Optional[ScrapeMethod] = None


@dataclass(frozen=True)
class StrategyOutcome:
    """What one strategy run produced."""

    success: bool
    content: str = ""
    title: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def failure(cls, error: str, error_code: ErrorCode = ErrorCode.UNKNOWN, content: str = "",
                title: Optional[str] = None) -> "StrategyOutcome":
        return cls(success=False, content=content, title=title, error=error, error_code=error_code)


@dataclass(frozen=True)
class ScrapeAttempt:
    strategy_name: str
    succeeded: bool
    error_reason: Optional[str] = None
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy_name,
            "succeeded": self.succeeded,
            "error_reason": self.error_reason,
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class ScrapeResult:
    success: bool
    content: str = ""
    title: Optional[str] = None
    method_used: Optional[ScrapeMethod] = None
    fallback_chain: Tuple[ScrapeAttempt, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    @property
    def fallback_used(self) -> bool:
        return len(self.fallback_chain) > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "content": self.content,
            "title": self.title,
            "method": self.method_used.value if self.method_used else None,
            "fallback_used": self.fallback_used,
            "fallback_chain": [a.to_dict() for a in self.fallback_chain],
            "error": self.error,
        }

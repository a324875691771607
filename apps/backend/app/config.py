import os
from dataclasses import dataclass, field
from typing import Optional

import psycopg2

from app.db_config import db_config

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class ScraperSettings:
    timeout_ms: int = 30000
    min_content_chars: int = 50
    fast_settle_ms: int = 2000
    resilient_settle_ms: int = 5000
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls) -> "ScraperSettings":
        return cls(
            timeout_ms=_env_int("SCRAPER_TIMEOUT_MS", 30000),
            min_content_chars=_env_int("SCRAPER_MIN_CONTENT_CHARS", 50),
            fast_settle_ms=_env_int("SCRAPER_SETTLE_MS", 2000),
            resilient_settle_ms=_env_int("SCRAPER_RESILIENT_SETTLE_MS", 5000),
            user_agent=os.getenv("SCRAPER_USER_AGENT", DEFAULT_USER_AGENT),
        )


@dataclass
class ExtractionSettings:
    api_key: Optional[str] = None
    model: str = "google/gemini-2.0-flash-001"
    base_url: str = "https://openrouter.ai/api/v1"
    timeout_seconds: float = 30.0
    max_retries: int = 3
    retry_delay_seconds: float = 2.0

    @classmethod
    def from_env(cls) -> "ExtractionSettings":
        return cls(
            api_key=os.getenv("OPENROUTER_API_KEY"),
            model=os.getenv("OPENROUTER_MODEL", "google/gemini-2.0-flash-001"),
            base_url=os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/"),
            timeout_seconds=_env_float("EXTRACTION_TIMEOUT_SECONDS", 30.0),
            max_retries=max(1, _env_int("EXTRACTION_MAX_RETRIES", 3)),
            retry_delay_seconds=_env_float("EXTRACTION_RETRY_DELAY_SECONDS", 2.0),
        )


@dataclass
class Settings:
    """Runtime settings, read from the environment once at startup."""

    env: str = "production"
    scraper: ScraperSettings = field(default_factory=ScraperSettings)
    extraction: ExtractionSettings = field(default_factory=ExtractionSettings)
    submission_timeout_seconds: float = 120.0
    cron_secret: Optional[str] = None

    @property
    def is_dev(self) -> bool:
        return self.env == "dev"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            env=os.getenv("OPPBOARD_ENV", "production").lower(),
            scraper=ScraperSettings.from_env(),
            extraction=ExtractionSettings.from_env(),
            submission_timeout_seconds=_env_float("SUBMISSION_TIMEOUT_SECONDS", 120.0),
            cron_secret=os.getenv("CRON_SECRET"),
        )


class Capabilities:
    @staticmethod
    def is_db_enabled() -> bool:
        """Check if a PostgreSQL DSN is configured"""
        return db_config.is_db_enabled

    @staticmethod
    def check_db_connection() -> bool:
        """Verify database connection with a trivial query"""
        if not Capabilities.is_db_enabled():
            return False

        try:
            # Use very short timeout for health checks (1 second max)
            conn = psycopg2.connect(db_config.database_url, connect_timeout=1)
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.fetchone()
            cursor.close()
            conn.close()
            return True
        except Exception:
            return False

    @staticmethod
    def is_ai_enabled() -> bool:
        return bool(os.getenv("OPENROUTER_API_KEY"))

    @classmethod
    def get_status(cls) -> dict:
        db = cls.check_db_connection()
        ai = cls.is_ai_enabled()

        return {
            "status": "green" if db and ai else "amber",
            "components": {
                "db": db,
                "ai": ai,
            },
        }


def get_env_presence() -> dict:
    required_vars = [
        "OPPBOARD_ENV",
        "DATABASE_URL",
        "OPENROUTER_API_KEY",
        "OPENROUTER_MODEL",
        "CRON_SECRET",
    ]

    return {var: bool(os.getenv(var)) for var in required_vars}

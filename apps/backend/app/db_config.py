"""
Database configuration module.
The opportunities table lives in the PostgreSQL database named by DATABASE_URL.
"""

import os
import logging
from urllib.parse import urlparse, unquote

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5432


class DBConfig:
    """PostgreSQL DSN resolved from the environment (or passed explicitly)"""

    def __init__(self, database_url: str | None = None):
        self.database_url = database_url or os.getenv("DATABASE_URL")

        if self.database_url:
            logger.info(f"[db_config] DATABASE_URL configured: {self.masked_url}")
        else:
            logger.warning("[db_config] DATABASE_URL not set - submissions cannot be persisted")

    @property
    def is_db_enabled(self) -> bool:
        return bool(self.database_url)

    @property
    def masked_url(self) -> str | None:
        """The DSN with its password replaced by ***, for logs and CLI output."""
        if not self.database_url:
            return None
        try:
            parsed = urlparse(self.database_url)
            port = parsed.port or DEFAULT_PORT
        except ValueError:
            return "<unparseable DATABASE_URL>"
        user = f"{parsed.username}:***@" if parsed.username else ""
        return f"{parsed.scheme}://{user}{parsed.hostname}:{port}{parsed.path}"

    def get_connection_params(self) -> dict | None:
        """
        Split the DSN into psycopg2 keyword arguments.
        Returns dict with host, port, database, user and (when set) password.
        """
        if not self.database_url:
            return None

        try:
            parsed = urlparse(self.database_url)
            port = parsed.port or DEFAULT_PORT
        except ValueError as e:
            logger.error(f"[db_config] Failed to parse DATABASE_URL: {e}")
            return None

        if not parsed.hostname:
            return None

        params = {
            "host": parsed.hostname,
            "port": port,
            "database": parsed.path.lstrip('/') or 'postgres',
            "user": parsed.username or 'postgres',
        }
        # Percent-encoded in the DSN
        if parsed.password:
            params["password"] = unquote(parsed.password)

        return params


db_config = DBConfig()

"""
Per-IP rate limiting for the submission route.

Each submission costs a scrape (possibly two browser launches) and a
completion call, so the limit is kept low.
"""
import os
from slowapi import Limiter
from slowapi.util import get_remote_address


def _default_submit_limit() -> str:
    return "10/minute" if os.getenv("OPPBOARD_ENV", "").lower() == "dev" else "20/minute"


RATE_LIMIT_SUBMIT = os.getenv("RATE_LIMIT_SUBMIT") or _default_submit_limit()

limiter = Limiter(key_func=get_remote_address)

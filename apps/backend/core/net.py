"""
HTTP client for static page fetches.
"""
import time
import logging
from typing import Optional, Dict, Tuple

import httpx

from app.config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_SIZE_KB = 2048


class HTTPClient:
    """Single-shot GET client with browser-like headers and a size cap"""

    def __init__(self, user_agent: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self._transport = transport

    def _get_headers(self, user_agent: Optional[str] = None) -> Dict[str, str]:
        """Build request headers"""
        return {
            "User-Agent": user_agent or self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate",
            "DNT": "1",
        }

    async def fetch(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: Optional[str] = None,
        max_size_kb: int = MAX_SIZE_KB,
    ) -> Tuple[int, Dict[str, str], str, int]:
        """
        Issue one GET request.

        The connection is released when the client context exits, on success,
        error and cancellation alike.

        Returns:
            (status_code, headers, text, content_length_bytes)

        Raises:
            httpx.TimeoutException, httpx.HTTPError on transport failures
        """
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            start_time = time.time()
            try:
                response = await client.get(url, headers=self._get_headers(user_agent))
            except httpx.TimeoutException as e:
                logger.warning(f"[net] Timeout fetching {url}: {e}")
                raise
            except httpx.HTTPError as e:
                logger.warning(f"[net] Transport error fetching {url}: {e}")
                raise

            elapsed_ms = int((time.time() - start_time) * 1000)
            content_length = len(response.content)
            if content_length > max_size_kb * 1024:
                logger.warning(f"[net] Content too large: {content_length} bytes (limit: {max_size_kb}KB) - {url}")
                body = response.content[:max_size_kb * 1024]
                text = body.decode(response.encoding or 'utf-8', errors='ignore')
            else:
                text = response.text

            logger.info(f"[net] GET {response.status_code} {url} ({content_length} bytes, {elapsed_ms}ms)")
            return (response.status_code, dict(response.headers), text, content_length)

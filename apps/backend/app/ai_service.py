"""
Completion service client for OpenRouter (OpenAI-compatible chat API).

One call per request: no retries and no conversation state live here.
Retry policy belongs to the caller, which decides from the structured
error raised on failure.
"""
import logging
import re
from typing import Dict, List, Optional

import httpx

from app.config import ExtractionSettings

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUS_CODES = (429,)
_RATE_LIMIT_TEXT = re.compile(r'\b429\b|quota|rate.?limit|resource.?exhausted', re.IGNORECASE)

SYSTEM_PROMPT = (
    "You extract structured data from job and opportunity postings. "
    "Always return valid JSON only, no markdown, no explanations."
)


class CompletionError(Exception):
    """A completion request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_rate_limit(self) -> bool:
        """
        True when the provider signalled rate limiting or quota exhaustion.

        The HTTP status decides when there is one; the message is only
        consulted for errors that carry no status (provider errors wrapped
        in a 200 body).
        """
        if self.status_code is not None:
            return self.status_code in RATE_LIMIT_STATUS_CODES
        return bool(_RATE_LIMIT_TEXT.search(self.message or ''))


class CompletionTimeout(CompletionError):
    """The completion request exceeded its deadline."""


class AIService:
    """Async client for the hosted completion service."""

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or ExtractionSettings.from_env()
        self.api_key = self.settings.api_key
        self.model = self.settings.model
        self.base_url = self.settings.base_url
        self.enabled = bool(self.api_key)
        self._transport = transport

        if not self.enabled:
            logger.warning("[ai_service] OpenRouter API key not configured. Structured extraction disabled.")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": "https://oppboard.app",
            "X-Title": "OppBoard Submission Parser",
        }

    async def complete(
        self,
        prompt: str,
        timeout: Optional[float] = None,
        temperature: float = 0.0,
        max_tokens: int = 2000,
    ) -> str:
        """
        Send a single user prompt and return the raw assistant text.

        Raises:
            CompletionTimeout: the request exceeded `timeout` seconds
            CompletionError: any other failure, with status_code when HTTP-level
        """
        if not self.enabled:
            raise CompletionError("Completion service not configured (OPENROUTER_API_KEY missing)")

        messages: List[Dict[str, str]] = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        request_timeout = timeout if timeout is not None else self.settings.timeout_seconds

        try:
            async with httpx.AsyncClient(timeout=request_timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=self._headers(),
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"[ai_service] Request timed out after {request_timeout}s: {e}")
            raise CompletionTimeout(f"Completion request timed out after {request_timeout}s") from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.warning(f"[ai_service] HTTP {status_code} from completion service: {e.response.text[:200]}")
            raise CompletionError(
                f"Completion service returned HTTP {status_code}: {e.response.text[:200]}",
                status_code=status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"[ai_service] Network error calling completion service: {e}")
            raise CompletionError(f"Network error calling completion service: {e}") from e
        except ValueError as e:
            raise CompletionError(f"Completion service returned a non-JSON body: {e}") from e

        # OpenRouter reports upstream provider failures inside a 200 body
        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise CompletionError(
                f"Completion provider error: {message}",
                status_code=code if isinstance(code, int) else None,
            )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"[ai_service] Unexpected response format: {str(data)[:200]}")
            raise CompletionError("Unexpected response format from completion service") from e

        return (content or "").strip()

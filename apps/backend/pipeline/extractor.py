"""
Structured extraction client.

Sends page text (or a bare URL) to the completion service with a fixed
prompt and turns the reply into ExtractedFields.

Retry policy:
- rate limit / quota: retried up to max_retries attempts, waiting
  retry_delay * attempt_number between attempts, then RATE_LIMITED
- timeout: never retried, TIMEOUT
- anything else: never retried, EXTRACTION_FAILED
"""

import asyncio
import json
import logging
import re
from typing import Any, Awaitable, Callable, Optional

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_incrementing

from app.ai_service import AIService, CompletionError, CompletionTimeout
from app.config import ExtractionSettings
from app.normalizer import normalize_extracted_fields
from core.errors import ErrorCode, ExtractionError
from core.text import clean_text, is_valid_url, truncate
from pipeline.models import ExtractedFields

logger = logging.getLogger(__name__)

MIN_CONTENT_CHARS = 50
MAX_CONTENT_CHARS = 30000

_CODE_FENCE = re.compile(r'```(?:json|JSON)?\s*(.*?)\s*```', re.DOTALL)
_JSON_OBJECT = re.compile(r'\{[\s\S]*\}')

EXTRACTION_PROMPT = """You are extracting a job or academic opportunity posting into structured data.

{source_label}:
{source}

Return ONLY a JSON object with exactly these nine keys, no markdown, no commentary:
{{
  "company_name": "string or null",
  "job_title": "string or null",
  "opportunity_type": "internship" | "full_time" | "research" | "fellowship" | "scholarship" | null,
  "role_type": "string or null",
  "relevant_majors": ["string", ...] or null,
  "deadline": "YYYY-MM-DD or null",
  "requirements": "string or null",
  "location": "string or null",
  "description": "string or null"
}}

Field rules:
1. company_name: the hiring organization, university or sponsor, not the job board hosting the post.
2. job_title: the position or program name only; drop locations, dates and requisition numbers.
3. opportunity_type: exactly one of the lower-case tokens listed above. Internships, co-ops and
   summer analyst roles are "internship"; permanent or new-grad roles are "full_time"; lab and
   research assistant positions are "research"; funded fellowships are "fellowship"; awards and
   grants for study are "scholarship".
4. role_type: a short functional category such as "Software Engineering", "Product Management",
   "Data Science", "UX Design", "Finance", "Marketing" or "Other".
5. relevant_majors: fields of study the posting targets or would obviously suit, e.g.
   ["Computer Science", "Software Engineering"].
6. deadline: the application deadline as YYYY-MM-DD. Convert written dates ("March 1, 2026").
   Use null if no deadline is stated or it is "rolling".
7. requirements: the qualifications and skills asked for, as plain text.
8. location: city/state/country, or "Remote" / "Hybrid" when stated.
9. description: two to four sentences summarizing the role.

Prefer a partial answer over null: fill every field you can reasonably infer from the posting and
use null only for fields with no supporting evidence at all."""


def build_prompt(source: str, is_url: bool) -> str:
    """Render the fixed extraction prompt around page text or a URL."""
    return EXTRACTION_PROMPT.format(
        source_label="Posting URL" if is_url else "Posting content",
        source=source,
    )


def parse_json_response(text: str) -> Any:
    """
    Pull the JSON object out of a completion reply.

    Strips markdown code fences, then takes the outermost {...} span. If
    that span has trailing prose with braces, falls back to decoding the
    first complete object.

    Raises:
        ExtractionError: INVALID_RESPONSE
    """
    if not text:
        raise ExtractionError("Empty response from completion service", ErrorCode.INVALID_RESPONSE)

    fenced = _CODE_FENCE.search(text)
    body = fenced.group(1) if fenced else text

    match = _JSON_OBJECT.search(body)
    if not match:
        raise ExtractionError("No JSON object found in completion response", ErrorCode.INVALID_RESPONSE)

    candidate = match.group(0)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    try:
        obj, _ = json.JSONDecoder().raw_decode(candidate)
        return obj
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Failed to parse completion response as JSON: {e}", ErrorCode.INVALID_RESPONSE)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, CompletionError) and not isinstance(exc, CompletionTimeout) and exc.is_rate_limit


class StructuredExtractor:
    """Completion-backed extraction of the nine opportunity fields."""

    def __init__(
        self,
        ai_service: Optional[AIService] = None,
        settings: Optional[ExtractionSettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or ExtractionSettings.from_env()
        self.ai_service = ai_service or AIService(self.settings)
        self._sleep = sleep

    def _prepare_source(self, content_or_url: str) -> tuple:
        if not isinstance(content_or_url, str):
            raise ExtractionError("Content must be a string", ErrorCode.INVALID_CONTENT)

        stripped = content_or_url.strip()
        if is_valid_url(stripped) and not any(ch.isspace() for ch in stripped):
            return stripped, True

        cleaned = clean_text(content_or_url)
        if len(cleaned) < MIN_CONTENT_CHARS:
            raise ExtractionError(
                f"Content too short to extract from ({len(cleaned)} chars, need {MIN_CONTENT_CHARS})",
                ErrorCode.INVALID_CONTENT,
            )
        return truncate(cleaned, MAX_CONTENT_CHARS), False

    async def _complete_once(self, prompt: str, timeout: float) -> str:
        try:
            return await asyncio.wait_for(self.ai_service.complete(prompt, timeout=timeout), timeout=timeout)
        except asyncio.TimeoutError:
            raise CompletionTimeout(f"Completion request exceeded {timeout}s")
        except CompletionError:
            raise
        except Exception as e:
            # Unstructured client errors: rate limiting can only be read from the message
            raise CompletionError(str(e)) from e

    async def extract(
        self,
        content_or_url: str,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ) -> ExtractedFields:
        """
        Extract structured fields.

        Args:
            content_or_url: Cleaned page text, or an http(s) URL
            timeout: Hard deadline per attempt, seconds
            max_retries: Total attempts allowed when rate limited
            retry_delay: Backoff unit, seconds (delay = retry_delay * attempt)

        Raises:
            ExtractionError: INVALID_CONTENT, TIMEOUT, RATE_LIMITED,
                             INVALID_RESPONSE or EXTRACTION_FAILED
        """
        source, is_url = self._prepare_source(content_or_url)
        timeout = timeout if timeout is not None else self.settings.timeout_seconds
        max_retries = max(1, max_retries if max_retries is not None else self.settings.max_retries)
        retry_delay = retry_delay if retry_delay is not None else self.settings.retry_delay_seconds

        prompt = build_prompt(source, is_url)

        def log_retry(retry_state):
            delay = retry_state.next_action.sleep if retry_state.next_action else 0
            logger.warning(
                f"[extraction] Rate limited (attempt {retry_state.attempt_number}/{max_retries}), "
                f"retrying in {delay:.1f}s"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_retries),
            wait=wait_incrementing(start=retry_delay, increment=retry_delay),
            retry=retry_if_exception(_is_retryable),
            before_sleep=log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    response_text = await self._complete_once(prompt, timeout)
        except CompletionTimeout as e:
            logger.warning(f"[extraction] Timed out after {timeout}s: {e}")
            raise ExtractionError(f"AI extraction timed out after {timeout}s", ErrorCode.TIMEOUT)
        except CompletionError as e:
            if e.is_rate_limit:
                logger.error(f"[extraction] Rate limit persisted after {max_retries} attempts")
                raise ExtractionError(
                    f"AI service rate limit exceeded after {max_retries} attempts. Please try again later.",
                    ErrorCode.RATE_LIMITED,
                    status_code=e.status_code,
                )
            raise ExtractionError(f"AI extraction failed: {e.message}", ErrorCode.EXTRACTION_FAILED, status_code=e.status_code)

        raw = parse_json_response(response_text)
        if not isinstance(raw, dict):
            raise ExtractionError("Completion response JSON is not an object", ErrorCode.INVALID_RESPONSE)

        fields = normalize_extracted_fields(raw)
        logger.info(
            f"[extraction] Extracted {sum(1 for v in fields.to_dict().values() if v is not None)}/9 fields "
            f"from {'URL' if is_url else f'{len(source)} chars'}"
        )
        return fields

"""
Error taxonomy for the opportunity-ingestion pipeline.

Strategy-level failures are raised as ScraperError inside a strategy and
recorded in the fallback chain by the orchestrator. Extraction and
submission failures reach the caller and are mapped to HTTP status codes
by the request layer.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    INVALID_CONTENT = "INVALID_CONTENT"
    INVALID_URL = "INVALID_URL"
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    ACCESS_DENIED = "ACCESS_DENIED"
    NETWORK_ERROR = "NETWORK_ERROR"
    PARSING_ERROR = "PARSING_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    DUPLICATE = "DUPLICATE"
    SCRAPE_FAILED = "SCRAPE_FAILED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    UNKNOWN = "UNKNOWN"


HTTP_STATUS_BY_CODE = {
    ErrorCode.DUPLICATE: 409,
    ErrorCode.INVALID_CONTENT: 400,
    ErrorCode.INVALID_URL: 400,
    ErrorCode.RATE_LIMITED: 429,
}


def http_status_for(code: ErrorCode) -> int:
    """HTTP status the request layer should answer with for an error code."""
    return HTTP_STATUS_BY_CODE.get(code, 500)


class OpportunityError(Exception):
    """Base class for every caller-visible pipeline error."""

    default_code = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.status_code = status_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ScraperError(OpportunityError):
    """Raised by a single scraping strategy. Never escapes the orchestrator."""


class ExtractionError(OpportunityError):
    """Raised by the structured extraction client."""

    default_code = ErrorCode.EXTRACTION_FAILED


class SubmissionError(OpportunityError):
    """Raised by the submission coordinator."""


class DuplicateUrlError(SubmissionError):
    """A record with the same URL already exists."""

    default_code = ErrorCode.DUPLICATE

    def __init__(self, url: str, existing: Optional[Dict[str, Any]] = None):
        existing = existing or {}
        super().__init__(
            f"This opportunity has already been submitted: {url}",
            details={"url": url, "existing": existing},
        )
        self.url = url
        self.existing = existing


def error_for_status(status_code: int, url: str) -> ScraperError:
    """Build a ScraperError from an HTTP status returned by a target site."""
    if status_code in (401, 403):
        return ScraperError(
            f"Access denied for URL: {url} ({status_code})",
            ErrorCode.ACCESS_DENIED,
            status_code,
        )
    if status_code == 429:
        return ScraperError(f"Rate limited for URL: {url}", ErrorCode.RATE_LIMITED, status_code)
    if status_code == 404:
        return ScraperError(f"URL not found: {url}", ErrorCode.NETWORK_ERROR, status_code)
    if status_code >= 500:
        return ScraperError(
            f"Server error for URL: {url} ({status_code})",
            ErrorCode.NETWORK_ERROR,
            status_code,
        )
    return ScraperError(f"HTTP error {status_code} for URL: {url}", ErrorCode.NETWORK_ERROR, status_code)


def timeout_error(url: str, timeout_ms: int) -> ScraperError:
    return ScraperError(f"Request timed out after {timeout_ms}ms for URL: {url}", ErrorCode.TIMEOUT)

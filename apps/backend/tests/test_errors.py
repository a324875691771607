"""
Unit tests for the error taxonomy and its HTTP mapping.
"""

import pytest

from core.errors import (
    DuplicateUrlError,
    ErrorCode,
    ExtractionError,
    OpportunityError,
    ScraperError,
    SubmissionError,
    error_for_status,
    http_status_for,
    timeout_error,
)


@pytest.mark.parametrize("code,status", [
    (ErrorCode.DUPLICATE, 409),
    (ErrorCode.INVALID_CONTENT, 400),
    (ErrorCode.INVALID_URL, 400),
    (ErrorCode.RATE_LIMITED, 429),
    (ErrorCode.SCRAPE_FAILED, 500),
    (ErrorCode.EXTRACTION_FAILED, 500),
    (ErrorCode.TIMEOUT, 500),
    (ErrorCode.INVALID_RESPONSE, 500),
    (ErrorCode.UNKNOWN, 500),
])
def test_http_status_for(code, status):
    assert http_status_for(code) == status


@pytest.mark.parametrize("status,code", [
    (401, ErrorCode.ACCESS_DENIED),
    (403, ErrorCode.ACCESS_DENIED),
    (429, ErrorCode.RATE_LIMITED),
    (404, ErrorCode.NETWORK_ERROR),
    (500, ErrorCode.NETWORK_ERROR),
    (504, ErrorCode.NETWORK_ERROR),
    (410, ErrorCode.NETWORK_ERROR),
])
def test_error_for_status(status, code):
    error = error_for_status(status, "https://example.com/job")
    assert isinstance(error, ScraperError)
    assert error.code == code
    assert error.status_code == status
    assert "https://example.com/job" in error.message


def test_timeout_error():
    error = timeout_error("https://example.com/job", 30000)
    assert error.code == ErrorCode.TIMEOUT
    assert "30000ms" in str(error)


def test_str_includes_code():
    assert str(ScraperError("bad page", ErrorCode.PARSING_ERROR)) == "PARSING_ERROR: bad page"


def test_default_codes():
    assert OpportunityError("x").code == ErrorCode.UNKNOWN
    assert ExtractionError("x").code == ErrorCode.EXTRACTION_FAILED
    assert SubmissionError("x", ErrorCode.SCRAPE_FAILED).code == ErrorCode.SCRAPE_FAILED


def test_duplicate_url_error():
    error = DuplicateUrlError("https://example.com/job", {"id": "42", "company_name": "Acme"})

    assert isinstance(error, SubmissionError)
    assert error.code == ErrorCode.DUPLICATE
    assert error.existing == {"id": "42", "company_name": "Acme"}
    assert error.details["url"] == "https://example.com/job"
    assert http_status_for(error.code) == 409

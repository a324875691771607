"""
Unit tests for text cleaning and URL validation.
"""

import pytest

from core.errors import ErrorCode, ScraperError
from core.text import clean_text, is_valid_url, truncate, validate_url


class TestCleanText:

    def test_collapses_spaces_and_blank_lines(self):
        raw = "  Hello \t  world  \n\n\n\n  next  "
        assert clean_text(raw) == "Hello world\n\nnext"

    def test_keeps_single_blank_line(self):
        assert clean_text("a\n\nb") == "a\n\nb"

    def test_strips_spaces_around_line_breaks(self):
        assert clean_text("line one   \n   line two") == "line one\nline two"

    def test_non_breaking_spaces(self):
        assert clean_text("a\xa0\xa0b") == "a b"

    @pytest.mark.parametrize("value", [None, "", "   \n\t  "])
    def test_empty_input(self, value):
        assert clean_text(value) == ""

    def test_truncate(self):
        assert truncate("abcdef", 3) == "abc"
        assert truncate("abc", 10) == "abc"


class TestUrlValidation:

    def test_trims_valid_url(self):
        assert validate_url("  https://example.com/job  ") == "https://example.com/job"

    @pytest.mark.parametrize("url", ["", None, "example.com/job", "ftp://example.com/file", "https://", "job posting"])
    def test_rejects_invalid(self, url):
        with pytest.raises(ScraperError) as exc_info:
            validate_url(url)
        assert exc_info.value.code == ErrorCode.INVALID_URL

    def test_is_valid_url(self):
        assert is_valid_url("http://example.com")
        assert not is_valid_url("mailto:jobs@example.com")

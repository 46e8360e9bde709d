"""
Tests for fetch error mapping and transient classification.

Run: python3 -m pytest utils/__tests__/test_fetch_errors.py -v
"""

import asyncio

import httpx
import pytest

from utils.errors import CooldownActiveError, FatalPipelineError, ModelAuthenticationError, QueueUnavailableError
from utils.fetch_errors import describe_fetch_error, is_transient


def status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://acme.com/careers")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


class TestDescribeFetchError:

    @pytest.mark.parametrize("code,expected", [
        (403, "Access denied - site may have rate limiting"),
        (404, "Career page not found - URL may have changed"),
        (502, "Career site server error - try again later"),
        (418, "HTTP error: 418"),
    ])
    def test_status_codes(self, code, expected):
        assert describe_fetch_error(status_error(code)) == expected

    def test_timeouts(self):
        assert describe_fetch_error(httpx.ReadTimeout("slow")).startswith("Request timed out")
        assert describe_fetch_error(asyncio.TimeoutError()).startswith("Request timed out")

    def test_connect_error(self):
        assert describe_fetch_error(httpx.ConnectError("refused")) == "Could not connect to career site"

    def test_invalid_url(self):
        assert describe_fetch_error(httpx.InvalidURL("bad")) == "Invalid career page URL"

    def test_shape_errors(self):
        assert describe_fetch_error(KeyError("jobs")) == "Unexpected response format - API may have changed"

    def test_other(self):
        assert describe_fetch_error(RuntimeError("x")) == "Extraction failed: RuntimeError"


class TestIsTransient:

    @pytest.mark.parametrize("error,expected", [
        (httpx.ConnectError("refused"), True),
        (httpx.ReadTimeout("slow"), True),
        (asyncio.TimeoutError(), True),
        (status_error(503), True),
        (status_error(429), True),
        (status_error(404), False),
        (ValueError("bad"), False),
    ])
    def test_classification(self, error, expected):
        assert is_transient(error) is expected


def test_error_taxonomy():
    assert issubclass(ModelAuthenticationError, FatalPipelineError)
    assert issubclass(QueueUnavailableError, FatalPipelineError)
    error = CooldownActiveError(42)
    assert error.retry_after == 42
    assert str(error) == "Please wait 42s before triggering another run"

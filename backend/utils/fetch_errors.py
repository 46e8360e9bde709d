"""
Fetch error mapping shared by the classifier, strategies and orchestrator.
"""

import asyncio

import httpx


def describe_fetch_error(e: Exception) -> str:
    """Map fetch exceptions to user-friendly error messages."""
    if isinstance(e, (httpx.TimeoutException, asyncio.TimeoutError)):
        return "Request timed out - career site may be slow"
    elif isinstance(e, httpx.HTTPStatusError):
        status_code = e.response.status_code
        if status_code == 403:
            return "Access denied - site may have rate limiting"
        elif status_code == 404:
            return "Career page not found - URL may have changed"
        elif status_code >= 500:
            return "Career site server error - try again later"
        else:
            return f"HTTP error: {status_code}"
    elif isinstance(e, httpx.ConnectError):
        return "Could not connect to career site"
    elif isinstance(e, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return "Invalid career page URL"
    elif isinstance(e, (KeyError, TypeError, ValueError)):
        return "Unexpected response format - API may have changed"
    else:
        return f"Extraction failed: {type(e).__name__}"


def is_transient(e: Exception) -> bool:
    """Network-level failures worth retrying through the queue backoff."""
    if isinstance(e, httpx.HTTPStatusError):
        return e.response.status_code >= 500 or e.response.status_code == 429
    return isinstance(e, (httpx.TimeoutException, httpx.NetworkError, asyncio.TimeoutError))

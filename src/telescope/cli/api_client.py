"""API client helper for CLI commands that read from a running collector.

Used by ``telescope entries`` to call the collector's HTTP API. Commands
that only need local files (``config show``) read them directly instead.
"""

from __future__ import annotations

__all__ = [
    "CollectorAPIError",
    "CollectorNotRunningError",
    "api_request",
]

import json
import time
from typing import Any

import click
import httpx

from telescope.constants import DEFAULT_HTTP_TIMEOUT_SECONDS


class CollectorNotRunningError(click.ClickException):
    """Raised when no collector answers at the given URL."""

    def __init__(self, base_url: str) -> None:
        super().__init__(f"No collector reachable at {base_url}.\nStart one with: telescope serve")
        self.base_url = base_url


class CollectorAPIError(click.ClickException):
    """Raised when an API request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        if status_code:
            super().__init__(f"API error ({status_code}): {message}")
        else:
            super().__init__(f"API error: {message}")
        self.status_code = status_code


def _error_detail(response: httpx.Response) -> str:
    """Pull the human message out of a ``{"detail": ...}`` error body."""
    try:
        detail = response.json().get("detail")
    except (json.JSONDecodeError, AttributeError):
        return response.text or response.reason_phrase
    if isinstance(detail, dict):
        return str(detail.get("message") or detail)
    if detail is None:
        return response.reason_phrase
    return str(detail)


def _decode(response: httpx.Response) -> dict[str, Any] | list[Any]:
    """JSON body of a successful response; 204 becomes an empty dict."""
    if response.status_code == 204:
        return {}
    body = response.json()
    return body if isinstance(body, (dict, list)) else {"value": body}


def api_request(
    method: str,
    endpoint: str,
    *,
    base_url: str,
    params: dict[str, Any] | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    max_retries: int = 3,
    backoff_ms: int = 100,
) -> dict[str, Any] | list[Any]:
    """Make an API request to a running collector.

    Connection failures are retried with exponential backoff, which covers
    running the CLI right after ``telescope serve``.

    Args:
        method: HTTP method.
        endpoint: API path (e.g., "/telescope/api/entries").
        base_url: Collector base URL.
        params: Optional query parameters (None values are dropped).
        timeout: Request timeout in seconds.
        max_retries: Maximum connection attempts.
        backoff_ms: Initial backoff in milliseconds (doubles each retry).

    Returns:
        Parsed JSON response.

    Raises:
        CollectorNotRunningError: If the collector cannot be reached.
        CollectorAPIError: If the request fails or returns an error status.
    """
    if params:
        params = {key: value for key, value in params.items() if value is not None}
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            with httpx.Client(base_url=base_url, timeout=timeout) as client:
                response = client.request(method, endpoint, params=params)
                response.raise_for_status()
                return _decode(response)

        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            last_error = e
            if attempt < max_retries - 1:
                time.sleep(backoff_ms / 1000 * (2**attempt))
            continue

        except httpx.HTTPStatusError as e:
            # Real error from the collector, not retried
            raise CollectorAPIError(_error_detail(e.response), e.response.status_code) from e

        except httpx.HTTPError as e:
            raise CollectorAPIError(str(e)) from e

        except json.JSONDecodeError as e:
            raise CollectorAPIError(f"Invalid JSON response: {e}") from e

    raise CollectorNotRunningError(base_url) from last_error

"""
HTTP transport — urllib with bounded retries.

Connection failures, timeouts, truncated bodies and the usual transient
statuses are retried with exponential backoff. Every other HTTP error
fails at once with HttpStatusError so callers can react to a 404.
"""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request
from typing import Any

from pg_embedded.core.errors import HttpStatusError, ParseError, TransportError
from pg_embedded.core.reliability.backoff import RetryPolicy

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def user_agent() -> str:
    from pg_embedded import __version__

    return f"postgresql-embedded/{__version__}"


class HttpClient:
    """Blocking HTTP GET client shared by the repositories.

    Args:
        retry: Backoff policy for transient failures.
        timeout: Socket timeout per attempt, in seconds.
        headers: Headers sent with every request.
    """

    def __init__(
        self,
        retry: RetryPolicy | None = None,
        timeout: float = 60.0,
        headers: dict[str, str] | None = None,
    ):
        self.retry = retry or RetryPolicy()
        self.timeout = timeout
        self.headers = {"User-Agent": user_agent(), **(headers or {})}

    def get(self, url: str, headers: dict[str, str] | None = None) -> bytes:
        """Fetch ``url`` and return the response body.

        Raises:
            HttpStatusError: Non-retryable status, or retryable status
                still failing after the retry budget.
            TransportError: Connection failures or truncated responses
                after the retry budget.
        """
        request = urllib.request.Request(url, headers={**self.headers, **(headers or {})})
        attempt = 0
        while True:
            try:
                logger.debug("GET %s", url)
                with urllib.request.urlopen(request, timeout=self.timeout) as resp:
                    body = resp.read()
                logger.debug("GET %s: %d bytes", url, len(body))
                return body
            except urllib.error.HTTPError as e:
                error: TransportError = HttpStatusError(url, e.code, str(e.reason or ""))
                if e.code not in RETRYABLE_STATUSES:
                    raise error from e
                cause: Exception = e
            except (http.client.HTTPException, OSError) as e:
                # URLError and socket timeouts are OSErrors, a truncated body is IncompleteRead
                error = TransportError(f"GET {url} failed: {getattr(e, 'reason', e)}")
                cause = e

            attempt += 1
            if attempt > self.retry.max_retries:
                raise error from cause
            self.retry.wait(attempt, str(error))

    def get_text(self, url: str, headers: dict[str, str] | None = None) -> str:
        return self.get(url, headers).decode("utf-8", errors="replace")

    def get_json(self, url: str, headers: dict[str, str] | None = None) -> Any:
        body = self.get(url, headers)
        try:
            return json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"Invalid JSON from {url}: {e}") from e

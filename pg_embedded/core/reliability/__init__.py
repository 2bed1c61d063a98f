"""Reliability primitives — bounded retries."""

from pg_embedded.core.reliability.backoff import RetryPolicy

__all__ = ["RetryPolicy"]

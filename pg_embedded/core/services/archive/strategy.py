"""
Strategy table — ordered (predicate, value) pairs, newest first.

Base for the URL-keyed registries (matchers, extractors, repositories).
The lock is held only for the duration of one lookup or insert.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

from pg_embedded.core.errors import UnsupportedStrategy

T = TypeVar("T")

UrlPredicate = Callable[[str], bool]


def url_prefix(prefix: str) -> UrlPredicate:
    """Predicate accepting URLs that start with ``prefix``."""
    return lambda url: url.startswith(prefix)


class StrategyTable(Generic[T]):
    """Thread-safe, newest-registration-wins lookup table."""

    not_found: type[UnsupportedStrategy] = UnsupportedStrategy

    def __init__(self) -> None:
        self._entries: list[tuple[UrlPredicate, T]] = []
        self._lock = threading.Lock()

    def register(self, supports: UrlPredicate, value: T) -> None:
        """Register ``value`` for URLs accepted by ``supports``; it takes precedence."""
        with self._lock:
            self._entries.insert(0, (supports, value))

    def find(self, url: str) -> T | None:
        with self._lock:
            entries = list(self._entries)
        for supports, value in entries:
            if supports(url):
                return value
        return None

    def get(self, url: str) -> T:
        """Value for ``url``.

        Raises:
            UnsupportedStrategy: Subclass per table when nothing accepts ``url``.
        """
        value = self.find(url)
        if value is None:
            raise self.not_found(url)
        return value

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

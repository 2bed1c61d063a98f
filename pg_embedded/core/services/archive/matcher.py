"""
Asset matchers — pick the release asset built for this host.

A matcher is ``(url, asset_name, version) -> bool``. The registry selects
one by repository URL; URLs with no specific matcher fall back to the
default, which recognises target triples and OS/arch tokens in ``.tar.gz``
asset names.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Callable

from pg_embedded.core.data.constants import THESEUS_POSTGRESQL_BINARIES_URL, ZONKY_URL
from pg_embedded.core.models.version import Version
from pg_embedded.core.services.archive import host
from pg_embedded.core.services.archive.strategy import StrategyTable, url_prefix

Matcher = Callable[[str, str, Version], bool]

_OS_ALIASES = {"macos": ("macos", "darwin")}
_ARCH_ALIASES = {"x86_64": ("x86_64", "amd64"), "aarch64": ("aarch64", "arm64")}


def token_pattern(key: str) -> re.Pattern[str]:
    """``key`` surrounded by non-word characters or underscores."""
    return re.compile(rf"[\W_]{re.escape(key)}[\W_]")


def matches_host(name: str) -> bool:
    """Whether ``name`` mentions the host target triple, or both its OS and arch."""
    if token_pattern(host.target_triple()).search(name):
        return True
    system = host.os_name()
    cpu = host.arch()
    matches_os = any(token_pattern(alias).search(name) for alias in _OS_ALIASES.get(system, (system,)))
    matches_arch = any(token_pattern(alias).search(name) for alias in _ARCH_ALIASES.get(cpu, (cpu,)))
    return matches_os and matches_arch


def default_matcher(url: str, name: str, version: Version) -> bool:
    if not name.endswith(".tar.gz"):
        return False
    return matches_host(name)


def theseus_matcher(url: str, name: str, version: Version) -> bool:
    return name == f"postgresql-{version}-{host.target_triple()}.tar.gz"


def zonky_matcher(url: str, name: str, version: Version) -> bool:
    expected = f"embedded-postgres-binaries-{host.zonky_os()}-{host.zonky_arch()}-{version}.jar"
    return name == expected


class MatcherRegistry(StrategyTable[Matcher]):
    """URL predicate → matcher, newest first, never failing.

    When no predicate accepts a URL, the matcher registered with
    ``register_default`` is used, then ``default_matcher``.
    """

    def __init__(self) -> None:
        super().__init__()
        self._default: Matcher = default_matcher
        self._default_lock = threading.Lock()

    @classmethod
    def default(cls) -> MatcherRegistry:
        registry = cls()
        registry.register(url_prefix(THESEUS_POSTGRESQL_BINARIES_URL), theseus_matcher)
        registry.register(url_prefix(ZONKY_URL), zonky_matcher)
        return registry

    def register_default(self, matcher: Matcher) -> None:
        with self._default_lock:
            self._default = matcher

    def get(self, url: str) -> Matcher:
        matcher = self.find(url)
        if matcher is not None:
            return matcher
        with self._default_lock:
            return self._default

"""
Registries bundle — the four strategy tables the archive engine consults.

Passed explicitly to operations that need it; the process-wide default
lives in ``pg_embedded.core.context``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pg_embedded.core.persistence.install_lock import DEFAULT_LOCK_POLICY, LockPolicy
from pg_embedded.core.services.archive.extractor.registry import ExtractorRegistry
from pg_embedded.core.services.archive.hasher import HasherRegistry
from pg_embedded.core.services.archive.matcher import MatcherRegistry
from pg_embedded.core.services.archive.repository.registry import RepositoryRegistry


@dataclass
class Registries:
    """Hashers, matchers, extractors and repositories used together."""

    hashers: HasherRegistry = field(default_factory=HasherRegistry.default)
    matchers: MatcherRegistry = field(default_factory=MatcherRegistry.default)
    extractors: ExtractorRegistry = field(default_factory=ExtractorRegistry.default)
    repositories: RepositoryRegistry = field(default_factory=RepositoryRegistry.default)

    @classmethod
    def default(cls, lock_policy: LockPolicy = DEFAULT_LOCK_POLICY) -> Registries:
        """Fresh tables holding only the built-in strategies."""
        return cls(extractors=ExtractorRegistry.default(lock_policy))

    @classmethod
    def empty(cls) -> Registries:
        """Tables with nothing registered (matchers still fall back to the default)."""
        return cls(
            hashers=HasherRegistry(),
            matchers=MatcherRegistry(),
            extractors=ExtractorRegistry(),
            repositories=RepositoryRegistry(),
        )

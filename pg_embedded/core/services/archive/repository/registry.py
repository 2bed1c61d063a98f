"""
Repository registry — release URL → repository factory.
"""

from __future__ import annotations

from collections.abc import Callable

from pg_embedded.core.data.constants import MAVEN_URL, THESEUS_POSTGRESQL_BINARIES_URL, ZONKY_URL
from pg_embedded.core.errors import UnsupportedRepository
from pg_embedded.core.services.archive.repository.base import Repository
from pg_embedded.core.services.archive.repository.github import GitHub
from pg_embedded.core.services.archive.repository.maven import Maven
from pg_embedded.core.services.archive.repository.zonky import Zonky
from pg_embedded.core.services.archive.strategy import StrategyTable, url_prefix

# Called as factory(url, client=..., registries=...)
RepositoryFactory = Callable[..., Repository]


class RepositoryRegistry(StrategyTable[RepositoryFactory]):
    not_found = UnsupportedRepository

    @classmethod
    def default(cls) -> RepositoryRegistry:
        registry = cls()
        registry.register(url_prefix(THESEUS_POSTGRESQL_BINARIES_URL), GitHub)
        registry.register(url_prefix(ZONKY_URL), Zonky)
        registry.register(url_prefix(MAVEN_URL), Maven)
        return registry

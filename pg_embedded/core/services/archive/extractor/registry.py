"""
Extractor registry — repository URL → extractor.
"""

from __future__ import annotations

from pg_embedded.core.data.constants import THESEUS_POSTGRESQL_BINARIES_URL, ZONKY_URL
from pg_embedded.core.errors import UnsupportedExtractor
from pg_embedded.core.persistence.install_lock import DEFAULT_LOCK_POLICY, LockPolicy
from pg_embedded.core.services.archive.extractor.base import Extractor
from pg_embedded.core.services.archive.extractor.tar import TarGzExtractor
from pg_embedded.core.services.archive.extractor.zip import ZipTarXzExtractor
from pg_embedded.core.services.archive.strategy import StrategyTable, url_prefix


class ExtractorRegistry(StrategyTable[Extractor]):
    not_found = UnsupportedExtractor

    @classmethod
    def default(cls, policy: LockPolicy = DEFAULT_LOCK_POLICY) -> ExtractorRegistry:
        registry = cls()
        registry.register(url_prefix(THESEUS_POSTGRESQL_BINARIES_URL), TarGzExtractor(policy))
        registry.register(url_prefix(ZONKY_URL), ZipTarXzExtractor(policy))
        return registry

"""
Repository contract — where PostgreSQL builds are published.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pg_embedded.core.errors import ArchiveHashMismatch, AssetHashNotFound
from pg_embedded.core.models.archive import Archive
from pg_embedded.core.models.version import Version, VersionRequirement
from pg_embedded.core.services.archive.repository.http import HttpClient

if TYPE_CHECKING:
    from pg_embedded.core.services.archive.registries import Registries

logger = logging.getLogger(__name__)


class Repository(ABC):
    """Resolves version requirements and fetches verified archives.

    Args:
        url: Public URL identifying the repository.
        client: HTTP transport, a fresh HttpClient by default.
        registries: Strategy tables for matchers and hashers, the
            process-wide defaults when omitted.
    """

    name: str = "repository"

    def __init__(
        self,
        url: str,
        client: HttpClient | None = None,
        registries: Registries | None = None,
    ):
        self.url = url
        self.client = client or HttpClient()
        self._registries = registries

    @property
    def registries(self) -> Registries:
        if self._registries is None:
            from pg_embedded.core.context import get_registries

            return get_registries()
        return self._registries

    @abstractmethod
    def get_version(self, requirement: VersionRequirement) -> Version:
        """Highest published version matching ``requirement``.

        Raises:
            VersionNotFound: When nothing matches.
        """

    @abstractmethod
    def get_archive(self, requirement: VersionRequirement) -> Archive:
        """Download and verify the archive for the best match."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.url!r})"


def verify_digest(asset: str, archive_hash: str, published: str) -> None:
    """Compare a computed digest with the one found in a published hash file.

    The hash file may hold more than the digest (``<hex>  <file name>``);
    the first run of hex digits of the right length is used.

    Raises:
        AssetHashNotFound: No digest of the expected length in ``published``.
        ArchiveHashMismatch: Digests differ.
    """
    match = re.search(rf"[0-9a-f]{{{len(archive_hash)}}}", published.lower())
    if match is None:
        raise AssetHashNotFound(asset)
    expected = match.group(0)
    if archive_hash != expected:
        raise ArchiveHashMismatch(archive_hash, expected)
    logger.debug("Verified %s digest of %s", archive_hash[:12], asset)

"""
Archive operations — resolve, fetch and extract by release URL.

The entry points the lifecycle manager and the CLI use. Each picks its
strategies from a ``Registries`` bundle (the process default unless one
is passed in).

    version = get_version(THESEUS_POSTGRESQL_BINARIES_URL, VersionRequirement.parse("16"))
    archive = get_archive(THESEUS_POSTGRESQL_BINARIES_URL, VersionRequirement.exact(version))
    extract(THESEUS_POSTGRESQL_BINARIES_URL, archive.data, Path("~/.theseus/postgresql/16.4.0"))
"""

from __future__ import annotations

import logging
from pathlib import Path

from pg_embedded.core.context import get_registries
from pg_embedded.core.models.archive import Archive
from pg_embedded.core.models.version import Version, VersionRequirement
from pg_embedded.core.services.archive.extractor.directories import ExtractDirectories
from pg_embedded.core.services.archive.registries import Registries
from pg_embedded.core.services.archive.repository.base import Repository
from pg_embedded.core.services.archive.repository.http import HttpClient

logger = logging.getLogger(__name__)


def get_repository(
    url: str,
    registries: Registries | None = None,
    client: HttpClient | None = None,
) -> Repository:
    """Instantiate the repository registered for ``url``.

    Raises:
        UnsupportedRepository: When no registered predicate accepts ``url``.
    """
    registries = registries or get_registries()
    factory = registries.repositories.get(url)
    return factory(url, client=client, registries=registries)


def get_version(
    url: str,
    requirement: VersionRequirement,
    registries: Registries | None = None,
    client: HttpClient | None = None,
) -> Version:
    """Highest version published at ``url`` that satisfies ``requirement``."""
    repository = get_repository(url, registries, client)
    version = repository.get_version(requirement)
    logger.debug("Resolved %s to %s via %s", requirement, version, repository.name)
    return version


def get_archive(
    url: str,
    requirement: VersionRequirement,
    registries: Registries | None = None,
    client: HttpClient | None = None,
) -> Archive:
    """Download and verify the archive for the best match of ``requirement``."""
    repository = get_repository(url, registries, client)
    archive = repository.get_archive(requirement)
    logger.info("Downloaded %s (%d bytes) from %s", archive.name, archive.size, repository.name)
    return archive


def extract(
    url: str,
    data: bytes,
    out_dir: Path,
    registries: Registries | None = None,
) -> list[Path]:
    """Install archive bytes into ``out_dir`` with the extractor registered for ``url``.

    Returns:
        Files written, or an empty list when ``out_dir`` was already installed.

    Raises:
        UnsupportedExtractor: When no registered predicate accepts ``url``.
    """
    registries = registries or get_registries()
    extractor = registries.extractors.get(url)
    files = extractor.extract(data, ExtractDirectories.single(out_dir))
    logger.debug("Extracted %d files to %s", len(files), out_dir)
    return files

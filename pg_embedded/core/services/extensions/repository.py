"""
Extension repositories — namespaces that publish installable extensions.

Every built-in namespace publishes per-platform bundles as GitHub release
assets. portal-corp and tensor-chord ship one zip extension each and differ
only in URL; steampipe ships a gzip tarball per plugin, one repository per
plugin.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

from pg_embedded.core.data.constants import STEAMPIPE_PLUGIN_URL, STEAMPIPE_PLUGINS
from pg_embedded.core.errors import ExtensionNotFound
from pg_embedded.core.models.archive import Archive
from pg_embedded.core.models.extension import AvailableExtension
from pg_embedded.core.models.version import VersionRequirement
from pg_embedded.core.services.archive.extractor.directories import ExtractDirectories
from pg_embedded.core.services.archive.extractor.tar import tar_gz_extract
from pg_embedded.core.services.archive.extractor.zip import zip_extract
from pg_embedded.core.services.archive.matcher import Matcher
from pg_embedded.core.services.archive.registries import Registries
from pg_embedded.core.services.archive.repository.github import GitHub
from pg_embedded.core.services.archive.repository.http import HttpClient
from pg_embedded.core.services.extensions.matcher import steampipe_matcher, zip_matcher

logger = logging.getLogger(__name__)

PORTAL_CORP_URL = "https://github.com/portalcorp/pgvector_compiled"
TENSOR_CHORD_URL = "https://github.com/tensorchord/pgvecto.rs"

LIBRARY_PATTERN = re.compile(r"\.(dll|dylib|so)$")
EXTENSION_PATTERN = re.compile(r"\.(control|sql)$")


def extension_directories(library_dir: Path, extension_dir: Path) -> ExtractDirectories:
    """Shared libraries to ``library_dir``, control and SQL scripts to ``extension_dir``."""
    return ExtractDirectories([
        (LIBRARY_PATTERN, library_dir),
        (EXTENSION_PATTERN, extension_dir),
    ])


class ExtensionRepository(ABC):
    """A namespace of installable extensions."""

    name: str = "extensions"

    def __init__(self, client: HttpClient | None = None, registries: Registries | None = None):
        self.client = client
        self.registries = registries

    @abstractmethod
    def get_available_extensions(self) -> list[AvailableExtension]:
        """Extensions this namespace offers."""

    @abstractmethod
    def get_archive(self, postgresql_version: str, name: str, requirement: VersionRequirement) -> Archive:
        """Download the extension bundle for ``postgresql_version`` (e.g. ``16.4``)."""

    @abstractmethod
    def install(self, name: str, library_dir: Path, extension_dir: Path, archive: Archive) -> list[Path]:
        """Unpack ``archive`` into the installation; returns the files written."""


class GitHubExtensionRepository(ExtensionRepository):
    """Zip bundles attached to GitHub releases."""

    url: str = ""
    description: str = ""
    extension: str = ""
    matcher: Matcher = staticmethod(zip_matcher)

    def get_available_extensions(self) -> list[AvailableExtension]:
        return [AvailableExtension(namespace=self.name, name=self.extension, description=self.description)]

    def get_archive(self, postgresql_version: str, name: str, requirement: VersionRequirement) -> Archive:
        url = f"{self.url}/{name}?postgresql_version={postgresql_version}"
        repository = GitHub(url, self.client, self.registries, matcher=self.matcher)
        archive = repository.get_archive(requirement)
        logger.info("Downloaded %s %s for PostgreSQL %s", name, archive.version, postgresql_version)
        return archive

    def install(self, name: str, library_dir: Path, extension_dir: Path, archive: Archive) -> list[Path]:
        return zip_extract(archive.data, extension_directories(library_dir, extension_dir))


class PortalCorp(GitHubExtensionRepository):
    name = "portal-corp"
    url = PORTAL_CORP_URL
    extension = "pgvector_compiled"
    description = "Precompiled OS packages for pgvector"


class TensorChord(GitHubExtensionRepository):
    name = "tensor-chord"
    url = TENSOR_CHORD_URL
    extension = "pgvecto.rs"
    description = "Scalable, Low-latency and Hybrid-enabled Vector Search"


class Steampipe(GitHubExtensionRepository):
    """Steampipe plugins as PostgreSQL foreign data wrappers.

    Each plugin lives in its own GitHub repository and publishes
    ``steampipe_postgres_<plugin>.pg<major>.<os>_<arch>.tar.gz`` assets.
    """

    name = "steampipe"
    matcher = staticmethod(steampipe_matcher)

    def get_available_extensions(self) -> list[AvailableExtension]:
        return [
            AvailableExtension(namespace=self.name, name=plugin, description=description)
            for plugin, description in STEAMPIPE_PLUGINS.items()
        ]

    def get_archive(self, postgresql_version: str, name: str, requirement: VersionRequirement) -> Archive:
        """Download plugin ``name``.

        Raises:
            ExtensionNotFound: ``name`` is not a known plugin.
        """
        if name not in STEAMPIPE_PLUGINS:
            raise ExtensionNotFound(self.name, name)
        url = f"{STEAMPIPE_PLUGIN_URL.format(name=name)}?postgresql_version={postgresql_version}"
        repository = GitHub(url, self.client, self.registries, matcher=self.matcher)
        archive = repository.get_archive(requirement)
        logger.info("Downloaded steampipe plugin %s %s for PostgreSQL %s", name, archive.version, postgresql_version)
        return archive

    def install(self, name: str, library_dir: Path, extension_dir: Path, archive: Archive) -> list[Path]:
        return tar_gz_extract(archive.data, extension_directories(library_dir, extension_dir))

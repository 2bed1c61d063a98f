"""
Maven repository — versions from ``maven-metadata.xml``, archives as jars.

Every artifact is published with digest siblings (``.jar.sha512``,
``.jar.sha1``, ...); the strongest one with a registered hasher is used.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from pg_embedded.core.data.constants import MAVEN_HASH_PREFERENCE
from pg_embedded.core.errors import AssetHashNotFound, HttpStatusError, InvalidVersion, ParseError, VersionNotFound
from pg_embedded.core.models.archive import Archive
from pg_embedded.core.models.version import Version, VersionRequirement
from pg_embedded.core.services.archive.repository.base import Repository, verify_digest

logger = logging.getLogger(__name__)


def parse_metadata(text: str) -> tuple[str, list[str]]:
    """Return ``(artifactId, versions)`` from a maven-metadata.xml document.

    Raises:
        ParseError: Malformed XML or no artifactId.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ParseError(f"Invalid maven metadata: {e}") from e

    artifact = (root.findtext("artifactId") or "").strip()
    if not artifact:
        raise ParseError("Maven metadata has no artifactId")
    versions = [
        (element.text or "").strip()
        for element in root.findall("versioning/versions/version")
    ]
    return artifact, versions


class Maven(Repository):
    name = "Maven"

    def __init__(self, url: str, client=None, registries=None):
        super().__init__(url.rstrip("/"), client, registries)

    def get_artifact(self, requirement: VersionRequirement) -> tuple[str, Version]:
        logger.debug("Locating version for requirement %s in %s", requirement, self.url)
        text = self.client.get_text(f"{self.url}/maven-metadata.xml")
        artifact, versions = parse_metadata(text)

        best: Version | None = None
        for value in versions:
            try:
                version = Version.parse(value)
            except InvalidVersion:
                logger.warning("Failed to parse artifact version %s", value)
                continue
            if requirement.matches(version) and (best is None or version > best):
                best = version

        if best is None:
            raise VersionNotFound(str(requirement))
        logger.debug("Version %s found for version requirement %s", best, requirement)
        return artifact, best

    def get_version(self, requirement: VersionRequirement) -> Version:
        _, version = self.get_artifact(requirement)
        return version

    def get_archive(self, requirement: VersionRequirement) -> Archive:
        artifact, version = self.get_artifact(requirement)
        name = f"{artifact}-{version}.jar"
        archive_url = f"{self.url}/{version}/{name}"

        extension, published = self._get_published_hash(name, archive_url)

        logger.debug("Downloading archive %s", archive_url)
        data = self.client.get(archive_url)
        logger.debug("Archive %s downloaded: %d bytes", name, len(data))

        archive_hash = self.registries.hashers.get(extension)(data)
        verify_digest(name, archive_hash, published)
        return Archive(name=name, version=version, data=data)

    def _get_published_hash(self, name: str, archive_url: str) -> tuple[str, str]:
        hashers = self.registries.hashers
        for extension in MAVEN_HASH_PREFERENCE:
            if not hashers.supports(extension):
                continue
            hash_url = f"{archive_url}.{extension}"
            try:
                logger.debug("Downloading archive hash %s", hash_url)
                return extension, self.client.get_text(hash_url)
            except HttpStatusError as e:
                if e.status != 404:
                    raise
                logger.debug("No %s hash published for %s", extension, name)
        raise AssetHashNotFound(name)

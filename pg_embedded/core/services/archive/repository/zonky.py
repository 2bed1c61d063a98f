"""
Zonky repository — zonky's embedded PostgreSQL builds on Maven Central.

The public URL names the GitHub project; the artifacts themselves live in
one Maven directory per OS and architecture.
"""

from __future__ import annotations

from pg_embedded.core.data.constants import ZONKY_MAVEN_URL
from pg_embedded.core.models.archive import Archive
from pg_embedded.core.models.version import Version, VersionRequirement
from pg_embedded.core.services.archive import host
from pg_embedded.core.services.archive.repository.base import Repository
from pg_embedded.core.services.archive.repository.maven import Maven


def maven_url() -> str:
    return f"{ZONKY_MAVEN_URL}-{host.zonky_os()}-{host.zonky_arch()}"


class Zonky(Repository):
    name = "Zonky"

    def __init__(self, url: str, client=None, registries=None):
        super().__init__(url, client, registries)
        self.maven = Maven(maven_url(), self.client, registries)

    def get_version(self, requirement: VersionRequirement) -> Version:
        return self.maven.get_version(requirement)

    def get_archive(self, requirement: VersionRequirement) -> Archive:
        return self.maven.get_archive(requirement)

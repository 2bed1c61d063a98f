"""
GitHub releases repository.

Versions come from release tag names (``16.4.0`` or ``v16.4.0``); the
asset for this host is chosen by the matcher registered for the repository
URL. A sibling asset ``<asset>.<ext>`` with a registered hasher (for example
``...tar.gz.sha256``) is used to verify the download.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from pg_embedded.core.data.constants import GITHUB_API_URL, GITHUB_API_VERSION, GITHUB_PAGE_SIZE
from pg_embedded.core.errors import (
    AssetNotFound,
    InvalidVersion,
    ParseError,
    ReleaseNotFound,
    RepositoryFailure,
    VersionNotFound,
)
from pg_embedded.core.models.archive import Archive
from pg_embedded.core.models.version import Version, VersionRequirement
from pg_embedded.core.services.archive.matcher import Matcher
from pg_embedded.core.services.archive.repository.base import Repository, verify_digest

logger = logging.getLogger(__name__)

# Read once; avoids anonymous API rate limits in CI
GITHUB_TOKEN: str | None = os.environ.get("GITHUB_TOKEN") or None

_LEADING_NON_DIGITS = re.compile(r"^\D+")


def version_from_tag(tag_name: str) -> Version:
    """Parse a release tag, ignoring any prefix before the first digit."""
    return Version.parse(_LEADING_NON_DIGITS.sub("", tag_name))


def releases_url(url: str) -> str:
    """Map ``https://github.com/{owner}/{repo}[/...]`` to its releases API URL.

    Raises:
        RepositoryFailure: When the URL has no owner or repo.
    """
    parts = [part for part in urlsplit(url).path.split("/") if part]
    if not parts:
        raise RepositoryFailure(f"No owner in URL {url}")
    if len(parts) < 2:
        raise RepositoryFailure(f"No repo in URL {url}")
    owner, repo = parts[0], parts[1]
    return f"{GITHUB_API_URL}/repos/{owner}/{repo}/releases"


class GitHubAsset(BaseModel):
    """A release asset; only the fields used here are read."""

    name: str
    browser_download_url: str


class GitHubRelease(BaseModel):
    tag_name: str
    assets: list[GitHubAsset] = Field(default_factory=list)


_RELEASES = TypeAdapter(list[GitHubRelease])


def parse_releases(data: Any, url: str) -> list[GitHubRelease]:
    """Validate one page of the releases API.

    Raises:
        ParseError: When the page is not a list of release objects.
    """
    try:
        return _RELEASES.validate_python(data)
    except ValidationError as e:
        raise ParseError(f"Unexpected releases document from {url}: {e}") from e


class GitHub(Repository):
    name = "GitHub"

    def __init__(self, url: str, client=None, registries=None, matcher: Matcher | None = None):
        super().__init__(url, client, registries)
        self.releases_url = releases_url(url)
        self.matcher = matcher

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if GITHUB_TOKEN:
            headers["Authorization"] = f"Bearer {GITHUB_TOKEN}"
        return headers

    # ── Resolution ──────────────────────────────────────────────

    def get_release(self, requirement: VersionRequirement) -> tuple[Version, GitHubRelease]:
        """Highest release whose tag satisfies ``requirement``, across all pages.

        Raises:
            ReleaseNotFound: No release carries the exact version asked for.
            VersionNotFound: No release satisfies a floating requirement.
            ParseError: A page is not a list of releases.
        """
        logger.debug("Locating release for version requirement %s in %s", requirement, self.url)
        best: tuple[Version, GitHubRelease] | None = None
        page = 1

        while True:
            page_url = f"{self.releases_url}?page={page}&per_page={GITHUB_PAGE_SIZE}"
            releases = parse_releases(self.client.get_json(page_url, self._headers()), page_url)
            if not releases:
                break

            for release in releases:
                try:
                    version = version_from_tag(release.tag_name)
                except InvalidVersion:
                    logger.warning("Failed to parse release version %s", release.tag_name)
                    continue
                if requirement.matches(version) and (best is None or version > best[0]):
                    best = (version, release)

            page += 1

        if best is None:
            if requirement.exact_version() is not None:
                raise ReleaseNotFound(str(requirement))
            raise VersionNotFound(str(requirement))
        logger.debug("Version %s found for version requirement %s", best[0], requirement)
        return best

    def get_version(self, requirement: VersionRequirement) -> Version:
        version, _ = self.get_release(requirement)
        return version

    # ── Download ────────────────────────────────────────────────

    def get_asset(
        self, version: Version, release: GitHubRelease,
    ) -> tuple[GitHubAsset, GitHubAsset | None, str | None]:
        """The matching asset plus, if published, its hash asset and extension."""
        matcher = self.matcher or self.registries.matchers.get(self.url)

        asset = next((a for a in release.assets if matcher(self.url, a.name, version)), None)
        if asset is None:
            raise AssetNotFound(release.tag_name)

        prefix = f"{asset.name}."
        hashers = self.registries.hashers
        for candidate in release.assets:
            if not candidate.name.startswith(prefix):
                continue
            extension = candidate.name[len(prefix):]
            if hashers.supports(extension):
                return asset, candidate, extension

        return asset, None, None

    def get_archive(self, requirement: VersionRequirement) -> Archive:
        version, release = self.get_release(requirement)
        asset, hash_asset, extension = self.get_asset(version, release)

        logger.debug("Downloading archive %s", asset.browser_download_url)
        data = self.client.get(asset.browser_download_url, self._headers())
        logger.debug("Archive %s downloaded: %d bytes", asset.name, len(data))

        if hash_asset is not None and extension is not None:
            archive_hash = self.registries.hashers.get(extension)(data)
            logger.debug("Downloading archive hash %s", hash_asset.browser_download_url)
            published = self.client.get_text(hash_asset.browser_download_url, self._headers())
            verify_digest(asset.name, archive_hash, published)
        else:
            logger.debug("No hash published for %s, skipping verification", asset.name)

        return Archive(name=asset.name, version=version, data=data)

"""
Tests for repositories — GitHub releases, Maven metadata, zonky, digest
verification and the retrying HTTP transport.
"""

from __future__ import annotations

import hashlib
import http.client
import urllib.error
import urllib.request

import pytest

from conftest import TRIPLE, FakeHttpClient, make_tarball, make_zip, sha256
from pg_embedded.core.data.constants import MAVEN_URL, THESEUS_POSTGRESQL_BINARIES_URL, ZONKY_MAVEN_URL, ZONKY_URL
from pg_embedded.core.errors import (
    ArchiveHashMismatch,
    AssetHashNotFound,
    AssetNotFound,
    HttpStatusError,
    ParseError,
    ReleaseNotFound,
    RepositoryFailure,
    TransportError,
    UnsupportedRepository,
    VersionNotFound,
)
from pg_embedded.core.models.version import Version, VersionRequirement
from pg_embedded.core.reliability.backoff import RetryPolicy
from pg_embedded.core.services.archive import extract, get_archive, get_repository, get_version
from pg_embedded.core.services.archive.repository import GitHub, HttpClient, Maven, Zonky
from pg_embedded.core.services.archive.repository.base import verify_digest
from pg_embedded.core.services.archive.repository.github import releases_url, version_from_tag
from pg_embedded.core.services.archive.repository.maven import parse_metadata

API = "https://api.github.com/repos/theseus-rs/postgresql-binaries/releases"
DOWNLOADS = "https://github.com/theseus-rs/postgresql-binaries/releases/download"

ARCHIVE = make_tarball({"bin/psql": b"psql"})


def asset(tag: str, name: str) -> dict:
    return {"name": name, "browser_download_url": f"{DOWNLOADS}/{tag}/{name}"}


def release(tag: str, triples=(TRIPLE, "aarch64-apple-darwin"), hashed: bool = True) -> dict:
    version = tag.lstrip("v")
    assets = []
    for triple in triples:
        name = f"postgresql-{version}-{triple}.tar.gz"
        assets.append(asset(tag, name))
        if hashed:
            assets.append(asset(tag, f"{name}.sha256"))
    return {"tag_name": tag, "assets": assets}


@pytest.fixture
def github_client(linux_x86_64) -> FakeHttpClient:
    """Three theseus releases; the host build of each is downloadable and hashed."""
    client = FakeHttpClient()
    client.add_releases(API, [release("16.3.0"), release("v16.2.0"), release("15.7.0"), {"tag_name": "latest"}])
    for tag in ("16.3.0", "v16.2.0", "15.7.0"):
        name = f"postgresql-{tag.lstrip('v')}-{TRIPLE}.tar.gz"
        client.responses[f"{DOWNLOADS}/{tag}/{name}"] = ARCHIVE
        client.responses[f"{DOWNLOADS}/{tag}/{name}.sha256"] = f"{sha256(ARCHIVE)}  {name}\n"
    return client


# ── GitHub ──────────────────────────────────────────────────────


class TestGitHubUrls:
    def test_releases_url(self):
        assert releases_url(THESEUS_POSTGRESQL_BINARIES_URL) == API

    def test_extra_path_ignored(self):
        assert releases_url("https://github.com/portalcorp/pgvector_compiled/pgvector_compiled?x=1") == (
            "https://api.github.com/repos/portalcorp/pgvector_compiled/releases"
        )

    @pytest.mark.parametrize("url, message", [("https://github.com/", "No owner"), ("https://github.com/theseus-rs", "No repo")])
    def test_invalid(self, url, message):
        with pytest.raises(RepositoryFailure, match=message):
            GitHub(url)

    @pytest.mark.parametrize("tag", ["16.3.0", "v16.3.0", "release-16.3.0"])
    def test_tag_prefix_ignored(self, tag):
        assert version_from_tag(tag) == Version(16, 3, 0)


class TestGitHubResolve:
    def test_highest_match(self, github_client, registries):
        repository = GitHub(THESEUS_POSTGRESQL_BINARIES_URL, github_client, registries)
        assert repository.get_version(VersionRequirement.parse("16")) == Version(16, 3, 0)
        assert repository.get_version(VersionRequirement.any()) == Version(16, 3, 0)

    def test_v_prefixed_tag(self, github_client, registries):
        repository = GitHub(THESEUS_POSTGRESQL_BINARIES_URL, github_client, registries)
        assert repository.get_version(VersionRequirement.parse("=16.2.0")) == Version(16, 2, 0)

    def test_exact_version_without_release(self, github_client, registries):
        repository = GitHub(THESEUS_POSTGRESQL_BINARIES_URL, github_client, registries)
        with pytest.raises(ReleaseNotFound, match="release not found for '=17.0.0'"):
            repository.get_version(VersionRequirement.parse("=17.0.0"))

    def test_floating_version_not_found(self, github_client, registries):
        repository = GitHub(THESEUS_POSTGRESQL_BINARIES_URL, github_client, registries)
        with pytest.raises(VersionNotFound, match=">=17") as exc:
            repository.get_version(VersionRequirement.parse(">=17"))
        assert not isinstance(exc.value, ReleaseNotFound)

    def test_pages_until_empty(self, linux_x86_64, registries):
        client = FakeHttpClient({
            f"{API}?page=1&per_page=100": [release("15.7.0")],
            f"{API}?page=2&per_page=100": [release("16.3.0")],
            f"{API}?page=3&per_page=100": [],
        })
        repository = GitHub(THESEUS_POSTGRESQL_BINARIES_URL, client, registries)
        assert repository.get_version(VersionRequirement.any()) == Version(16, 3, 0)
        assert client.requests[-1].endswith("page=3&per_page=100")

    def test_not_a_list(self, registries):
        client = FakeHttpClient({f"{API}?page=1&per_page=100": {"message": "rate limited"}})
        with pytest.raises(ParseError):
            GitHub(THESEUS_POSTGRESQL_BINARIES_URL, client, registries).get_version(VersionRequirement.any())

    @pytest.mark.parametrize("page", [
        ["16.3.0"],
        [{"name": "no tag"}],
        [{"tag_name": "16.3.0", "assets": "none"}],
    ])
    def test_malformed_release(self, page, registries):
        client = FakeHttpClient({f"{API}?page=1&per_page=100": page})
        with pytest.raises(ParseError, match="releases"):
            GitHub(THESEUS_POSTGRESQL_BINARIES_URL, client, registries).get_version(VersionRequirement.any())


class TestGitHubArchive:
    def test_host_asset_verified(self, github_client, registries):
        archive = GitHub(THESEUS_POSTGRESQL_BINARIES_URL, github_client, registries).get_archive(
            VersionRequirement.parse("=16.3.0"),
        )
        assert archive.name == f"postgresql-16.3.0-{TRIPLE}.tar.gz"
        assert archive.version == Version(16, 3, 0)
        assert archive.data == ARCHIVE
        assert any(url.endswith(".sha256") for url in github_client.requests)

    def test_hash_mismatch(self, github_client, registries):
        name = f"postgresql-16.3.0-{TRIPLE}.tar.gz"
        github_client.responses[f"{DOWNLOADS}/16.3.0/{name}"] = ARCHIVE + b"\x00"
        with pytest.raises(ArchiveHashMismatch) as exc:
            GitHub(THESEUS_POSTGRESQL_BINARIES_URL, github_client, registries).get_archive(
                VersionRequirement.parse("=16.3.0"),
            )
        assert exc.value.hash == sha256(ARCHIVE)
        assert exc.value.archive_hash == sha256(ARCHIVE + b"\x00")
        assert sha256(ARCHIVE) in str(exc.value)

    def test_unhashed_asset_accepted(self, linux_x86_64, registries):
        client = FakeHttpClient()
        client.add_releases(API, [release("16.3.0", hashed=False)])
        name = f"postgresql-16.3.0-{TRIPLE}.tar.gz"
        client.responses[f"{DOWNLOADS}/16.3.0/{name}"] = ARCHIVE
        archive = GitHub(THESEUS_POSTGRESQL_BINARIES_URL, client, registries).get_archive(VersionRequirement.any())
        assert archive.data == ARCHIVE

    def test_asset_without_download_url(self, linux_x86_64, registries):
        client = FakeHttpClient()
        client.add_releases(API, [{"tag_name": "16.3.0", "assets": [{"name": f"postgresql-16.3.0-{TRIPLE}.tar.gz"}]}])
        with pytest.raises(ParseError):
            GitHub(THESEUS_POSTGRESQL_BINARIES_URL, client, registries).get_archive(VersionRequirement.any())

    def test_no_asset_for_host(self, linux_x86_64, registries):
        client = FakeHttpClient()
        client.add_releases(API, [release("16.3.0", triples=("aarch64-apple-darwin",))])
        with pytest.raises(AssetNotFound, match="16.3.0"):
            GitHub(THESEUS_POSTGRESQL_BINARIES_URL, client, registries).get_archive(VersionRequirement.any())

    def test_explicit_matcher(self, linux_x86_64, registries):
        client = FakeHttpClient()
        client.add_releases(API, [release("16.3.0", hashed=False)])
        client.responses[f"{DOWNLOADS}/16.3.0/postgresql-16.3.0-aarch64-apple-darwin.tar.gz"] = b"mac"

        def mac_only(url, name, version):
            return "apple-darwin" in name

        repository = GitHub(THESEUS_POSTGRESQL_BINARIES_URL, client, registries, matcher=mac_only)
        assert repository.get_archive(VersionRequirement.any()).data == b"mac"


# ── Maven / zonky ───────────────────────────────────────────────


ZONKY_BASE = f"{ZONKY_MAVEN_URL}-linux-amd64"
ARTIFACT = "embedded-postgres-binaries-linux-amd64"
METADATA = f"""<?xml version="1.0" encoding="UTF-8"?>
<metadata>
  <groupId>io.zonky.test.postgres</groupId>
  <artifactId>{ARTIFACT}</artifactId>
  <versioning>
    <latest>16.2.0</latest>
    <versions>
      <version>15.6.0</version>
      <version>16.1.0</version>
      <version>16.2.0</version>
      <version>not-a-version</version>
    </versions>
  </versioning>
</metadata>
"""
JAR = make_zip({"postgres-linux-x86_64.txz": make_tarball({"bin/postgres": b"pg"}, top=".", compression="xz")})


@pytest.fixture
def maven_client() -> FakeHttpClient:
    jar_url = f"{ZONKY_BASE}/16.2.0/{ARTIFACT}-16.2.0.jar"
    return FakeHttpClient({
        f"{ZONKY_BASE}/maven-metadata.xml": METADATA,
        jar_url: JAR,
        f"{jar_url}.sha512": hashlib.sha512(JAR).hexdigest(),
        f"{jar_url}.sha1": hashlib.sha1(JAR).hexdigest(),
    })


class TestParseMetadata:
    def test_parse(self):
        artifact, versions = parse_metadata(METADATA)
        assert artifact == ARTIFACT
        assert versions == ["15.6.0", "16.1.0", "16.2.0", "not-a-version"]

    def test_malformed(self):
        with pytest.raises(ParseError):
            parse_metadata("<metadata><artifactId>")

    def test_no_artifact(self):
        with pytest.raises(ParseError, match="artifactId"):
            parse_metadata("<metadata/>")


class TestMaven:
    def test_resolve(self, maven_client, registries):
        repository = Maven(ZONKY_BASE, maven_client, registries)
        assert repository.get_version(VersionRequirement.parse("16")) == Version(16, 2, 0)
        assert repository.get_version(VersionRequirement.parse("<16")) == Version(15, 6, 0)

    def test_not_found(self, maven_client, registries):
        with pytest.raises(VersionNotFound):
            Maven(ZONKY_BASE, maven_client, registries).get_version(VersionRequirement.parse(">=17"))

    def test_archive_end_to_end(self, maven_client, registries):
        archive = Maven(ZONKY_BASE + "/", maven_client, registries).get_archive(VersionRequirement.parse("=16.2.0"))
        assert archive.version == Version(16, 2, 0)
        assert archive.name == f"{ARTIFACT}-16.2.0.jar"
        assert archive.data == JAR
        assert archive.size > 0
        assert maven_client.requests[-1].endswith(".jar")
        assert not any(url.endswith(".sha1") for url in maven_client.requests)

    def test_weaker_hash_when_strongest_missing(self, maven_client, registries):
        del maven_client.responses[f"{ZONKY_BASE}/16.2.0/{ARTIFACT}-16.2.0.jar.sha512"]
        archive = Maven(ZONKY_BASE, maven_client, registries).get_archive(VersionRequirement.parse("=16.2.0"))
        assert archive.data == JAR
        assert any(url.endswith(".sha1") for url in maven_client.requests)

    def test_no_hash_published(self, registries):
        client = FakeHttpClient({
            f"{ZONKY_BASE}/maven-metadata.xml": METADATA,
            f"{ZONKY_BASE}/16.2.0/{ARTIFACT}-16.2.0.jar": JAR,
        })
        with pytest.raises(AssetHashNotFound, match=f"{ARTIFACT}-16.2.0.jar"):
            Maven(ZONKY_BASE, client, registries).get_archive(VersionRequirement.parse("=16.2.0"))

    def test_hash_mismatch(self, maven_client, registries):
        maven_client.responses[f"{ZONKY_BASE}/16.2.0/{ARTIFACT}-16.2.0.jar"] = JAR + b"tampered"
        with pytest.raises(ArchiveHashMismatch):
            Maven(ZONKY_BASE, maven_client, registries).get_archive(VersionRequirement.parse("=16.2.0"))


class TestZonky:
    def test_maven_url_for_host(self, linux_x86_64, maven_client, registries):
        repository = Zonky(ZONKY_URL, maven_client, registries)
        assert repository.maven.url == ZONKY_BASE
        assert repository.get_version(VersionRequirement.parse("=16.2.0")) == Version(16, 2, 0)

    def test_download_and_extract(self, linux_x86_64, maven_client, registries, tmp_path):
        archive = get_archive(ZONKY_URL, VersionRequirement.parse("=16.2.0"), registries, maven_client)
        out_dir = tmp_path / "16.2.0"
        files = extract(ZONKY_URL, archive.data, out_dir, registries)
        assert files == [out_dir / "bin" / "postgres"]


# ── Archive operations ──────────────────────────────────────────


class TestArchiveOps:
    def test_repository_by_url(self, registries):
        assert isinstance(get_repository(THESEUS_POSTGRESQL_BINARIES_URL, registries), GitHub)
        assert isinstance(get_repository(f"{MAVEN_URL}/org/example", registries), Maven)

    def test_unsupported_url(self, registries):
        with pytest.raises(UnsupportedRepository, match="https://example.com/pg"):
            get_version("https://example.com/pg", VersionRequirement.any(), registries)

    def test_github_end_to_end(self, github_client, registries, tmp_path):
        version = get_version(THESEUS_POSTGRESQL_BINARIES_URL, VersionRequirement.parse("16"), registries, github_client)
        archive = get_archive(THESEUS_POSTGRESQL_BINARIES_URL, VersionRequirement.exact(version), registries, github_client)
        out_dir = tmp_path / str(version)
        files = extract(THESEUS_POSTGRESQL_BINARIES_URL, archive.data, out_dir, registries)
        assert files == [out_dir / "bin" / "psql"]
        assert extract(THESEUS_POSTGRESQL_BINARIES_URL, archive.data, out_dir, registries) == []


# ── Digest verification ─────────────────────────────────────────


class TestVerifyDigest:
    DIGEST = sha256(b"archive")

    def test_bare_digest(self):
        verify_digest("a.tar.gz", self.DIGEST, self.DIGEST)

    def test_digest_with_file_name_and_uppercase(self):
        verify_digest("a.tar.gz", self.DIGEST, f"{self.DIGEST.upper()}  a.tar.gz\n")

    def test_mismatch(self):
        other = sha256(b"other")
        with pytest.raises(ArchiveHashMismatch) as exc:
            verify_digest("a.tar.gz", self.DIGEST, other)
        assert self.DIGEST in str(exc.value) and other in str(exc.value)

    def test_no_digest_in_file(self):
        with pytest.raises(AssetHashNotFound, match="a.tar.gz"):
            verify_digest("a.tar.gz", self.DIGEST, "404: Not Found")


# ── HTTP transport ──────────────────────────────────────────────


class FakeResponse:
    def __init__(self, body: bytes):
        self.body = body

    def read(self) -> bytes:
        return self.body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class TruncatedResponse(FakeResponse):
    """Connection dropped part way through the body."""

    def read(self) -> bytes:
        raise http.client.IncompleteRead(self.body[:3], len(self.body) - 3)


def http_error(url: str, code: int, reason: str) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(url, code, reason, hdrs=None, fp=None)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def client(sleeps) -> HttpClient:
    return HttpClient(retry=RetryPolicy(max_retries=3, base_delay=0.5, sleep=sleeps.append))


def script(monkeypatch, outcomes: list) -> list[urllib.request.Request]:
    """Make urlopen play ``outcomes`` in order: bytes become bodies, exceptions are raised."""
    requests: list[urllib.request.Request] = []
    remaining = list(outcomes)

    def urlopen(request, timeout=None):
        requests.append(request)
        outcome = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, FakeResponse):
            return outcome
        return FakeResponse(outcome)

    monkeypatch.setattr(urllib.request, "urlopen", urlopen)
    return requests


class TestHttpClient:
    URL = "https://example.com/file"

    def test_success(self, monkeypatch, client, sleeps):
        requests = script(monkeypatch, [b"body"])
        assert client.get(self.URL) == b"body"
        assert sleeps == []
        assert requests[0].get_header("User-agent").startswith("postgresql-embedded/")

    def test_extra_headers(self, monkeypatch, client):
        requests = script(monkeypatch, [b"{}"])
        client.get(self.URL, {"Accept": "application/json"})
        assert requests[0].get_header("Accept") == "application/json"

    def test_transient_status_retried(self, monkeypatch, client, sleeps):
        requests = script(monkeypatch, [http_error(self.URL, 503, "Unavailable"), http_error(self.URL, 429, "Slow down"), b"ok"])
        assert client.get(self.URL) == b"ok"
        assert len(requests) == 3
        assert len(sleeps) == 2
        assert sleeps[1] >= sleeps[0] * 1.0

    def test_permanent_status_not_retried(self, monkeypatch, client, sleeps):
        requests = script(monkeypatch, [http_error(self.URL, 404, "Not Found")])
        with pytest.raises(HttpStatusError) as exc:
            client.get(self.URL)
        assert exc.value.status == 404
        assert len(requests) == 1
        assert sleeps == []

    def test_retry_budget_exhausted(self, monkeypatch, client, sleeps):
        requests = script(monkeypatch, [http_error(self.URL, 502, "Bad Gateway")])
        with pytest.raises(HttpStatusError) as exc:
            client.get(self.URL)
        assert exc.value.status == 502
        assert len(requests) == 4
        assert len(sleeps) == 3

    def test_connection_failure(self, monkeypatch, client, sleeps):
        script(monkeypatch, [urllib.error.URLError("connection refused")])
        with pytest.raises(TransportError, match="connection refused") as exc:
            client.get(self.URL)
        assert not isinstance(exc.value, HttpStatusError)
        assert len(sleeps) == 3

    def test_truncated_body_retried(self, monkeypatch, client, sleeps):
        requests = script(monkeypatch, [TruncatedResponse(b"partial body"), b"full body"])
        assert client.get(self.URL) == b"full body"
        assert len(requests) == 2
        assert len(sleeps) == 1

    def test_truncated_body_exhausts_budget(self, monkeypatch, client, sleeps):
        requests = script(monkeypatch, [TruncatedResponse(b"partial body")])
        with pytest.raises(TransportError, match="IncompleteRead") as exc:
            client.get(self.URL)
        assert isinstance(exc.value.__cause__, http.client.IncompleteRead)
        assert len(requests) == 4

    def test_json(self, monkeypatch, client):
        script(monkeypatch, [b'[{"tag_name": "16.3.0"}]'])
        assert client.get_json(self.URL) == [{"tag_name": "16.3.0"}]

    def test_invalid_json(self, monkeypatch, client):
        script(monkeypatch, [b"<html>"])
        with pytest.raises(ParseError):
            client.get_json(self.URL)


class TestRetryPolicy:
    def test_exponential_with_jitter(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=30.0)
        assert 1.0 <= policy.delay(1) <= 1.3
        assert 4.0 <= policy.delay(3) <= 5.2

    def test_capped(self):
        policy = RetryPolicy(base_delay=10.0, max_delay=15.0)
        assert 15.0 <= policy.delay(5) <= 19.5

    def test_wait_uses_sleep(self):
        slept: list[float] = []
        RetryPolicy(base_delay=0.1, sleep=slept.append).wait(1, "503")
        assert len(slept) == 1
        assert 0.1 <= slept[0] <= 0.13

"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import hashlib
import io
import json
import stat
import tarfile
import textwrap
import zipfile
from pathlib import Path

import pytest

from pg_embedded.core.context import set_registries
from pg_embedded.core.errors import HttpStatusError
from pg_embedded.core.persistence.install_lock import LockPolicy
from pg_embedded.core.reliability.backoff import NO_RETRY
from pg_embedded.core.services.archive import host
from pg_embedded.core.services.archive.registries import Registries
from pg_embedded.core.services.archive.repository.http import HttpClient

FAST_LOCK = LockPolicy(max_attempts=200, retry_interval=0.05, stale_after=300.0)

TRIPLE = "x86_64-unknown-linux-gnu"


# ── Fake transport ──────────────────────────────────────────────


class FakeHttpClient(HttpClient):
    """Serves canned bodies by exact URL; anything else is a 404."""

    def __init__(self, responses: dict[str, object] | None = None):
        super().__init__(retry=NO_RETRY)
        self.responses: dict[str, object] = dict(responses or {})
        self.requests: list[str] = []

    def get(self, url: str, headers: dict[str, str] | None = None) -> bytes:
        self.requests.append(url)
        if url not in self.responses:
            raise HttpStatusError(url, 404, "Not Found")
        body = self.responses[url]
        if isinstance(body, bytes):
            return body
        if isinstance(body, str):
            return body.encode("utf-8")
        return json.dumps(body).encode("utf-8")

    def add_releases(self, api_url: str, releases: list[dict]) -> None:
        """One page of releases followed by the terminating empty page."""
        self.responses[f"{api_url}?page=1&per_page=100"] = releases
        self.responses[f"{api_url}?page=2&per_page=100"] = []


# ── Archive builders ────────────────────────────────────────────


def _add_tar_member(archive: tarfile.TarFile, name: str, content: bytes, mode: int = 0o644) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(content)
    info.mode = mode
    archive.addfile(info, io.BytesIO(content))


def make_tarball(members: dict[str, bytes], top: str = f"postgresql-16.3.0-{TRIPLE}", compression: str = "gz") -> bytes:
    """Tarball with every member under the directory ``top``."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode=f"w:{compression}") as archive:
        root = tarfile.TarInfo(top)
        root.type = tarfile.DIRTYPE
        root.mode = 0o755
        archive.addfile(root)
        for name, content in members.items():
            mode = 0o755 if name.startswith("bin/") else 0o644
            _add_tar_member(archive, f"{top}/{name}", content, mode)
    return buffer.getvalue()


def make_zip(members: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in members.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


POSTGRESQL_FILES = {
    "bin/initdb": b"#!/bin/sh\n",
    "bin/pg_ctl": b"#!/bin/sh\n",
    "lib/libpq.so": b"\x7fELF",
    "share/postgresql.conf.sample": b"# sample\n",
}


# ── Stub PostgreSQL ─────────────────────────────────────────────

# Shell-script stand-ins for the utilities; every call is appended to bin/calls.log
STUBS = {
    "initdb": """\
        #!/bin/sh
        echo "initdb $*" >> "$(dirname "$0")/calls.log"
        while [ $# -gt 0 ]; do
          case "$1" in
            -D) shift; mkdir -p "$1"; echo "# stub" > "$1/postgresql.conf" ;;
          esac
          shift
        done
    """,
    "pg_ctl": """\
        #!/bin/sh
        echo "pg_ctl $*" >> "$(dirname "$0")/calls.log"
        [ -f "$(dirname "$0")/fail" ] && { echo "could not start server" >&2; exit 1; }
        mode="$1"; shift
        while [ $# -gt 0 ]; do
          case "$1" in
            -D) shift; data="$1" ;;
          esac
          shift
        done
        case "$mode" in
          start) echo $$ > "$data/postmaster.pid" ;;
          stop) rm -f "$data/postmaster.pid" ;;
        esac
    """,
    "psql": """\
        #!/bin/sh
        echo "psql PGPASSWORD=$PGPASSWORD $*" >> "$(dirname "$0")/calls.log"
        case "$*" in
          *"datname='exists'"*) echo 1 ;;
          *"broken"*) echo "syntax error" >&2; exit 2 ;;
        esac
    """,
    "postgres": """\
        #!/bin/sh
        echo "postgres (PostgreSQL) 16.3"
    """,
}


def install_stubs(bin_dir: Path) -> None:
    bin_dir.mkdir(parents=True, exist_ok=True)
    for name, body in STUBS.items():
        path = bin_dir / name
        path.write_text(textwrap.dedent(body))
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _reset_default_registries():
    """Never let a test's registrations leak into the next one."""
    yield
    set_registries(None)


@pytest.fixture
def registries() -> Registries:
    """Fresh built-in registries with a fast-polling install lock."""
    return Registries.default(FAST_LOCK)


@pytest.fixture
def linux_x86_64(monkeypatch: pytest.MonkeyPatch) -> str:
    """Pretend to run on x86_64 Linux with glibc; returns the target triple."""
    monkeypatch.setattr(host, "arch", lambda: "x86_64")
    monkeypatch.setattr(host, "os_name", lambda: "linux")
    monkeypatch.setattr(host, "target_triple", lambda: TRIPLE)
    return TRIPLE

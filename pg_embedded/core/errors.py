"""
Error taxonomy — every failure a public operation can raise.

    EmbeddedError
    ├── ArchiveError          resolution, download, verification, extraction
    │   ├── not found:        VersionNotFound, ReleaseNotFound, AssetNotFound, AssetHashNotFound
    │   ├── integrity:        ArchiveHashMismatch
    │   ├── unsupported:      UnsupportedRepository, UnsupportedExtractor,
    │   │                     UnsupportedHasher, UnsupportedNamespace
    │   ├── concurrency:      LockAcquisitionError
    │   └── transport/parse:  TransportError, HttpStatusError, ParseError
    ├── CommandError / CommandTimeoutError    external executables
    ├── LifecycleError        initdb / pg_ctl / psql failures, cause chained
    └── ConfigError           settings files and URLs
"""

from __future__ import annotations


class EmbeddedError(Exception):
    """Base class for all postgresql-embedded errors."""


# ── Archive ─────────────────────────────────────────────────────


class ArchiveError(EmbeddedError):
    """Failure while resolving, fetching, verifying or extracting an archive."""


class InvalidVersion(ArchiveError):
    def __init__(self, value: str, reason: str = ""):
        self.value = value
        detail = f": {reason}" if reason else ""
        super().__init__(f"version '{value}' is invalid{detail}")


class VersionNotFound(ArchiveError):
    kind = "version"

    def __init__(self, requirement: str):
        self.requirement = requirement
        super().__init__(f"{self.kind} not found for '{requirement}'")


class ReleaseNotFound(VersionNotFound):
    """An exact version was asked for and no release carries it."""

    kind = "release"


class AssetNotFound(ArchiveError):
    def __init__(self, release: str = ""):
        self.release = release
        detail = f" for release '{release}'" if release else ""
        super().__init__(f"asset not found{detail}")


class ExtensionNotFound(ArchiveError):
    def __init__(self, namespace: str, name: str):
        self.namespace = namespace
        self.name = name
        super().__init__(f"extension not found: {namespace}:{name}")


class AssetHashNotFound(ArchiveError):
    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"asset hash not found for asset '{asset}'")


class ArchiveHashMismatch(ArchiveError):
    """Computed digest of the downloaded bytes differs from the published one."""

    def __init__(self, archive_hash: str, hash: str):
        self.archive_hash = archive_hash
        self.hash = hash
        super().__init__(
            f"archive hash [{archive_hash}] does not match expected hash [{hash}]"
        )


class RepositoryFailure(ArchiveError):
    """A repository URL or response is structurally unusable."""


class ParseError(ArchiveError):
    """Remote metadata (JSON / XML) could not be parsed."""


class TransportError(ArchiveError):
    """Network failure that survived the retry budget."""


class HttpStatusError(TransportError):
    def __init__(self, url: str, status: int, reason: str = ""):
        self.url = url
        self.status = status
        self.reason = reason
        super().__init__(f"HTTP {status} {reason} for {url}".replace("  ", " "))


class ExtractionError(ArchiveError):
    """An archive could not be unpacked, or a path had nowhere to go."""


class LockAcquisitionError(ArchiveError):
    def __init__(self, lock_file: str, attempts: int):
        self.lock_file = lock_file
        self.attempts = attempts
        super().__init__(f"failed to acquire lock {lock_file} after {attempts} attempts")


class UnsupportedStrategy(ArchiveError):
    """No registered strategy accepts the given key."""

    kind = "strategy"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"unsupported {self.kind} for '{key}'")


class UnsupportedRepository(UnsupportedStrategy):
    kind = "repository"


class UnsupportedExtractor(UnsupportedStrategy):
    kind = "extractor"


class UnsupportedHasher(UnsupportedStrategy):
    kind = "hasher"


class UnsupportedNamespace(UnsupportedStrategy):
    kind = "namespace"


# ── Commands ────────────────────────────────────────────────────


class CommandError(EmbeddedError):
    """External command exited with a non-zero status."""

    def __init__(self, program: str, returncode: int, stdout: str = "", stderr: str = ""):
        self.program = program
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"{program} exited with code {returncode}: "
            f"stdout={stdout.strip()}; stderr={stderr.strip()}"
        )


class CommandTimeoutError(EmbeddedError):
    def __init__(self, program: str, timeout: float):
        self.program = program
        self.timeout = timeout
        super().__init__(f"{program} timed out after {timeout}s")


# ── Lifecycle ───────────────────────────────────────────────────


class LifecycleError(EmbeddedError):
    """Wraps the command failure behind a lifecycle operation."""

    action = "operation"

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"failed to {self.action}: {cause}")


class DatabaseInitializationError(LifecycleError):
    action = "initialize database"


class DatabaseStartError(LifecycleError):
    action = "start database"


class DatabaseStopError(LifecycleError):
    action = "stop database"


class CreateDatabaseError(LifecycleError):
    action = "create database"


class DatabaseExistsError(LifecycleError):
    action = "check database existence"


class DropDatabaseError(LifecycleError):
    action = "drop database"


# ── Configuration ───────────────────────────────────────────────


class ConfigError(EmbeddedError):
    """Raised when settings (file or URL) are invalid or missing."""

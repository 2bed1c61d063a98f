"""
Install lock — cross-process exclusion for archive extraction.

Many processes (parallel test workers, several services on one machine)
may try to install the same PostgreSQL version into the same directory at
once. Coordination happens only through the filesystem:

    1. a lock file created with O_CREAT | O_EXCL beside the destination,
    2. the destination directory itself (present means installed),
    3. an atomic rename from a private temp directory.

A lock file whose mtime is older than ``LockPolicy.stale_after`` is
considered abandoned by a crashed process and removed.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from pg_embedded.core.data.constants import LOCK_FILE_NAME
from pg_embedded.core.errors import ExtractionError, LockAcquisitionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockPolicy:
    """Lock acquisition parameters.

    Args:
        max_attempts: Attempts before giving up with LockAcquisitionError.
        retry_interval: Seconds to sleep between attempts.
        stale_after: Age in seconds after which a lock file is abandoned.
    """

    max_attempts: int = 30
    retry_interval: float = 1.0
    stale_after: float = 300.0


DEFAULT_LOCK_POLICY = LockPolicy()


class InstallLock:
    """Exclusive lock file in ``directory``; usable as a context manager."""

    def __init__(self, directory: Path, policy: LockPolicy = DEFAULT_LOCK_POLICY):
        self.path = directory / LOCK_FILE_NAME
        self.policy = policy
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """Create the lock file, waiting for a concurrent holder if needed.

        Raises:
            LockAcquisitionError: After ``policy.max_attempts`` failed attempts.
        """
        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                if self._remove_if_stale():
                    continue
                logger.debug(
                    "Lock %s held by another process (attempt %d/%d)",
                    self.path, attempt, self.policy.max_attempts,
                )
                if attempt < self.policy.max_attempts:
                    time.sleep(self.policy.retry_interval)
                continue

            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(f"{os.getpid()}\n")
            self._held = True
            logger.debug("Acquired lock %s", self.path)
            return

        raise LockAcquisitionError(str(self.path), self.policy.max_attempts)

    def release(self) -> None:
        if not self._held:
            return
        self.path.unlink(missing_ok=True)
        self._held = False
        logger.debug("Released lock %s", self.path)

    def _remove_if_stale(self) -> bool:
        try:
            age = time.time() - self.path.stat().st_mtime
        except FileNotFoundError:
            # released between our open() and stat()
            return True
        if age <= self.policy.stale_after:
            return False
        logger.warning("Removing stale lock %s (%.0fs old)", self.path, age)
        self.path.unlink(missing_ok=True)
        return True

    def __enter__(self) -> InstallLock:
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()


def extract_atomically(
    out_dir: Path,
    unpack: Callable[[Path], list[Path]],
    policy: LockPolicy = DEFAULT_LOCK_POLICY,
) -> list[Path]:
    """Populate ``out_dir`` exactly once across processes.

    ``unpack`` receives a fresh private directory next to ``out_dir`` and
    returns the files it wrote there. When it succeeds the directory is
    renamed to ``out_dir``.

    Returns:
        The written files re-rooted under ``out_dir``, or an empty list
        when ``out_dir`` already existed (someone else installed it).
    """
    parent = out_dir.parent
    parent.mkdir(parents=True, exist_ok=True)

    with InstallLock(parent, policy):
        if out_dir.exists():
            logger.debug("%s already exists, skipping extraction", out_dir)
            return []

        staging = Path(tempfile.mkdtemp(dir=parent, prefix=".pg_embedded_"))
        logger.debug("Extracting into %s", staging)
        try:
            files = unpack(staging)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        if out_dir.exists():
            logger.debug("%s appeared during extraction, discarding %s", out_dir, staging)
            shutil.rmtree(staging, ignore_errors=True)
            return []

        if os.name == "posix":
            staging.chmod(0o755)  # mkdtemp creates 0700
        try:
            os.rename(staging, out_dir)
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise ExtractionError(f"Cannot move {staging} to {out_dir}: {e}") from e
        logger.debug("Renamed %s to %s", staging, out_dir)

    return [out_dir / path.relative_to(staging) for path in files]

"""
Zip extraction — zonky jars and extension bundles.

Zonky publishes each PostgreSQL build as a Maven ``.jar`` (a zip) holding
one ``.txz`` tarball. Extension bundles are flat zips whose members are
routed by file name (libraries to ``lib/``, control and SQL files to
``share/extension/``).
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path, PurePosixPath

from pg_embedded.core.errors import ExtractionError
from pg_embedded.core.persistence.install_lock import DEFAULT_LOCK_POLICY, LockPolicy, extract_atomically
from pg_embedded.core.services.archive.extractor.base import Extractor
from pg_embedded.core.services.archive.extractor.directories import ExtractDirectories
from pg_embedded.core.services.archive.extractor.tar import untar

logger = logging.getLogger(__name__)

_TARBALL_SUFFIXES = (".txz", ".tar.xz")


def _open_zip(data: bytes) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ExtractionError(f"Invalid zip archive: {e}") from e


def zip_extract(data: bytes, directories: ExtractDirectories) -> list[Path]:
    """Write each zip member, by base name, to the directory its name routes to.

    Members no route accepts are skipped.
    """
    files: list[Path] = []
    extracted_bytes = 0
    with _open_zip(data) as archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            file_name = PurePosixPath(info.filename).name
            target_dir = directories.try_get_path(file_name)
            if target_dir is None:
                logger.debug("Skipping %s (no route)", info.filename)
                continue
            target_dir.mkdir(parents=True, exist_ok=True)
            target = target_dir / file_name
            content = archive.read(info)
            target.write_bytes(content)
            extracted_bytes += len(content)
            files.append(target)

    logger.debug("Extracted %d files totalling %d bytes", len(files), extracted_bytes)
    return files


class ZipTarXzExtractor(Extractor):
    """Zip wrapping a ``.txz`` tarball, installed atomically under the install lock."""

    name = "zip+tar.xz"

    def __init__(self, policy: LockPolicy = DEFAULT_LOCK_POLICY):
        self.policy = policy

    def extract(self, data: bytes, directories: ExtractDirectories) -> list[Path]:
        out_dir = directories.get_path(".")
        return extract_atomically(out_dir, lambda staging: self._unpack(data, staging), self.policy)

    def _unpack(self, data: bytes, staging: Path) -> list[Path]:
        with _open_zip(data) as archive:
            member = next(
                (name for name in archive.namelist() if name.endswith(_TARBALL_SUFFIXES)),
                None,
            )
            if member is None:
                raise ExtractionError("Failed to find archive file")
            logger.debug("Found archive file: %s", member)
            with archive.open(member) as tarball:
                return untar(tarball, "r|xz", staging)

"""
Tar extraction — gzip (theseus, steampipe) and xz (zonky) tarballs.

Archive members share a single top-level directory (``postgresql-16.4.0-
x86_64-unknown-linux-gnu/`` or ``./``); it is stripped so ``bin/``,
``lib/`` and ``share/`` land directly in the installation directory.
Extension bundles are routed per file instead (``tar_gz_extract``).
"""

from __future__ import annotations

import io
import logging
import os
import shutil
import tarfile
from pathlib import Path, PurePosixPath
from typing import IO

from pg_embedded.core.errors import ExtractionError
from pg_embedded.core.persistence.install_lock import DEFAULT_LOCK_POLICY, LockPolicy, extract_atomically
from pg_embedded.core.services.archive.extractor.base import Extractor
from pg_embedded.core.services.archive.extractor.directories import ExtractDirectories

logger = logging.getLogger(__name__)


def strip_first_component(name: str) -> str | None:
    """Member path without its first component; None for the root entry.

    Raises:
        ExtractionError: For absolute paths and ``..`` components.
    """
    if name.startswith("/") or (len(name) > 1 and name[1] == ":"):
        raise ExtractionError(f"Refusing absolute archive path: {name}")
    parts = [part for part in name.replace("\\", "/").split("/")[1:] if part not in ("", ".")]
    if ".." in parts:
        raise ExtractionError(f"Refusing archive path outside destination: {name}")
    if not parts:
        return None
    return "/".join(parts)


def untar(fileobj: IO[bytes], mode: str, destination: Path) -> list[Path]:
    """Stream a tarball into ``destination``, first path component stripped.

    Every member is checked against ``destination`` with symlinks already
    written by the archive resolved, so a chain of links cannot lead out.

    Args:
        fileobj: Compressed tar stream.
        mode: ``tarfile`` stream mode, ``"r|gz"`` or ``"r|xz"``.
        destination: Existing directory to populate.

    Returns:
        Regular files and symlinks written.
    """
    files: list[Path] = []
    extracted_bytes = 0
    root = os.path.realpath(destination)

    with _open_tar(fileobj, mode) as archive:
        try:
            for member in archive:
                relative = strip_first_component(member.name)
                if relative is None:
                    continue
                target = destination / relative
                _check_within(root, target, member.name)

                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                elif member.isfile():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    source = archive.extractfile(member)
                    if source is None:
                        continue
                    with source, open(target, "wb") as out:
                        shutil.copyfileobj(source, out)
                    if os.name == "posix":
                        os.chmod(target, member.mode & 0o777)
                    extracted_bytes += member.size
                    files.append(target)
                elif member.issym():
                    if os.path.isabs(member.linkname):
                        raise ExtractionError(f"Refusing absolute symlink: {member.name}")
                    _check_within(root, target.parent / member.linkname, member.name)
                    target.parent.mkdir(parents=True, exist_ok=True)
                    if target.is_symlink() or target.exists():
                        target.unlink()
                    os.symlink(member.linkname, target)
                    files.append(target)
                elif member.islnk():
                    link_source = strip_first_component(member.linkname)
                    if link_source is None:
                        raise ExtractionError(f"Invalid hard link: {member.name}")
                    _check_within(root, destination / link_source, member.name)
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(destination / link_source, target)
                    files.append(target)
                else:
                    logger.debug("Skipping special archive member %s", member.name)
        except (tarfile.TarError, EOFError) as e:
            raise ExtractionError(f"Corrupt archive: {e}") from e

    logger.debug("Extracted %d files totalling %d bytes", len(files), extracted_bytes)
    return files


def tar_gz_extract(data: bytes, directories: ExtractDirectories) -> list[Path]:
    """Write each regular file of a gzip tarball, by base name, to the directory its name routes to.

    Members no route accepts are skipped, as are links and directories.
    """
    files: list[Path] = []
    extracted_bytes = 0
    with _open_tar(io.BytesIO(data), "r|gz") as archive:
        try:
            for member in archive:
                if not member.isfile():
                    continue
                file_name = PurePosixPath(member.name).name
                target_dir = directories.try_get_path(file_name)
                if target_dir is None:
                    logger.debug("Skipping %s (no route)", member.name)
                    continue
                source = archive.extractfile(member)
                if source is None:
                    continue
                target_dir.mkdir(parents=True, exist_ok=True)
                target = target_dir / file_name
                with source, open(target, "wb") as out:
                    shutil.copyfileobj(source, out)
                extracted_bytes += member.size
                files.append(target)
        except (tarfile.TarError, EOFError) as e:
            raise ExtractionError(f"Corrupt archive: {e}") from e

    logger.debug("Extracted %d files totalling %d bytes", len(files), extracted_bytes)
    return files


def _open_tar(fileobj: IO[bytes], mode: str) -> tarfile.TarFile:
    try:
        return tarfile.open(fileobj=fileobj, mode=mode)
    except (tarfile.TarError, EOFError, OSError) as e:
        raise ExtractionError(f"Cannot open archive: {e}") from e


def _check_within(root: str, target: Path, name: str) -> None:
    # realpath follows links the archive has already created
    resolved = os.path.realpath(target)
    if os.path.commonpath([root, resolved]) != root:
        raise ExtractionError(f"Refusing archive path outside destination: {name}")


class TarGzExtractor(Extractor):
    """Gzip tarball, installed atomically under the install lock."""

    name = "tar.gz"

    def __init__(self, policy: LockPolicy = DEFAULT_LOCK_POLICY):
        self.policy = policy

    def extract(self, data: bytes, directories: ExtractDirectories) -> list[Path]:
        out_dir = directories.get_path(".")
        return extract_atomically(
            out_dir,
            lambda staging: untar(io.BytesIO(data), "r|gz", staging),
            self.policy,
        )

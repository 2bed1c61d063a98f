"""Filesystem persistence — install lock and extensions manifest."""

from pg_embedded.core.persistence.extensions_file import load_installed, manifest_path, save_installed
from pg_embedded.core.persistence.install_lock import (
    DEFAULT_LOCK_POLICY,
    InstallLock,
    LockPolicy,
    extract_atomically,
)

__all__ = [
    "DEFAULT_LOCK_POLICY",
    "InstallLock",
    "LockPolicy",
    "extract_atomically",
    "load_installed",
    "manifest_path",
    "save_installed",
]

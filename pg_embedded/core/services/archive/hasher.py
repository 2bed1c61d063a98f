"""
Hasher registry — digest functions keyed by hash file extension.

A release asset ``foo.tar.gz`` may be published with a sibling
``foo.tar.gz.sha256``; the extension picks the digest function.
"""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Callable

from pg_embedded.core.errors import UnsupportedHasher

HashFn = Callable[[bytes], str]


def _hashlib(name: str) -> HashFn:
    def digest(data: bytes) -> str:
        return hashlib.new(name, data).hexdigest()

    digest.__name__ = name.replace("-", "_")
    return digest


# hashlib names for the built-in extensions
BUILTIN_HASHERS: dict[str, str] = {
    "sha256": "sha256",
    "sha512": "sha512",
    "sha3-256": "sha3_256",
    "sha3-512": "sha3_512",
    "blake2s": "blake2s",
    "blake2b": "blake2b",
    "sha1": "sha1",
    "md5": "md5",
}


class HasherRegistry:
    """Extension → digest function; re-registering an extension replaces it."""

    def __init__(self) -> None:
        self._hashers: dict[str, HashFn] = {}
        self._lock = threading.Lock()

    @classmethod
    def default(cls) -> HasherRegistry:
        registry = cls()
        for extension, name in BUILTIN_HASHERS.items():
            registry.register(extension, _hashlib(name))
        return registry

    def register(self, extension: str, hasher: HashFn) -> None:
        with self._lock:
            self._hashers[extension] = hasher

    def supports(self, extension: str) -> bool:
        with self._lock:
            return extension in self._hashers

    def get(self, extension: str) -> HashFn:
        """Digest function for ``extension``.

        Raises:
            UnsupportedHasher: When nothing is registered for it.
        """
        with self._lock:
            hasher = self._hashers.get(extension)
        if hasher is None:
            raise UnsupportedHasher(extension)
        return hasher

    def extensions(self) -> list[str]:
        with self._lock:
            return list(self._hashers)

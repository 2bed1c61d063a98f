"""
Extract directories — route archive members to destination directories.

An ordered list of ``(regex, destination)`` pairs; the first regex that
``search``-matches a member name decides where it goes.
"""

from __future__ import annotations

import re
from pathlib import Path

from pg_embedded.core.errors import ExtractionError


class ExtractDirectories:
    """Ordered regex → directory routing table."""

    def __init__(self, mappings: list[tuple[re.Pattern[str] | str, Path]] | None = None):
        self._mappings: list[tuple[re.Pattern[str], Path]] = []
        for pattern, path in mappings or []:
            self.add_mapping(pattern, path)

    @classmethod
    def single(cls, path: Path) -> ExtractDirectories:
        """Route everything to ``path``."""
        return cls([(".*", path)])

    def add_mapping(self, pattern: re.Pattern[str] | str, path: Path) -> None:
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        self._mappings.append((regex, Path(path)))

    def get_path(self, file_path: str) -> Path:
        """Destination for ``file_path``.

        Raises:
            ExtractionError: When no regex matches.
        """
        for regex, path in self._mappings:
            if regex.search(file_path):
                return path
        raise ExtractionError(f"No regex matched the file path: {file_path}")

    def try_get_path(self, file_path: str) -> Path | None:
        try:
            return self.get_path(file_path)
        except ExtractionError:
            return None

    def __len__(self) -> int:
        return len(self._mappings)

    def __str__(self) -> str:
        return "".join(f"{regex.pattern} -> {path}\n" for regex, path in self._mappings)

    def __repr__(self) -> str:
        return f"ExtractDirectories({[(r.pattern, str(p)) for r, p in self._mappings]!r})"

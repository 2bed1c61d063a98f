"""
Extractor contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from pg_embedded.core.services.archive.extractor.directories import ExtractDirectories


class Extractor(ABC):
    """Unpacks archive bytes according to an ExtractDirectories routing."""

    name: str = "extractor"

    @abstractmethod
    def extract(self, data: bytes, directories: ExtractDirectories) -> list[Path]:
        """Unpack ``data``; returns the files written."""

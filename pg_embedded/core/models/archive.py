"""
Archive model — downloaded, verified archive bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pg_embedded.core.models.version import Version


@dataclass(frozen=True)
class Archive:
    """An archive fetched from a repository.

    ``data`` has already been checked against the published digest when the
    repository offers one.
    """

    name: str
    version: Version
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

"""
Extension models — catalogue entries and the installed-extensions manifest.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from pg_embedded.core.errors import InvalidVersion
from pg_embedded.core.models.version import Version


class AvailableExtension(BaseModel):
    """An extension offered by a namespace (repository)."""

    namespace: str
    name: str
    description: str = ""

    def __str__(self) -> str:
        return f"{self.namespace}:{self.name}"


class InstalledExtension(BaseModel):
    """An extension installed into a PostgreSQL installation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    namespace: str
    name: str
    version: Version
    files: list[Path] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def _parse_version(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return Version.parse(value)
            except InvalidVersion as e:
                raise ValueError(str(e)) from e
        return value

    @field_serializer("version")
    def _serialize_version(self, version: Version) -> str:
        return str(version)


class InstalledConfiguration(BaseModel):
    """Everything installed into one installation, persisted as JSON."""

    extensions: list[InstalledExtension] = Field(default_factory=list)

    def find(self, namespace: str, name: str) -> InstalledExtension | None:
        for extension in self.extensions:
            if extension.namespace == namespace and extension.name == name:
                return extension
        return None

    def add(self, extension: InstalledExtension) -> None:
        self.remove(extension.namespace, extension.name)
        self.extensions.append(extension)

    def remove(self, namespace: str, name: str) -> InstalledExtension | None:
        found = self.find(namespace, name)
        if found is not None:
            self.extensions.remove(found)
        return found

"""
Repositories — resolve versions and download verified archives.

    GitHub   release tags + assets (theseus postgresql-binaries, extensions)
    Maven    maven-metadata.xml + jar artifacts
    Zonky    Maven, for the zonky embedded-postgres-binaries layout
"""

from pg_embedded.core.services.archive.repository.base import Repository
from pg_embedded.core.services.archive.repository.github import GitHub
from pg_embedded.core.services.archive.repository.http import HttpClient
from pg_embedded.core.services.archive.repository.maven import Maven
from pg_embedded.core.services.archive.repository.registry import RepositoryRegistry
from pg_embedded.core.services.archive.repository.zonky import Zonky

__all__ = ["GitHub", "HttpClient", "Maven", "Repository", "RepositoryRegistry", "Zonky"]

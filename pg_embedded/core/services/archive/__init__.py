"""
Archive engine — version resolution, verified download, atomic extraction.

    from pg_embedded.core.services.archive import get_archive, get_version, extract
"""

from pg_embedded.core.services.archive.archive_ops import extract, get_archive, get_repository, get_version
from pg_embedded.core.services.archive.registries import Registries

__all__ = ["Registries", "extract", "get_archive", "get_repository", "get_version"]

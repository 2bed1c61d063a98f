"""
Domain models — versions, archives and settings.

    from pg_embedded.core.models import Archive, Settings, Version, VersionRequirement
"""

from pg_embedded.core.models.archive import Archive
from pg_embedded.core.models.settings import Settings
from pg_embedded.core.models.version import Comparator, Op, Version, VersionRequirement

__all__ = [
    # archive.py
    "Archive",
    # version.py
    "Comparator",
    "Op",
    # settings.py
    "Settings",
    "Version",
    "VersionRequirement",
]

"""
postgresql-embedded — install, initialize and run a throwaway PostgreSQL.

    from pg_embedded import PostgreSQL, Settings

    with PostgreSQL(Settings(version="=16.4.0")) as postgresql:
        postgresql.setup()
        postgresql.start()
        postgresql.create_database("test")
"""

__version__ = "0.1.0"

from pg_embedded.core.engine.postgresql import PostgreSQL, Status  # noqa: E402
from pg_embedded.core.models.settings import Settings  # noqa: E402
from pg_embedded.core.models.version import Version, VersionRequirement  # noqa: E402

__all__ = [
    "PostgreSQL",
    "Settings",
    "Status",
    "Version",
    "VersionRequirement",
    "__version__",
]

"""PostgreSQL utility command builders."""

from pg_embedded.adapters.postgres.commands import (
    CommandBuilder,
    InitDb,
    PgConfig,
    PgCtl,
    Postgres,
    Psql,
    ShutdownMode,
)

__all__ = ["CommandBuilder", "InitDb", "PgConfig", "PgCtl", "Postgres", "Psql", "ShutdownMode"]

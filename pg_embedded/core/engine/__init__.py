"""Lifecycle engine — install, initialize, start and stop one server."""

from pg_embedded.core.engine.postgresql import PostgreSQL, Status

__all__ = ["PostgreSQL", "Status"]

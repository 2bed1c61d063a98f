"""Observability — logging setup for entry points."""

from pg_embedded.core.observability.logging_config import setup_logging

__all__ = ["setup_logging"]

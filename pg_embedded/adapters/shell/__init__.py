"""Subprocess execution."""

from pg_embedded.adapters.shell.command import run_command

__all__ = ["run_command"]

"""
Logging configuration — console and optional file handlers for the CLI.

Library modules only create ``logging.getLogger(__name__)`` loggers and
leave handlers to the embedding application; ``pg-embedded`` installs its
own through ``setup_logging`` at start-up.

Console level: ``--debug``/``--verbose``/``--quiet`` flag, else
PG_EMBEDDED_LOG_LEVEL, else WARNING. PG_EMBEDDED_LOG_FILE adds a file
handler at PG_EMBEDDED_LOG_FILE_LEVEL (default: the console level).
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LOG_LEVEL = "PG_EMBEDDED_LOG_LEVEL"
ENV_LOG_FILE = "PG_EMBEDDED_LOG_FILE"
ENV_LOG_FILE_LEVEL = "PG_EMBEDDED_LOG_FILE_LEVEL"

# Warnings and errors read as plain CLI output; INFO and DEBUG get context
_FMT_PLAIN = "%(message)s"
_FMT_VERBOSE = "%(asctime)s %(levelname)-5s %(name)s: %(message)s"
_FMT_FILE = "%(asctime)s %(levelname)-5s %(process)d %(name)s:%(lineno)d: %(message)s"


def resolve_level(cli_level: str | None) -> str:
    """The CLI flag's level, else PG_EMBEDDED_LOG_LEVEL, else WARNING."""
    return cli_level or os.environ.get(ENV_LOG_LEVEL, "WARNING")


def setup_logging(level: str = "WARNING", log_file_level: str | None = None) -> None:
    """Replace the root logger's handlers with a stderr handler at ``level``.

    When PG_EMBEDDED_LOG_FILE is set, a file handler is added too; the root
    level is the lower of the two so neither handler starves.
    """
    console_level = _parse_level(level)
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    if console_level <= logging.INFO:
        console.setFormatter(logging.Formatter(_FMT_VERBOSE, datefmt="%H:%M:%S"))
    else:
        console.setFormatter(logging.Formatter(_FMT_PLAIN))

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.addHandler(console)
    root_level = console_level

    log_file = os.environ.get(ENV_LOG_FILE)
    if log_file:
        file_level = _parse_level(log_file_level or os.environ.get(ENV_LOG_FILE_LEVEL) or level)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_FMT_FILE))
        root.addHandler(file_handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)


def _parse_level(level: str) -> int:
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING

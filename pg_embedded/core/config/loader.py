"""
Configuration loader — reads pg_embedded.yml into a Settings model.

The file may be flat or wrap everything under a ``postgresql:`` key::

    postgresql:
      version: "=16.4.0"
      installation_dir: ~/.theseus/postgresql
      data_dir: ./.pgdata
      port: 5433
      temporary: false
      configuration:
        max_connections: 20

Relative paths are resolved against the directory holding the file, and
``~`` is expanded.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from pg_embedded.core.errors import ConfigError
from pg_embedded.core.models.settings import Settings

logger = logging.getLogger(__name__)

SETTINGS_FILE = "pg_embedded.yml"

_PATH_KEYS = ("installation_dir", "password_file", "data_dir")


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for pg_embedded.yml from ``start_dir`` (default: cwd) upward.

    Returns:
        Path to the file, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_settings(
    path: Path | None = None,
    defaults: dict[str, Any] | None = None,
) -> Settings:
    """Load and validate settings from a YAML file.

    Args:
        path: Explicit settings file. If None, searches upward from cwd;
            when nothing is found, ``defaults`` alone are validated.
        defaults: Values used for keys the file does not set.

    Raises:
        ConfigError: If the file is unreadable, not YAML, not a mapping,
            or fails validation.
    """
    explicit = path is not None
    if path is None:
        path = find_settings_file()

    data: dict[str, Any] = {}
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Settings file not found: {path}")
        data = _read_mapping(path)
    elif explicit:
        raise ConfigError("No settings file given")
    else:
        logger.debug("No %s found, using defaults", SETTINGS_FILE)

    merged = {**(defaults or {}), **data}

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings{f' in {path}' if path else ''}: {e}") from e

    logger.debug("Loaded settings (version %s, data dir %s)", settings.version, settings.data_dir)
    return settings


def _read_mapping(path: Path) -> dict[str, Any]:
    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    section = data.get("postgresql", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Expected 'postgresql' to be a mapping in {path}")

    # yaml reads `version: 16` as an int
    if "version" in section and not isinstance(section["version"], str):
        section["version"] = str(section["version"])

    base = path.parent.resolve()
    for key in _PATH_KEYS:
        value = section.get(key)
        if isinstance(value, str):
            expanded = Path(value).expanduser()
            section[key] = expanded if expanded.is_absolute() else base / expanded

    return section

"""Settings file discovery and loading."""

from pg_embedded.core.config.loader import find_settings_file, load_settings

__all__ = ["find_settings_file", "load_settings"]

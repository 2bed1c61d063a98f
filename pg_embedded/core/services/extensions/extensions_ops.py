"""
Extension operations — list, install and uninstall PostgreSQL extensions.

Installed files are recorded in ``postgresql_extensions.json`` in the
installation's share directory so they can be removed again. Library and
share directories come from ``pg_config``; when it cannot run, the
installation's own ``lib/`` and ``share/`` are used.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pg_embedded.adapters.postgres.commands import PgConfig, Postgres
from pg_embedded.adapters.shell.command import run_command
from pg_embedded.core.errors import EmbeddedError, ParseError
from pg_embedded.core.models.extension import AvailableExtension, InstalledExtension
from pg_embedded.core.models.settings import Settings
from pg_embedded.core.models.version import VersionRequirement
from pg_embedded.core.persistence.extensions_file import load_installed, manifest_path, save_installed
from pg_embedded.core.services.archive.registries import Registries
from pg_embedded.core.services.archive.repository.http import HttpClient
from pg_embedded.core.services.extensions.registry import ExtensionRegistry, get_extension_registry

logger = logging.getLogger(__name__)

_POSTGRES_VERSION_RE = re.compile(r"PostgreSQL\)\s(\d+\.\d+)")


# ── Catalogue ───────────────────────────────────────────────────


def get_available_extensions(
    registry: ExtensionRegistry | None = None,
    client: HttpClient | None = None,
) -> list[AvailableExtension]:
    """Every extension offered by every registered namespace."""
    registry = registry or get_extension_registry()
    extensions: list[AvailableExtension] = []
    for namespace in registry.namespaces():
        repository = registry.get(namespace)(client=client)
        extensions.extend(repository.get_available_extensions())
    return extensions


def get_installed_extensions(settings: Settings) -> list[InstalledExtension]:
    return load_installed(manifest_path(get_share_dir(settings))).extensions


# ── Install / uninstall ─────────────────────────────────────────


def install(
    settings: Settings,
    namespace: str,
    name: str,
    requirement: VersionRequirement,
    registry: ExtensionRegistry | None = None,
    registries: Registries | None = None,
    client: HttpClient | None = None,
) -> InstalledExtension:
    """Install ``namespace:name`` into the installation ``settings`` points at.

    An already installed copy is uninstalled first.

    Raises:
        UnsupportedNamespace: Unknown namespace.
        ArchiveError: Resolution, download or verification failed.
    """
    registry = registry or get_extension_registry()
    repository = registry.get(namespace)(client=client, registries=registries)

    if any(e.namespace == namespace and e.name == name for e in get_installed_extensions(settings)):
        uninstall(settings, namespace, name)

    postgresql_version = get_postgresql_version(settings)
    archive = repository.get_archive(postgresql_version, name, requirement)
    library_dir = get_library_dir(settings)
    extension_dir = get_share_dir(settings) / "extension"
    files = repository.install(name, library_dir, extension_dir, archive)

    path = manifest_path(get_share_dir(settings))
    configuration = load_installed(path)
    installed = InstalledExtension(namespace=namespace, name=name, version=archive.version, files=files)
    configuration.add(installed)
    save_installed(configuration, path)

    logger.info("Installed extension %s:%s %s (%d files)", namespace, name, archive.version, len(files))
    return installed


def uninstall(settings: Settings, namespace: str, name: str) -> bool:
    """Remove ``namespace:name`` and its files; False when it was not installed."""
    path = manifest_path(get_share_dir(settings))
    if not path.is_file():
        logger.debug("No extensions manifest at %s, nothing to uninstall", path)
        return False

    configuration = load_installed(path)
    removed = configuration.remove(namespace, name)
    if removed is None:
        return False

    for file in removed.files:
        if file.exists():
            logger.debug("Removing file %s", file)
            file.unlink()
    save_installed(configuration, path)

    logger.info("Uninstalled extension %s:%s", namespace, name)
    return True


# ── Installation probing ────────────────────────────────────────


def get_postgresql_version(settings: Settings) -> str:
    """``MAJOR.MINOR`` reported by ``postgres --version``.

    Raises:
        CommandError: postgres could not run.
        ParseError: Output did not contain a version.
    """
    postgres = Postgres(program_dir=settings.binary_dir(), version=True)
    stdout, _ = run_command(postgres.build(), timeout=settings.timeout)
    match = _POSTGRES_VERSION_RE.search(stdout)
    if match is None:
        raise ParseError(f"Failed to obtain postgresql version from {stdout.strip()!r}")
    logger.debug("PostgreSQL version from postgres command: %s", match.group(1))
    return match.group(1)


def get_library_dir(settings: Settings) -> Path:
    return _pg_config_dir(settings, "libdir", "lib")


def get_share_dir(settings: Settings) -> Path:
    return _pg_config_dir(settings, "sharedir", "share")


def _pg_config_dir(settings: Settings, item: str, fallback: str) -> Path:
    pg_config = PgConfig(program_dir=settings.binary_dir(), items=[item])
    try:
        stdout, _ = run_command(pg_config.build(), timeout=settings.timeout)
    except EmbeddedError as e:
        path = settings.installation_dir / fallback
        logger.debug("pg_config --%s failed (%s), using %s", item, e, path)
        return path
    return Path(stdout.strip())

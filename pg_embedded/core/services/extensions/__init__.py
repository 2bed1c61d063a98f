"""
Extension manager — install extensions into an embedded PostgreSQL.

    from pg_embedded.core.services import extensions

    extensions.install(settings, "portal-corp", "pgvector_compiled", VersionRequirement.any())
"""

from pg_embedded.core.services.extensions.extensions_ops import (
    get_available_extensions,
    get_installed_extensions,
    get_library_dir,
    get_postgresql_version,
    get_share_dir,
    install,
    uninstall,
)
from pg_embedded.core.services.extensions.registry import ExtensionRegistry, get_extension_registry
from pg_embedded.core.services.extensions.repository import (
    ExtensionRepository,
    GitHubExtensionRepository,
    PortalCorp,
    Steampipe,
    TensorChord,
)

__all__ = [
    "ExtensionRegistry",
    "ExtensionRepository",
    "GitHubExtensionRepository",
    "PortalCorp",
    "Steampipe",
    "TensorChord",
    "get_available_extensions",
    "get_extension_registry",
    "get_installed_extensions",
    "get_library_dir",
    "get_postgresql_version",
    "get_share_dir",
    "install",
    "uninstall",
]

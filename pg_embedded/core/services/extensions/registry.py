"""
Extension registry — namespace → extension repository factory.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from pg_embedded.core.errors import UnsupportedNamespace
from pg_embedded.core.services.extensions.repository import (
    ExtensionRepository,
    PortalCorp,
    Steampipe,
    TensorChord,
)

# Called as factory(client=..., registries=...)
ExtensionFactory = Callable[..., ExtensionRepository]


class ExtensionRegistry:
    """Thread-safe namespace table; re-registering a namespace replaces it."""

    def __init__(self) -> None:
        self._factories: dict[str, ExtensionFactory] = {}
        self._lock = threading.Lock()

    @classmethod
    def default(cls) -> ExtensionRegistry:
        registry = cls()
        registry.register(PortalCorp.name, PortalCorp)
        registry.register(TensorChord.name, TensorChord)
        registry.register(Steampipe.name, Steampipe)
        return registry

    def register(self, namespace: str, factory: ExtensionFactory) -> None:
        with self._lock:
            self._factories[namespace] = factory

    def get(self, namespace: str) -> ExtensionFactory:
        """Factory for ``namespace``.

        Raises:
            UnsupportedNamespace: When nothing is registered for it.
        """
        with self._lock:
            factory = self._factories.get(namespace)
        if factory is None:
            raise UnsupportedNamespace(namespace)
        return factory

    def namespaces(self) -> list[str]:
        with self._lock:
            return list(self._factories)


_default: ExtensionRegistry | None = None
_default_lock = threading.Lock()


def get_extension_registry() -> ExtensionRegistry:
    """Process-wide extension registry, created with the built-ins on first use."""
    global _default
    with _default_lock:
        if _default is None:
            _default = ExtensionRegistry.default()
        return _default

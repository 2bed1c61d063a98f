"""
Process context — the default strategy registries.

Module-level singleton. Operations take an explicit ``registries=``
argument; when it is omitted they use the instance held here. Tests and
applications that need isolation pass their own ``Registries`` or swap
the default with ``set_registries``.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pg_embedded.core.services.archive.registries import Registries

_registries: Registries | None = None
_lock = threading.Lock()


def get_registries() -> Registries:
    """Return the process-wide registries, creating the defaults on first use."""
    global _registries
    with _lock:
        if _registries is None:
            from pg_embedded.core.services.archive.registries import Registries

            _registries = Registries.default()
        return _registries


def set_registries(registries: Registries | None) -> None:
    """Replace the process-wide registries; None restores fresh defaults on next use."""
    global _registries
    with _lock:
        _registries = registries

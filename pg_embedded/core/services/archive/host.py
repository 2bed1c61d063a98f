"""
Host platform detection — target triple, OS and architecture tokens.

Release assets are named after compiler target triples
(``x86_64-unknown-linux-gnu``), so that is the vocabulary used here.
"""

from __future__ import annotations

import platform
import sys

from pg_embedded.core.data.constants import MACHINE_MAP, STEAMPIPE_ARCH_MAP, ZONKY_ARCH_MAP


def arch() -> str:
    """Normalized CPU architecture: x86_64, aarch64, arm, powerpc64, x86, ..."""
    machine = platform.machine().lower()
    return MACHINE_MAP.get(machine, machine)


def os_name() -> str:
    """Operating system token: linux, macos or windows."""
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "macos"
    if sys.platform in ("win32", "cygwin"):
        return "windows"
    return sys.platform


def _libc() -> str:
    name, _ = platform.libc_ver()
    return "musl" if "musl" in name else "gnu"


def target_triple() -> str:
    """The host target triple, e.g. ``aarch64-apple-darwin``."""
    cpu = arch()
    system = os_name()
    if system == "linux":
        suffix = "unknown-linux-gnueabihf" if cpu == "arm" else f"unknown-linux-{_libc()}"
        return f"{cpu}-{suffix}"
    if system == "macos":
        return f"{cpu}-apple-darwin"
    if system == "windows":
        return f"{cpu}-pc-windows-msvc"
    return f"{cpu}-unknown-{system}"


# ── zonky naming ────────────────────────────────────────────────


def zonky_os() -> str:
    """OS token used in zonky artifact names (macos is called darwin)."""
    system = os_name()
    return "darwin" if system == "macos" else system


def zonky_arch() -> str:
    """Architecture token used in zonky artifact names."""
    cpu = arch()
    return ZONKY_ARCH_MAP.get(cpu, cpu)


# ── steampipe naming ────────────────────────────────────────────


def steampipe_platform() -> str:
    """``{os}_{arch}`` suffix of steampipe plugin assets, e.g. ``linux_amd64``."""
    system = "darwin" if os_name() == "macos" else "linux"
    cpu = arch()
    return f"{system}_{STEAMPIPE_ARCH_MAP.get(cpu, cpu)}"

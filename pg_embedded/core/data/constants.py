"""
L0 Data — Module-level constants.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

# Release sources.
THESEUS_POSTGRESQL_BINARIES_URL = "https://github.com/theseus-rs/postgresql-binaries"
ZONKY_URL = "https://github.com/zonkyio/embedded-postgres-binaries"
MAVEN_URL = "https://repo1.maven.org/maven2"
ZONKY_MAVEN_URL = f"{MAVEN_URL}/io/zonky/test/postgres/embedded-postgres-binaries"

DEFAULT_RELEASES_URL = THESEUS_POSTGRESQL_BINARIES_URL

# GitHub REST API.
GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_PAGE_SIZE = 100

# Sibling digest files tried for Maven artifacts, strongest first.
MAVEN_HASH_PREFERENCE: tuple[str, ...] = ("sha512", "sha256", "sha1", "md5")

# Cross-process install lock, created beside the installation directory.
LOCK_FILE_NAME = "postgresql-archive.lock"

# Files inside a data directory that mark its lifecycle state.
POSTGRESQL_CONF = "postgresql.conf"
POSTMASTER_PID = "postmaster.pid"
START_LOG = "start.log"

# Installed extensions manifest, kept in the share directory.
EXTENSIONS_MANIFEST = "postgresql_extensions.json"

# Architecture naming used by the zonky Maven artifacts.
ZONKY_ARCH_MAP: dict[str, str] = {
    "x86_64": "amd64",
    "aarch64": "arm64v8",
    "arm": "arm32v7",
    "powerpc64": "ppc64le",
    "x86": "i386",
}

# Architecture tokens in steampipe plugin asset names.
STEAMPIPE_ARCH_MAP: dict[str, str] = {
    "x86_64": "amd64",
    "aarch64": "arm64",
}

# Normalize ``platform.machine()`` to target-triple architecture names.
MACHINE_MAP: dict[str, str] = {
    "amd64": "x86_64",     # Windows
    "x86_64": "x86_64",
    "arm64": "aarch64",    # macOS
    "aarch64": "aarch64",
    "armv7l": "arm",
    "armv6l": "arm",
    "ppc64le": "powerpc64",
    "ppc64": "powerpc64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
}

# ── Steampipe plugins ───────────────────────────────────────────

STEAMPIPE_PLUGIN_URL = "https://github.com/turbot/steampipe-plugin-{name}"

# Plugins published with PostgreSQL FDW builds: name → description.
STEAMPIPE_PLUGINS: dict[str, str] = {
    "abuseipdb": "Steampipe plugin to query IP address abuse data and more from AbuseIPDB.",
    "aws": "Steampipe plugin for querying instances, buckets, databases and more from AWS.",
    "azure": "Steampipe plugin for querying resource groups, virtual machines, storage accounts and more from Azure.",
    "config": "Steampipe plugin to query data from various types of configuration files.",
    "csv": "Steampipe plugin to query data from CSV files.",
    "docker": "Steampipe plugin to query Dockerfile commands and more from Docker.",
    "gcp": "Steampipe plugin for querying buckets, instances, functions and more from GCP.",
    "github": "Steampipe plugin for querying GitHub Repositories, Organizations, and other resources.",
    "kubernetes": "Steampipe plugin for Kubernetes components.",
    "net": "Steampipe plugin for querying DNS records, certificates and other network information.",
    "rss": "Steampipe plugin to query RSS channels and items.",
    "terraform": "Steampipe plugin to query data from Terraform files.",
}

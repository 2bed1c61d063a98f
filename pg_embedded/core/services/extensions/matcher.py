"""
Extension asset matchers — bundles built for this host and PostgreSQL major.

The PostgreSQL version travels in the repository URL as the
``postgresql_version`` query parameter, e.g.
``https://github.com/portalcorp/pgvector_compiled/pgvector_compiled?postgresql_version=16.4``.
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

from pg_embedded.core.models.version import Version
from pg_embedded.core.services.archive import host
from pg_embedded.core.services.archive.matcher import matches_host, token_pattern


def postgresql_major(url: str) -> str | None:
    """Major version from the ``postgresql_version`` query parameter, if well formed."""
    try:
        query = parse_qs(urlsplit(url).query)
    except ValueError:
        return None
    values = query.get("postgresql_version")
    if not values:
        return None
    major, dot, _ = values[0].partition(".")
    if not dot or not major:
        return None
    return major


def extension_matcher(url: str, name: str, version: Version) -> bool:
    """Asset built for the URL's PostgreSQL major and for this host."""
    major = postgresql_major(url)
    if major is None:
        return False
    if not token_pattern(f"pg{major}").search(name):
        return False
    return matches_host(name)


def zip_matcher(url: str, name: str, version: Version) -> bool:
    return extension_matcher(url, name, version) and name.endswith(".zip")


def steampipe_matcher(url: str, name: str, version: Version) -> bool:
    """``steampipe_postgres_<plugin>.pg<major>.<os>_<arch>.tar.gz`` for this host."""
    major = postgresql_major(url)
    if major is None:
        return False
    suffix = f".pg{major}.{host.steampipe_platform()}.tar.gz"
    return name.startswith("steampipe_postgres_") and name.endswith(suffix)

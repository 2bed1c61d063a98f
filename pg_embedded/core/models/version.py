"""
Version model — semantic versions and Cargo-style version requirements.

Pure value types, no I/O. A ``Version`` may be partial (``16`` or ``16.4``)
when it comes out of a requirement, but versions resolved from a repository
are always exact (``16.4.0``).

Requirement grammar (comma separated comparators)::

    =16.4.0   >16   >=16.2   <17   <=16.4.0   ~16.4   ^16   16.4
    *   16.*   16.4.x

A bare version is a caret requirement. ``*`` alone matches every version
that is not a pre-release.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from functools import total_ordering

from pg_embedded.core.errors import InvalidVersion

_NUM = r"0|[1-9]\d*"
_IDENT = r"[0-9A-Za-z-]+"
_VERSION_RE = re.compile(
    rf"^(?P<major>{_NUM})"
    rf"(?:\.(?P<minor>{_NUM})"
    rf"(?:\.(?P<patch>{_NUM}))?)?"
    rf"(?:-(?P<pre>{_IDENT}(?:\.{_IDENT})*))?"
    rf"(?:\+(?P<build>{_IDENT}(?:\.{_IDENT})*))?$"
)
_WILDCARDS = frozenset({"*", "x", "X"})


def _pre_key(pre: str) -> tuple:
    """Sort key for a pre-release tag; a release sorts above all of its pre-releases."""
    if not pre:
        return (1,)
    parts = []
    for ident in pre.split("."):
        if ident.isdigit():
            parts.append((0, int(ident), ""))
        else:
            parts.append((1, 0, ident))
    return (0, tuple(parts))


# ── Version ─────────────────────────────────────────────────────


@total_ordering
@dataclass(frozen=True)
class Version:
    """A semantic version; ``minor`` and ``patch`` are ``None`` when floating."""

    major: int
    minor: int | None = None
    patch: int | None = None
    pre: str = ""

    @classmethod
    def parse(cls, text: str, partial: bool = False) -> Version:
        """Parse ``MAJOR.MINOR.PATCH[-PRE][+BUILD]``.

        With ``partial=True`` the forms ``MAJOR`` and ``MAJOR.MINOR`` are
        accepted too. Build metadata is discarded.

        Raises:
            InvalidVersion: When the text is not a version.
        """
        value = text.strip()
        match = _VERSION_RE.match(value)
        if not match:
            raise InvalidVersion(text)
        minor = match.group("minor")
        patch = match.group("patch")
        if patch is None and not partial:
            raise InvalidVersion(text, "expected MAJOR.MINOR.PATCH")
        pre = match.group("pre") or ""
        if pre and patch is None:
            raise InvalidVersion(text, "pre-release requires MAJOR.MINOR.PATCH")
        return cls(
            major=int(match.group("major")),
            minor=int(minor) if minor is not None else None,
            patch=int(patch) if patch is not None else None,
            pre=pre,
        )

    @property
    def is_exact(self) -> bool:
        return self.minor is not None and self.patch is not None

    def _key(self) -> tuple:
        return (self.major, self.minor or 0, self.patch or 0, _pre_key(self.pre))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        text = str(self.major)
        if self.minor is not None:
            text += f".{self.minor}"
            if self.patch is not None:
                text += f".{self.patch}"
        if self.pre:
            text += f"-{self.pre}"
        return text


# ── Comparators ─────────────────────────────────────────────────


class Op(StrEnum):
    """Comparator operators."""

    EXACT = "="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    TILDE = "~"
    CARET = "^"
    WILDCARD = "*"


# Longest operators first so ">=" is not read as ">".
_OPS = (Op.GREATER_EQ, Op.LESS_EQ, Op.EXACT, Op.GREATER, Op.LESS, Op.TILDE, Op.CARET)


@dataclass(frozen=True)
class Comparator:
    """One ``op version`` term of a requirement."""

    op: Op
    major: int
    minor: int | None = None
    patch: int | None = None
    pre: str = ""

    @classmethod
    def parse(cls, text: str) -> Comparator:
        value = text.strip()
        op: Op | None = None
        for candidate in _OPS:
            if value.startswith(candidate.value):
                op = candidate
                value = value[len(candidate.value):].strip()
                break
        if not value:
            raise InvalidVersion(text, "missing version")

        # Truncate at the first wildcard component: 16.* -> 16, 16.4.x -> 16.4
        parts = value.split(".")
        wildcard_at = next(
            (i for i, part in enumerate(parts) if part in _WILDCARDS), None,
        )
        if wildcard_at is not None:
            if wildcard_at == 0:
                raise InvalidVersion(text, "wildcard must follow a major version")
            if any(part not in _WILDCARDS for part in parts[wildcard_at:]):
                raise InvalidVersion(text, "unexpected component after wildcard")
            value = ".".join(parts[:wildcard_at])
            if op is None:
                op = Op.WILDCARD

        version = Version.parse(value, partial=True)
        if op is None:
            op = Op.CARET
        return cls(op, version.major, version.minor, version.patch, version.pre)

    def matches(self, version: Version) -> bool:
        if self.op in (Op.EXACT, Op.WILDCARD):
            return self._matches_exact(version)
        if self.op is Op.GREATER:
            return self._matches_greater(version)
        if self.op is Op.GREATER_EQ:
            return self._matches_exact(version) or self._matches_greater(version)
        if self.op is Op.LESS:
            return self._matches_less(version)
        if self.op is Op.LESS_EQ:
            return self._matches_exact(version) or self._matches_less(version)
        if self.op is Op.TILDE:
            return self._matches_tilde(version)
        return self._matches_caret(version)

    def allows_prerelease_of(self, version: Version) -> bool:
        """A pre-release only matches when a comparator names the same release with a tag."""
        return (
            bool(self.pre)
            and self.major == version.major
            and self.minor == version.minor
            and self.patch == version.patch
        )

    # ── Operators ───────────────────────────────────────────────

    def _matches_exact(self, ver: Version) -> bool:
        if ver.major != self.major:
            return False
        if self.minor is not None and _minor(ver) != self.minor:
            return False
        if self.patch is not None and _patch(ver) != self.patch:
            return False
        return ver.pre == self.pre

    def _matches_greater(self, ver: Version) -> bool:
        if ver.major != self.major:
            return ver.major > self.major
        if self.minor is None:
            return False
        if _minor(ver) != self.minor:
            return _minor(ver) > self.minor
        if self.patch is None:
            return False
        if _patch(ver) != self.patch:
            return _patch(ver) > self.patch
        return _pre_key(ver.pre) > _pre_key(self.pre)

    def _matches_less(self, ver: Version) -> bool:
        if ver.major != self.major:
            return ver.major < self.major
        if self.minor is None:
            return False
        if _minor(ver) != self.minor:
            return _minor(ver) < self.minor
        if self.patch is None:
            return False
        if _patch(ver) != self.patch:
            return _patch(ver) < self.patch
        return _pre_key(ver.pre) < _pre_key(self.pre)

    def _matches_tilde(self, ver: Version) -> bool:
        if ver.major != self.major:
            return False
        if self.minor is not None and _minor(ver) != self.minor:
            return False
        if self.patch is not None and _patch(ver) != self.patch:
            return _patch(ver) > self.patch
        return _pre_key(ver.pre) >= _pre_key(self.pre)

    def _matches_caret(self, ver: Version) -> bool:
        if ver.major != self.major:
            return False
        if self.minor is None:
            return True
        if self.patch is None:
            if self.major > 0:
                return _minor(ver) >= self.minor
            return _minor(ver) == self.minor

        if self.major > 0:
            if _minor(ver) != self.minor:
                return _minor(ver) > self.minor
            if _patch(ver) != self.patch:
                return _patch(ver) > self.patch
        elif self.minor > 0:
            if _minor(ver) != self.minor:
                return False
            if _patch(ver) != self.patch:
                return _patch(ver) > self.patch
        elif _minor(ver) != self.minor or _patch(ver) != self.patch:
            return False
        return _pre_key(ver.pre) >= _pre_key(self.pre)

    def __str__(self) -> str:
        version = str(Version(self.major, self.minor, self.patch, self.pre))
        if self.op is Op.WILDCARD:
            return f"{version}.*"
        return f"{self.op.value}{version}"


def _minor(version: Version) -> int:
    return version.minor or 0


def _patch(version: Version) -> int:
    return version.patch or 0


# ── Requirement ─────────────────────────────────────────────────


@dataclass(frozen=True)
class VersionRequirement:
    """A conjunction of comparators. No comparators means "any release"."""

    comparators: tuple[Comparator, ...] = ()

    @classmethod
    def parse(cls, text: str) -> VersionRequirement:
        """Parse a requirement such as ``">=16, <17"`` or ``"=16.4.0"``.

        Raises:
            InvalidVersion: When any comparator is malformed.
        """
        value = text.strip()
        if not value:
            raise InvalidVersion(text, "empty requirement")
        if value == "*":
            return cls.any()
        terms = [term.strip() for term in value.split(",")]
        if any(not term for term in terms):
            raise InvalidVersion(text, "empty comparator")
        if "*" in terms:
            raise InvalidVersion(text, "'*' cannot be combined with other comparators")
        return cls(tuple(Comparator.parse(term) for term in terms))

    @classmethod
    def any(cls) -> VersionRequirement:
        return cls(())

    @classmethod
    def exact(cls, version: Version) -> VersionRequirement:
        """Requirement that matches exactly ``version`` (``=X.Y.Z[-PRE]``)."""
        if not version.is_exact:
            raise InvalidVersion(str(version), "exact requirement needs MAJOR.MINOR.PATCH")
        return cls((
            Comparator(Op.EXACT, version.major, version.minor, version.patch, version.pre),
        ))

    def matches(self, version: Version) -> bool:
        if not all(cmp.matches(version) for cmp in self.comparators):
            return False
        if not version.pre:
            return True
        return any(cmp.allows_prerelease_of(version) for cmp in self.comparators)

    def exact_version(self) -> Version | None:
        """The pinned version when this is a single fully specified ``=`` comparator."""
        if len(self.comparators) != 1:
            return None
        cmp = self.comparators[0]
        if cmp.op is not Op.EXACT or cmp.minor is None or cmp.patch is None:
            return None
        return Version(cmp.major, cmp.minor, cmp.patch, cmp.pre)

    def __str__(self) -> str:
        if not self.comparators:
            return "*"
        return ", ".join(str(cmp) for cmp in self.comparators)


def exact_version_req(version: Version) -> VersionRequirement:
    return VersionRequirement.exact(version)

"""Parse and format vMAJOR.MINOR[.PATCH] identifiers."""

from __future__ import annotations

import re
from dataclasses import dataclass


VERSION_PREFIX_RE = re.compile(r"^v(\d+)\.(\d+)(?:\.(\d+))?")


@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int | None = None

    @property
    def bare(self) -> str:
        """Numeric form without the leading 'v' (e.g. 3.4.1)."""
        return format_version(self.major, self.minor, self.patch)[1:]

    def __str__(self) -> str:
        return format_version(self.major, self.minor, self.patch)


def parse_version(identifier: str) -> Version | None:
    """Read the version at the start of an identifier.

    Anything after the version (such as ``-rc.3``) is ignored. Returns None when
    the identifier does not start with a version; a missing patch stays None
    rather than becoming 0.
    """
    match = VERSION_PREFIX_RE.match(identifier)
    if not match:
        return None
    patch = match.group(3)
    return Version(
        major=int(match.group(1)),
        minor=int(match.group(2)),
        patch=int(patch) if patch is not None else None,
    )


def format_version(major: int, minor: int, patch: int | None = None) -> str:
    if patch is None:
        return f"v{major}.{minor}"
    return f"v{major}.{minor}.{patch}"


def strip_prefix(identifier: str, prefix: str) -> str:
    if prefix and identifier.startswith(prefix):
        return identifier[len(prefix):]
    return identifier

"""Lookups over a snapshot of repository tag names.

The snapshot must be ordered newest first, which is how the GitHub tags
endpoint returns it. "Latest" always means the first matching name in that
order, never the numerically greatest version.
"""

from __future__ import annotations

import re
from typing import Iterable


PRE_RELEASE_TAG_PATTERN = r"^v\d+\.\d+-"


class TagIndex:
    def __init__(self, tag_names: Iterable[str]):
        # dict keeps the first occurrence and its position.
        self._names = tuple(dict.fromkeys(tag_names))

    def all(self) -> tuple[str, ...]:
        return self._names

    def first_matching(self, pattern: str) -> str | None:
        regex = re.compile(pattern)
        for name in self._names:
            if regex.search(name):
                return name
        return None

    def latest_with_prefix(self, prefix: str) -> str | None:
        return self.first_matching(f"^{re.escape(prefix)}")

    def latest_pre_release(self) -> str | None:
        return self.first_matching(PRE_RELEASE_TAG_PATTERN)

    def latest_for_release_version(self, release_version: str) -> str | None:
        """Newest patch tag cut from a release version such as ``3.4``."""
        return self.first_matching(rf"^v{re.escape(release_version)}\.\d+$")

    def next_pre_release_suffix(self, version: str, pre_release_name: str) -> int:
        regex = re.compile(rf"^v{re.escape(version)}-{re.escape(pre_release_name)}\.(\d+)$")
        for name in self._names:
            match = regex.match(name)
            if match:
                return int(match.group(1)) + 1
        return 0

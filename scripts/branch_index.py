"""Lookups over a snapshot of repository branch names."""

from __future__ import annotations

import re
from typing import Iterable

from errors import PolicyViolation
from version_string import Version


class BranchIndex:
    """Branch names ordered newest first.

    The GitHub branches endpoint lists oldest first, so the snapshot is
    reversed exactly once here.
    """

    def __init__(self, branch_names_oldest_first: Iterable[str]):
        self._names = tuple(reversed(list(branch_names_oldest_first)))

    def all(self) -> tuple[str, ...]:
        return self._names

    def release_branches(self, major: int, release_branch_prefix: str) -> list[tuple[str, int]]:
        """(name, minor) for every release branch of ``major``, newest first."""
        regex = re.compile(rf"^{re.escape(release_branch_prefix)}{major}\.(\d+)$")
        found: list[tuple[str, int]] = []
        for name in self._names:
            match = regex.match(name)
            if match:
                found.append((name, int(match.group(1))))
        return found

    def release_branches_in_order(self, major: int, release_branch_prefix: str) -> bool:
        """True when newer release branches of ``major`` always carry a higher minor."""
        minors = [minor for _, minor in self.release_branches(major, release_branch_prefix)]
        return all(newer > older for newer, older in zip(minors, minors[1:]))

    def next_pre_release_version(
        self,
        current_major: int,
        release_branch_prefix: str,
        *,
        require_ordered: bool = False,
    ) -> Version:
        """Version of the next pre-release cycle, derived from release branches.

        No release branch for ``current_major`` yet means the first cycle
        (minor 0). Otherwise the newest release branch's minor is bumped; list
        order is trusted unless ``require_ordered`` is set, in which case a
        release branch created out of numeric order is rejected.
        """
        if self.release_branches(current_major + 1, release_branch_prefix):
            raise PolicyViolation(
                f"a release branch for major version {current_major + 1} already exists"
            )

        branches = self.release_branches(current_major, release_branch_prefix)
        if not branches:
            return Version(current_major, 0)

        if require_ordered and not self.release_branches_in_order(current_major, release_branch_prefix):
            names = ", ".join(name for name, _ in branches)
            raise PolicyViolation(f"release branches were created out of version order: {names}")

        _, minor = branches[0]
        return Version(current_major, minor + 1)

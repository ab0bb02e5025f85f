"""Release scopes and release kinds accepted by the tagger."""

from __future__ import annotations

from enum import Enum


class Scope(str, Enum):
    COMPONENT = "component"
    PRODUCT = "product"
    # Read-only lookup of a component's latest tag.
    QUERY = "query"


class ReleaseKind(str, Enum):
    FIX = "fix"
    FINAL = "final"
    PRE_RELEASE = "pre-release"
    NEW_RELEASE_BRANCH = "new-release-branch"
    QUERY = "component-last-version"

    @property
    def creates_branch(self) -> bool:
        return self is ReleaseKind.NEW_RELEASE_BRANCH

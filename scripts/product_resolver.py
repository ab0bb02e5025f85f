"""Next-tag and release-branch rules for the product (unprefixed) scope.

Product tags follow a fixed cycle:

- pre-releases ``v{major}.{minor}-{name}.{n}`` are cut from the default branch,
  where ``minor`` is one past the newest release branch of ``major``;
- a release branch ``{prefix}{major}.{minor}`` is cut from the newest pre-release;
- the final tag ``v{major}.{minor}.0`` is placed on that release branch;
- fixes ``v{major}.{minor}.{patch + 1}`` are tagged on the release branch.
"""

from __future__ import annotations

import logging

from branch_index import BranchIndex
from errors import NotFound, ParseFailure, PolicyViolation
from release_kinds import ReleaseKind
from shared import log_event
from tag_index import TagIndex
from version_string import Version, format_version, parse_version, strip_prefix


LOGGER = logging.getLogger("release_tagger.product")


def _parse_or_fail(tag: str) -> Version:
    version = parse_version(tag)
    if version is None:
        raise ParseFailure(f"cannot parse version from tag '{tag}'")
    return version


def _latest_pre_release_version(tags: TagIndex) -> Version:
    tag = tags.latest_pre_release()
    if tag is None:
        raise NotFound("there is no pre-release yet")
    log_event(LOGGER, logging.DEBUG, "latest_pre_release", tag=tag)
    return _parse_or_fail(tag)


def next_pre_release_tag(
    tags: TagIndex,
    branches: BranchIndex,
    *,
    current_major: int,
    release_branch_prefix: str,
    pre_release_name: str,
    require_ordered_branches: bool = False,
) -> str:
    cycle = branches.next_pre_release_version(
        current_major,
        release_branch_prefix,
        require_ordered=require_ordered_branches,
    )
    cycle_version = f"{cycle.major}.{cycle.minor}"
    suffix = tags.next_pre_release_suffix(cycle_version, pre_release_name)
    return f"v{cycle_version}-{pre_release_name}.{suffix}"


def next_release_branch(tags: TagIndex, *, release_branch_prefix: str) -> str:
    version = _latest_pre_release_version(tags)
    return f"{release_branch_prefix}{version.major}.{version.minor}"


def next_fix_tag(tags: TagIndex, *, release_branch_prefix: str, trigger_branch: str) -> str:
    if not trigger_branch:
        raise NotFound("the branch that triggered this run is unknown")
    release_version = strip_prefix(trigger_branch, release_branch_prefix)
    tag = tags.latest_for_release_version(release_version)
    if tag is None:
        raise NotFound(f"there is no release yet for version {release_version}")
    version = _parse_or_fail(tag)
    patch = version.patch if version.patch is not None else 0
    return format_version(version.major, version.minor, patch + 1)


def next_final_tag(tags: TagIndex, *, target_branch: str) -> str:
    if not target_branch:
        raise NotFound("a release branch to tag is required for a final release")
    version = _latest_pre_release_version(tags)
    return format_version(version.major, version.minor, 0)


def resolve_product(
    kind: ReleaseKind,
    *,
    tags: TagIndex,
    branches: BranchIndex | None = None,
    release_branch_prefix: str,
    pre_release_name: str = "",
    current_major: int = 0,
    trigger_branch: str = "",
    target_branch: str = "",
    require_ordered_branches: bool = False,
) -> str:
    if kind is ReleaseKind.PRE_RELEASE:
        if branches is None:
            raise ValueError("branch snapshot is required for pre-releases")
        return next_pre_release_tag(
            tags,
            branches,
            current_major=current_major,
            release_branch_prefix=release_branch_prefix,
            pre_release_name=pre_release_name,
            require_ordered_branches=require_ordered_branches,
        )
    if kind is ReleaseKind.NEW_RELEASE_BRANCH:
        return next_release_branch(tags, release_branch_prefix=release_branch_prefix)
    if kind is ReleaseKind.FIX:
        return next_fix_tag(tags, release_branch_prefix=release_branch_prefix, trigger_branch=trigger_branch)
    if kind is ReleaseKind.FINAL:
        return next_final_tag(tags, target_branch=target_branch)
    raise PolicyViolation(f"release type '{kind.value}' is not available for the product")

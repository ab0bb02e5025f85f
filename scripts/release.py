"""Compute the next release identifier and publish it.

``resolve`` is pure over one snapshot of tags (and branches, when needed).
``run_release`` adds the side effects in a fixed order: version files are
committed before the tag is created, so the tag points at the bump commit.
Nothing is retried or rolled back here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from branch_index import BranchIndex
from component_resolver import resolve_component
from errors import NotFound
from product_resolver import resolve_product
from release_kinds import ReleaseKind, Scope
from shared import log_event
from tag_index import TagIndex
from version_files import VersionFileSpec, file_version
from version_string import parse_version, strip_prefix


LOGGER = logging.getLogger("release_tagger.release")


@dataclass(frozen=True)
class ReleaseRequest:
    scope: Scope
    kind: ReleaseKind
    component_prefix: str = ""
    release_branch_prefix: str = "release/v"
    pre_release_name: str = "rc"
    current_major: int = 0
    current_tag: str = ""
    target_branch: str = "main"
    trigger_branch: str = ""
    run_sha: str = ""
    dry_run: bool = False
    require_ordered_branches: bool = False
    version_files: tuple[VersionFileSpec, ...] = ()
    keep_tag_in_files: bool = True
    strip_prefix_in_files: bool = False
    commit_message: str = "chore: update version"
    commit_author: str = "github-actions[bot]"
    commit_author_email: str = "github-actions[bot]@users.noreply.github.com"

    @property
    def is_component(self) -> bool:
        return self.scope in (Scope.COMPONENT, Scope.QUERY)

    @property
    def is_read_only(self) -> bool:
        return self.scope is Scope.QUERY or self.kind is ReleaseKind.QUERY

    def tag_branch(self) -> str:
        """Branch the new tag is placed on; fixes go on the branch being fixed."""
        if self.kind is ReleaseKind.FIX:
            return self.trigger_branch
        return self.target_branch


@dataclass(frozen=True)
class ReleaseResult:
    identifier: str
    version: str = ""
    created: bool = False
    updated_files: tuple[str, ...] = ()

    def outputs(self) -> dict[str, str]:
        values = {"tag": self.identifier}
        if self.version:
            values["version"] = self.version
        return values


def resolve(request: ReleaseRequest, refs: Any) -> str:
    """Return the next identifier for ``request`` without changing anything remotely.

    ``refs`` provides ``list_tags()`` (newest first) and ``list_branches()``
    (oldest first); each is read at most once.
    """
    tags = TagIndex(refs.list_tags())

    if request.is_component:
        kind = ReleaseKind.QUERY if request.scope is Scope.QUERY else request.kind
        return resolve_component(
            kind,
            prefix=request.component_prefix,
            tags=tags,
            current_tag=request.current_tag,
        )

    branches = None
    if request.kind is ReleaseKind.PRE_RELEASE:
        branches = BranchIndex(refs.list_branches())
    return resolve_product(
        request.kind,
        tags=tags,
        branches=branches,
        release_branch_prefix=request.release_branch_prefix,
        pre_release_name=request.pre_release_name,
        current_major=request.current_major,
        trigger_branch=request.trigger_branch,
        target_branch=request.target_branch,
        require_ordered_branches=request.require_ordered_branches,
    )


def run_release(request: ReleaseRequest, refs: Any, updater: Any = None) -> ReleaseResult:
    """Resolve the identifier and, outside dry runs, create it.

    ``updater`` needs ``update_and_commit(specs, version, *, branch,
    commit_message, author_name, author_email)``; it is only called when
    version files are configured.
    """
    log_event(
        LOGGER,
        logging.INFO,
        "release_requested",
        scope=request.scope.value,
        type=request.kind.value,
        dry_run=request.dry_run,
    )
    identifier = resolve(request, refs)
    version = ""
    if request.is_component:
        parsed = parse_version(strip_prefix(identifier, request.component_prefix))
        version = parsed.bare if parsed is not None else ""

    if request.is_read_only or request.dry_run:
        log_event(LOGGER, logging.INFO, "release_resolved", identifier=identifier, created=False)
        return ReleaseResult(identifier=identifier, version=version)

    if request.kind.creates_branch:
        if not request.run_sha:
            raise NotFound("the commit to branch from is unknown")
        refs.create_branch_ref(identifier, request.run_sha)
        log_event(LOGGER, logging.INFO, "release_branch_created", branch=identifier)
        return ReleaseResult(identifier=identifier, created=True)

    branch = request.tag_branch()
    if not branch:
        raise NotFound(f"no branch to place tag '{identifier}' on")

    updated_files: list[str] = []
    if request.version_files and updater is not None:
        written = file_version(
            identifier,
            request.component_prefix,
            keep_tag=request.keep_tag_in_files,
            strip_component_prefix=request.strip_prefix_in_files,
        )
        updated_files = updater.update_and_commit(
            request.version_files,
            written,
            branch=branch,
            commit_message=request.commit_message,
            author_name=request.commit_author,
            author_email=request.commit_author_email,
        )

    refs.create_tag_ref(identifier, branch)
    log_event(LOGGER, logging.INFO, "release_tag_created", tag=identifier, branch=branch)
    return ReleaseResult(
        identifier=identifier,
        version=version,
        created=True,
        updated_files=tuple(updated_files),
    )

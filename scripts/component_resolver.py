"""Next-tag rules for a single prefixed component."""

from __future__ import annotations

import logging

from errors import NotFound, ParseFailure, PolicyViolation
from release_kinds import ReleaseKind
from shared import log_event
from tag_index import TagIndex
from version_string import Version, format_version, parse_version, strip_prefix


LOGGER = logging.getLogger("release_tagger.component")


def component_version(tag: str, prefix: str) -> Version:
    version = parse_version(strip_prefix(tag, prefix))
    if version is None:
        raise ParseFailure(f"cannot parse version from tag '{tag}' with prefix '{prefix}'")
    return version


def next_fix_tag(prefix: str, current_tag: str) -> str:
    if not current_tag:
        raise NotFound("a current component tag is required for a fix")
    version = component_version(current_tag, prefix)
    patch = version.patch if version.patch is not None else 0
    return f"{prefix}{format_version(version.major, version.minor, patch + 1)}"


def next_final_tag(prefix: str, tags: TagIndex) -> str:
    last_tag = tags.latest_with_prefix(prefix)
    if last_tag is None:
        raise NotFound(f"no tag found with prefix '{prefix}'")
    version = component_version(last_tag, prefix)
    log_event(LOGGER, logging.DEBUG, "component_last_tag", prefix=prefix, tag=last_tag)
    return f"{prefix}{format_version(version.major, version.minor + 1, 0)}"


def last_component_tag(prefix: str, tags: TagIndex) -> str:
    last_tag = tags.latest_with_prefix(prefix)
    if last_tag is None:
        raise NotFound(f"no tag found with prefix '{prefix}'")
    return last_tag


def resolve_component(kind: ReleaseKind, *, prefix: str, tags: TagIndex, current_tag: str = "") -> str:
    if kind is ReleaseKind.FIX:
        return next_fix_tag(prefix, current_tag)
    if kind is ReleaseKind.FINAL:
        return next_final_tag(prefix, tags)
    if kind is ReleaseKind.QUERY:
        return last_component_tag(prefix, tags)
    raise PolicyViolation(f"release type '{kind.value}' is not available for components")

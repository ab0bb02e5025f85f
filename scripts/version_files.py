"""Write a release version into YAML files and commit the change."""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from errors import CollaboratorFailure
from shared import log_event
from version_string import strip_prefix


LOGGER = logging.getLogger("release_tagger.version_files")
SKIP_SENTINEL = "skip"
YAML_SUFFIXES = (".yml", ".yaml")


@dataclass(frozen=True)
class VersionFileSpec:
    file: str
    property: str

    @property
    def keys(self) -> list[str]:
        return self.property.split(".")


def parse_file_specs(text: str) -> tuple[VersionFileSpec, ...]:
    """Read ``[{"file": ..., "property": ...}]``; empty input or ``skip`` means none."""
    stripped = (text or "").strip()
    if not stripped or stripped == SKIP_SENTINEL:
        return ()

    payload = json.loads(stripped)
    if not isinstance(payload, list):
        raise ValueError("version files must be a JSON array")

    specs: list[VersionFileSpec] = []
    for entry in payload:
        if not isinstance(entry, dict):
            raise ValueError("each version file entry must be an object")
        file_name = entry.get("file")
        prop = entry.get("property")
        if not isinstance(file_name, str) or not file_name.strip():
            raise ValueError("version file entry is missing 'file'")
        if not isinstance(prop, str) or not prop.strip():
            raise ValueError(f"version file entry for '{file_name}' is missing 'property'")
        specs.append(VersionFileSpec(file=file_name.strip(), property=prop.strip()))
    return tuple(specs)


def file_version(tag: str, prefix: str, *, keep_tag: bool, strip_component_prefix: bool) -> str:
    """Value written into version files for ``tag``.

    ``keep_tag`` writes the tag itself (e.g. ``api-v1.4.0``), otherwise the bare
    number (``1.4.0``) without prefix or leading ``v``.
    """
    if not keep_tag:
        bare = strip_prefix(tag, prefix)
        return bare[1:] if bare.startswith("v") else bare
    if strip_component_prefix:
        return strip_prefix(tag, prefix)
    return tag


def _round_trip_yaml() -> YAML:
    yaml = YAML()
    yaml.preserve_quotes = True
    return yaml


def set_dotted_property(document: CommentedMap, keys: list[str], value: str) -> None:
    node = document
    for key in keys[:-1]:
        child = node.get(key)
        if child is None:
            child = CommentedMap()
            node[key] = child
        elif not isinstance(child, dict):
            raise ValueError(f"'{key}' is not a mapping")
        node = child
    node[keys[-1]] = value


def update_yaml_file(path: Path, spec: VersionFileSpec, version: str) -> None:
    yaml = _round_trip_yaml()
    document = yaml.load(path)
    if document is None:
        document = CommentedMap()
    if not isinstance(document, dict):
        raise ValueError(f"{path} root must be a mapping")
    set_dotted_property(document, spec.keys, version)
    yaml.dump(document, path)


def update_version_in_files(specs: Sequence[VersionFileSpec], version: str, *, root: Path) -> list[str]:
    """Set each configured property to ``version``; returns the files that were written.

    Non-YAML and missing files are skipped with a warning.
    """
    updated: list[str] = []
    for spec in specs:
        if not spec.file.endswith(YAML_SUFFIXES):
            log_event(LOGGER, logging.WARNING, "version_file_not_yaml", file=spec.file)
            continue

        path = root / spec.file
        if not path.exists():
            log_event(LOGGER, logging.WARNING, "version_file_missing", file=str(path))
            continue

        try:
            update_yaml_file(path, spec, version)
        except (OSError, ValueError, YAMLError) as exc:
            raise CollaboratorFailure(f"updating {spec.file} failed: {exc}") from exc

        log_event(LOGGER, logging.INFO, "version_file_updated", file=spec.file, property=spec.property, version=version)
        updated.append(spec.file)
    return updated


def git(root: Path, *args: str) -> None:
    try:
        subprocess.run(["git", *args], cwd=root, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or exc.stdout or "").strip()
        raise CollaboratorFailure(f"git {args[0]} failed: {detail}") from exc
    except OSError as exc:
        raise CollaboratorFailure(f"git {args[0]} could not run: {exc}") from exc


def commit_changes(branch: str, message: str, author_name: str, author_email: str, *, root: Path) -> None:
    git(root, "checkout", branch)
    git(root, "add", "-A")
    git(root, "config", "--local", "user.name", author_name)
    git(root, "config", "--local", "user.email", author_email)
    git(root, "commit", "--no-verify", "-m", message)
    git(root, "push")
    log_event(LOGGER, logging.INFO, "version_commit_pushed", branch=branch)


class VersionFileUpdater:
    """Update version files in a checkout, then commit and push them."""

    def __init__(self, root: Path):
        self.root = root

    def update_and_commit(
        self,
        specs: Sequence[VersionFileSpec],
        version: str,
        *,
        branch: str,
        commit_message: str,
        author_name: str,
        author_email: str,
    ) -> list[str]:
        updated = update_version_in_files(specs, version, root=self.root)
        if updated:
            commit_changes(branch, commit_message, author_name, author_email, root=self.root)
        else:
            log_event(LOGGER, logging.INFO, "version_files_unchanged")
        return updated

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

import pytest
import requests


REPO_ROOT = Path(__file__).resolve().parents[1]


def load_script_module(module_name: str, relative_path: str) -> ModuleType:
    module_path = REPO_ROOT / relative_path
    scripts_dir = str(module_path.parent)
    if scripts_dir not in sys.path:
        sys.path.insert(0, scripts_dir)

    spec = importlib.util.spec_from_file_location(module_name, module_path)
    if spec is None or spec.loader is None:
        raise RuntimeError(f"unable to load module from {module_path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class FakeResponse:
    def __init__(self, *, status_code: int, json_data: Any = None, text: str = ""):
        self.status_code = status_code
        self._json_data = json_data
        self.text = text

    def json(self) -> Any:
        return self._json_data

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            error = requests.HTTPError(f"HTTP {self.status_code}")
            error.response = self
            raise error


class RequestSequenceSession:
    def __init__(self, outcomes: list[object]):
        self._outcomes = list(outcomes)
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def request(self, *, method: str, url: str, timeout: int, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, "timeout": timeout, "kwargs": kwargs})
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


class FakeRefs:
    """In-memory stand-in for the GitHub refs client."""

    def __init__(
        self,
        *,
        tags: list[str] | None = None,
        branches: list[str] | None = None,
        create_error: Exception | None = None,
    ):
        self.tags = list(tags or [])
        self.branches = list(branches or [])
        self.create_error = create_error
        self.calls: list[tuple] = []
        self.closed = False

    def list_tags(self) -> list[str]:
        self.calls.append(("list_tags",))
        return list(self.tags)

    def list_branches(self) -> list[str]:
        self.calls.append(("list_branches",))
        return list(self.branches)

    def create_tag_ref(self, name: str, branch: str) -> None:
        self.calls.append(("create_tag_ref", name, branch))
        if self.create_error is not None:
            raise self.create_error

    def create_branch_ref(self, name: str, sha: str) -> None:
        self.calls.append(("create_branch_ref", name, sha))
        if self.create_error is not None:
            raise self.create_error

    def __enter__(self) -> "FakeRefs":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.closed = True

    def creation_calls(self) -> list[tuple]:
        return [call for call in self.calls if call[0].startswith("create_")]


class RecordingUpdater:
    def __init__(self, updated: list[str] | None = None, events: list[tuple] | None = None):
        self.updated = updated if updated is not None else ["chart/values.yaml"]
        self.calls: list[dict[str, Any]] = []
        self.events = events

    def update_and_commit(self, specs, version: str, **kwargs: Any) -> list[str]:
        self.calls.append({"specs": specs, "version": version, **kwargs})
        if self.events is not None:
            self.events.append(("update_and_commit", version))
        return self.updated


@pytest.fixture
def request_session_factory():
    return RequestSequenceSession


@pytest.fixture
def fake_refs_factory():
    return FakeRefs


@pytest.fixture
def recording_updater_factory():
    return RecordingUpdater


@pytest.fixture(scope="session")
def next_version():
    return load_script_module("release_tagger_next_version", "scripts/next-version.py")

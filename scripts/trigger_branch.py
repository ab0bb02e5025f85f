"""Work out which branch triggered the current workflow run.

Two sources are consulted, in this order:

1. ``workflow_run`` - ``workflow_run.head_branch`` from the event payload, set
   when this run was started by another workflow finishing;
2. ``ref`` - the run's own ``GITHUB_REF`` with ``refs/heads/`` removed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from errors import NotFound


HEADS_PREFIX = "refs/heads/"


class BranchSource(str, Enum):
    WORKFLOW_RUN = "workflow_run"
    REF = "ref"


@dataclass(frozen=True)
class TriggerBranch:
    name: str
    source: BranchSource


def load_event_payload(path: Path | None) -> dict[str, Any]:
    if path is None or not path.exists():
        return {}
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"event payload in {path} must be a JSON object")
    return payload


def workflow_run_branch(payload: dict[str, Any]) -> str:
    workflow_run = payload.get("workflow_run")
    if not isinstance(workflow_run, dict):
        return ""
    head_branch = workflow_run.get("head_branch")
    return head_branch.strip() if isinstance(head_branch, str) else ""


def ref_branch(ref: str) -> str:
    ref = (ref or "").strip()
    if ref.startswith(HEADS_PREFIX):
        return ref[len(HEADS_PREFIX):]
    return ref


def resolve_trigger_branch(payload: dict[str, Any], ref: str) -> TriggerBranch:
    head_branch = workflow_run_branch(payload)
    if head_branch:
        return TriggerBranch(head_branch, BranchSource.WORKFLOW_RUN)
    branch = ref_branch(ref)
    if branch:
        return TriggerBranch(branch, BranchSource.REF)
    raise NotFound("no workflow_run head branch or ref available to identify the trigger branch")

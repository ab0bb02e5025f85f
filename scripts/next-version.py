#!/usr/bin/env python3
"""Compute, and optionally create, the next release tag or release branch."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

import requests

from errors import NotFound, ReleaseError
from github_refs import GitHubRefs
from release import ReleaseRequest, ReleaseResult, run_release
from release_kinds import ReleaseKind, Scope
from shared import DEFAULT_GITHUB_API_BASE_URL, REPOSITORY_RE, configure_logging, log_event
from trigger_branch import load_event_payload, resolve_trigger_branch
from version_files import VersionFileUpdater, parse_file_specs


LOGGER = logging.getLogger("release_tagger.next_version")
TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
FALSE_VALUES = frozenset({"false", "0", "no", "off", ""})


def parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got '{value}'")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compute the next component/product tag or release branch and optionally create it."
    )
    parser.add_argument("--github-token", required=True, help="GitHub token with contents write access.")
    parser.add_argument("--repository", required=True, help="GitHub repository in owner/repo format.")
    parser.add_argument("--mode", required=True, choices=[scope.value for scope in Scope], help="Release scope.")
    parser.add_argument("--type", required=True, choices=[kind.value for kind in ReleaseKind], help="Release type.")
    parser.add_argument("--component-prefix", default="", help="Tag prefix of the component (e.g. api-).")
    parser.add_argument("--release-branch-prefix", default="release/v", help="Release branch prefix.")
    parser.add_argument("--pre-release-name", default="rc", help="Pre-release label (e.g. rc).")
    parser.add_argument("--current-major", type=int, default=0, help="Major version of the product cycle.")
    parser.add_argument("--current-tag", default="", help="Current component tag, required for component fixes.")
    parser.add_argument("--default-branch", default="main", help="Branch that final and pre-release tags go on.")
    parser.add_argument("--dry-run", type=parse_bool, default=False, help="Compute only; create nothing.")
    parser.add_argument(
        "--version-files",
        default="skip",
        help='JSON list of {"file": ..., "property": ...} YAML targets, or "skip".',
    )
    parser.add_argument(
        "--keep-tag-in-files",
        type=parse_bool,
        default=True,
        help="Write the full tag into version files instead of the bare number.",
    )
    parser.add_argument(
        "--strip-prefix-in-files",
        type=parse_bool,
        default=False,
        help="Drop the component prefix from the tag written into version files.",
    )
    parser.add_argument("--commit-message", default="chore: update version", help="Version bump commit message.")
    parser.add_argument("--commit-author", default="github-actions[bot]", help="Version bump commit author.")
    parser.add_argument(
        "--commit-author-email",
        default="github-actions[bot]@users.noreply.github.com",
        help="Version bump commit author email.",
    )
    parser.add_argument(
        "--require-ordered-release-branches",
        type=parse_bool,
        default=False,
        help="Fail pre-releases when release branches were created out of version order.",
    )
    parser.add_argument("--event-path", default=os.getenv("GITHUB_EVENT_PATH", ""), help="Event payload JSON path.")
    parser.add_argument("--ref", default=os.getenv("GITHUB_REF", ""), help="Ref that triggered the run.")
    parser.add_argument("--sha", default=os.getenv("GITHUB_SHA", ""), help="Commit new release branches start from.")
    parser.add_argument(
        "--github-output",
        default=os.getenv("GITHUB_OUTPUT", ""),
        help="File that receives step outputs (tag, version).",
    )
    parser.add_argument("--workspace", default=".", help="Checkout that version files live in.")
    parser.add_argument("--api-base-url", default=DEFAULT_GITHUB_API_BASE_URL, help="GitHub API base URL.")
    parser.add_argument("--timeout", type=int, default=30, help="HTTP timeout in seconds.")
    parser.add_argument(
        "--retries",
        type=int,
        default=2,
        help="Retries for retryable failures while listing tags and branches (default: 2).",
    )
    parser.add_argument(
        "--retry-backoff",
        type=float,
        default=1.0,
        help="Base backoff seconds between retries (default: 1.0).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Structured log verbosity written to stderr.",
    )
    return parser.parse_args(argv)


def validate_args(args: argparse.Namespace) -> None:
    if not args.github_token or not args.github_token.strip():
        raise ValueError("github-token must be non-empty")
    if not args.repository or not REPOSITORY_RE.match(args.repository):
        raise ValueError("repository must match owner/repo")
    if args.current_major < 0:
        raise ValueError("current-major cannot be negative")
    if args.timeout <= 0:
        raise ValueError("timeout must be greater than zero")
    if args.retries < 0:
        raise ValueError("retries cannot be negative")
    if args.retry_backoff < 0:
        raise ValueError("retry-backoff cannot be negative")
    if not args.api_base_url.startswith(("http://", "https://")):
        raise ValueError("api-base-url must start with http:// or https://")

    scope = Scope(args.mode)
    kind = ReleaseKind(args.type)
    if scope is Scope.QUERY and kind is not ReleaseKind.QUERY:
        raise ValueError("query mode only supports type component-last-version")
    if scope is Scope.COMPONENT and kind not in (ReleaseKind.FIX, ReleaseKind.FINAL, ReleaseKind.QUERY):
        raise ValueError(f"component mode does not support type {kind.value}")
    if scope is Scope.PRODUCT and kind is ReleaseKind.QUERY:
        raise ValueError("product mode does not support type component-last-version")
    if scope is Scope.PRODUCT and kind is ReleaseKind.PRE_RELEASE and not args.pre_release_name.strip():
        raise ValueError("pre-release-name must be non-empty for pre-releases")


def build_request(args: argparse.Namespace) -> ReleaseRequest:
    kind = ReleaseKind(args.type)
    trigger_branch = ""
    if kind is ReleaseKind.FIX:
        event_path = Path(args.event_path) if args.event_path else None
        try:
            trigger = resolve_trigger_branch(load_event_payload(event_path), args.ref)
        except NotFound as exc:
            # Product fixes and non-dry component fixes fail later without it.
            log_event(LOGGER, logging.WARNING, "trigger_branch_unknown", error=str(exc))
        else:
            log_event(LOGGER, logging.INFO, "trigger_branch_resolved", branch=trigger.name, source=trigger.source.value)
            trigger_branch = trigger.name

    return ReleaseRequest(
        scope=Scope(args.mode),
        kind=kind,
        component_prefix=args.component_prefix,
        release_branch_prefix=args.release_branch_prefix,
        pre_release_name=args.pre_release_name.strip(),
        current_major=args.current_major,
        current_tag=args.current_tag.strip(),
        target_branch=args.default_branch.strip(),
        trigger_branch=trigger_branch,
        run_sha=args.sha.strip(),
        dry_run=args.dry_run,
        require_ordered_branches=args.require_ordered_release_branches,
        version_files=parse_file_specs(args.version_files),
        keep_tag_in_files=args.keep_tag_in_files,
        strip_prefix_in_files=args.strip_prefix_in_files,
        commit_message=args.commit_message,
        commit_author=args.commit_author,
        commit_author_email=args.commit_author_email,
    )


def write_github_output(path: str, result: ReleaseResult) -> None:
    if not path:
        return
    with Path(path).open("a", encoding="utf-8") as handle:
        for key, value in result.outputs().items():
            handle.write(f"{key}={value}\n")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        validate_args(args)
        request = build_request(args)
    except (ValueError, json.JSONDecodeError, OSError) as exc:
        log_event(LOGGER, logging.ERROR, "invalid_input", error=str(exc))
        return 1

    updater = VersionFileUpdater(Path(args.workspace))
    try:
        with GitHubRefs(
            token=args.github_token,
            repository=args.repository,
            api_base_url=args.api_base_url,
            timeout=args.timeout,
            retries=args.retries,
            retry_backoff=args.retry_backoff,
        ) as refs:
            result = run_release(request, refs, updater)
    except ReleaseError as exc:
        log_event(LOGGER, logging.ERROR, "release_failed", error_type=type(exc).__name__, error=str(exc))
        return 1
    except requests.RequestException as exc:
        log_event(LOGGER, logging.ERROR, "github_request_failed", error=str(exc))
        return 1

    try:
        write_github_output(args.github_output, result)
    except OSError as exc:
        log_event(LOGGER, logging.ERROR, "output_write_failed", path=args.github_output, error=str(exc))
        return 1

    log_event(LOGGER, logging.INFO, "release_complete", **result.outputs(), created=result.created)
    print(result.identifier)
    return 0


if __name__ == "__main__":
    sys.exit(main())

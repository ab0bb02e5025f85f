"""GitHub REST access for tags and branches.

``list_tags`` returns names newest first and ``list_branches`` returns names
oldest first; both are the orders the GitHub API uses and the indexes rely on
them. Listing requests retry transient failures, creation requests never do.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from errors import BranchAlreadyExists, CollaboratorFailure
from shared import fetch_all_pages, github_headers, log_event, request_with_retry


LOGGER = logging.getLogger("release_tagger.github_refs")
REFERENCE_EXISTS_STATUS = 422


def _http_failure(action: str, exc: requests.RequestException) -> CollaboratorFailure:
    response = getattr(exc, "response", None)
    if response is None:
        return CollaboratorFailure(f"{action} failed: {exc}")
    return CollaboratorFailure(
        f"{action} failed with HTTP {response.status_code}: {response.text}",
        status_code=response.status_code,
        response_body=response.text,
    )


class GitHubRefs:
    def __init__(
        self,
        *,
        token: str,
        repository: str,
        api_base_url: str,
        timeout: int,
        retries: int,
        retry_backoff: float,
        session: requests.Session | None = None,
    ):
        self.repository = repository
        self.api_base_url = api_base_url.rstrip("/")
        self.headers = github_headers(token)
        self.timeout = timeout
        self.retries = retries
        self.retry_backoff = retry_backoff
        self._owns_session = session is None
        self.session = session or requests.Session()

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "GitHubRefs":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def _url(self, path: str) -> str:
        return f"{self.api_base_url}/repos/{self.repository}/{path}"

    def _list_names(self, path: str) -> list[str]:
        try:
            items = fetch_all_pages(
                LOGGER,
                self.session,
                self._url(path),
                headers=self.headers,
                timeout=self.timeout,
                retries=self.retries,
                retry_backoff=self.retry_backoff,
            )
        except requests.RequestException as exc:
            raise _http_failure(f"listing {path}", exc) from exc
        except RuntimeError as exc:
            raise CollaboratorFailure(f"listing {path} failed: {exc}") from exc
        names = [str(item["name"]) for item in items if isinstance(item, dict) and item.get("name")]
        log_event(LOGGER, logging.DEBUG, "refs_listed", kind=path, count=len(names))
        return names

    def list_tags(self) -> list[str]:
        return self._list_names("tags")

    def list_branches(self) -> list[str]:
        return self._list_names("branches")

    def _send(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        response = request_with_retry(
            LOGGER,
            self.session,
            method,
            self._url(path),
            headers=self.headers,
            timeout=self.timeout,
            retries=0 if method != "GET" else self.retries,
            retry_backoff=self.retry_backoff,
            **kwargs,
        )
        try:
            return response.json()
        except ValueError as exc:
            raise CollaboratorFailure(f"{method} {path} returned invalid JSON") from exc

    def branch_head_sha(self, branch: str) -> str:
        try:
            payload = self._send("GET", f"branches/{branch}")
        except requests.RequestException as exc:
            raise _http_failure(f"reading branch '{branch}'", exc) from exc
        sha = (payload.get("commit") or {}).get("sha")
        if not isinstance(sha, str) or not sha:
            raise CollaboratorFailure(f"branch '{branch}' did not report a head commit")
        return sha

    def create_tag_ref(self, name: str, branch: str) -> None:
        """Create an annotated tag ``name`` at the head of ``branch``, plus its ref."""
        commit_sha = self.branch_head_sha(branch)
        try:
            tag_object = self._send(
                "POST",
                "git/tags",
                json={
                    "tag": name,
                    "message": f"Release {name}",
                    "object": commit_sha,
                    "type": "commit",
                },
            )
            self._send("POST", "git/refs", json={"ref": f"refs/tags/{name}", "sha": tag_object["sha"]})
        except requests.RequestException as exc:
            raise _http_failure(f"creating tag '{name}'", exc) from exc
        log_event(LOGGER, logging.INFO, "tag_created", tag=name, branch=branch, commit=commit_sha)

    def create_branch_ref(self, name: str, sha: str) -> None:
        try:
            self._send("POST", "git/refs", json={"ref": f"refs/heads/{name}", "sha": sha})
        except requests.HTTPError as exc:
            failure = _http_failure(f"creating branch '{name}'", exc)
            if failure.status_code == REFERENCE_EXISTS_STATUS:
                raise BranchAlreadyExists(
                    f"the release branch '{name}' already exists",
                    status_code=failure.status_code,
                    response_body=failure.response_body,
                ) from exc
            raise failure from exc
        except requests.RequestException as exc:
            raise _http_failure(f"creating branch '{name}'", exc) from exc
        log_event(LOGGER, logging.INFO, "branch_created", branch=name, commit=sha)

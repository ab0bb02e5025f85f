#!/usr/bin/env python3
"""Shared script utilities.

Structured logging, GitHub request headers and HTTP retry live here so the
release scripts stay small.
"""

from __future__ import annotations

import json
import logging
import re
import sys
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import requests


RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
REPOSITORY_RE = re.compile(r"^[^/\s]+/[^/\s]+$")
DEFAULT_GITHUB_API_BASE_URL = "https://api.github.com"


def configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, sort_keys=True, default=str))


def github_headers(token: str) -> dict[str, str]:
    return {
        "Accept": "application/vnd.github+json",
        "Authorization": f"Bearer {token}",
        "X-GitHub-Api-Version": "2022-11-28",
        "Content-Type": "application/json",
    }


def request_with_retry(
    logger: logging.Logger,
    session: "requests.Session",
    method: str,
    url: str,
    *,
    timeout: int,
    retries: int,
    retry_backoff: float,
    **kwargs: Any,
) -> "requests.Response":
    # Lazy import: the resolver modules only need the logging helpers.
    import requests

    total_attempts = retries + 1
    method_upper = method.upper()

    for attempt in range(1, total_attempts + 1):
        try:
            response = session.request(method=method_upper, url=url, timeout=timeout, **kwargs)
        except (requests.Timeout, requests.ConnectionError) as exc:
            if attempt >= total_attempts:
                raise

            delay = retry_backoff * (2 ** (attempt - 1))
            log_event(
                logger,
                logging.WARNING,
                "http_retry_exception",
                attempt=attempt,
                max_attempts=total_attempts,
                method=method_upper,
                url=url,
                wait_seconds=delay,
                error_type=type(exc).__name__,
            )
            time.sleep(delay)
            continue

        if response.status_code in RETRYABLE_STATUS_CODES and attempt < total_attempts:
            delay = retry_backoff * (2 ** (attempt - 1))
            log_event(
                logger,
                logging.WARNING,
                "http_retry_status",
                attempt=attempt,
                max_attempts=total_attempts,
                method=method_upper,
                url=url,
                status_code=response.status_code,
                wait_seconds=delay,
            )
            time.sleep(delay)
            continue

        response.raise_for_status()
        return response

    raise RuntimeError("failed to receive HTTP response")


def fetch_all_pages(
    logger: logging.Logger,
    session: "requests.Session",
    url: str,
    *,
    headers: dict[str, str],
    timeout: int,
    retries: int,
    retry_backoff: float,
    per_page: int = 100,
) -> list[Any]:
    """Collect every item of a paginated GitHub list endpoint, in API order.

    Stops at the first short page, so a full last page costs one extra request.
    """
    items: list[Any] = []
    page = 1
    while True:
        response = request_with_retry(
            logger,
            session,
            "GET",
            url,
            headers=headers,
            params={"per_page": per_page, "page": page},
            timeout=timeout,
            retries=retries,
            retry_backoff=retry_backoff,
        )
        try:
            payload = response.json()
        except ValueError as exc:
            raise RuntimeError(f"response from {url} was not valid JSON") from exc
        if not isinstance(payload, list):
            raise RuntimeError(f"response from {url} was not a list")
        items.extend(payload)
        if len(payload) < per_page:
            break
        page += 1
    return items

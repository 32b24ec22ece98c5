"""REST path: pull request summary and page-numbered commit listing."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import httpx

from prgateway.config import GatewaySettings
from prgateway.github_client import (
    request_json,
    request_json_list,
    require_int,
    require_object,
    require_str,
)
from prgateway.mapper import map_rest_commits
from prgateway.models import Commit, PullRequestRef, RestPullSummary

logger = logging.getLogger(__name__)

REST_PAGE_SIZE = 100


def fetch_rest_pull_summary(client: httpx.Client, ref: PullRequestRef) -> RestPullSummary:
    """Fetch the commit count and head sha of a pull request."""
    endpoint = f"/repos/{ref.owner}/{ref.repo}/pulls/{ref.number}"
    payload = request_json(client, endpoint)
    head_payload = require_object(payload, key="head", endpoint=endpoint)
    return RestPullSummary(
        commits=require_int(payload, key="commits", endpoint=endpoint),
        head_sha=require_str(head_payload, key="sha", endpoint=endpoint),
    )


def iter_rest_commit_pages(
    client: httpx.Client,
    ref: PullRequestRef,
    *,
    head_sha: str,
    max_pages: int,
    per_page: int = REST_PAGE_SIZE,
) -> Iterator[tuple[Commit, ...]]:
    """Yield non-empty commit pages reachable from ``head_sha``, newest first.

    Stops after an empty page, a short page, or ``max_pages`` requests.
    """
    endpoint = f"/repos/{ref.owner}/{ref.repo}/commits"
    for page in range(1, max_pages + 1):
        rows = request_json_list(
            client,
            endpoint,
            params={"sha": head_sha, "per_page": per_page, "page": page},
        )
        logger.debug("REST commits page %d for %s: %d commits", page, ref, len(rows))
        if not rows:
            return
        yield map_rest_commits(rows, endpoint=endpoint)
        if len(rows) < per_page:
            return


def fetch_fallback_commits(
    client: httpx.Client,
    ref: PullRequestRef,
    *,
    head_sha: str,
    expected_count: int,
    settings: GatewaySettings,
) -> tuple[Commit, ...]:
    """List the pull request's commits through the REST API, oldest first.

    The listing walks the whole history of ``head_sha`` newest-first, so only
    the first ``expected_count`` entries belong to the pull request. Returns an
    empty tuple when the first page is empty.
    """
    collected: list[Commit] = []
    pages = iter_rest_commit_pages(
        client,
        ref,
        head_sha=head_sha,
        max_pages=settings.rest_max_pages,
    )
    for page in pages:
        collected.extend(page)
        if len(collected) >= expected_count:
            pages.close()
            break

    # Known limitation: when the branch merged its base, the newest
    # expected_count history entries can include base-branch commits.
    commits = collected[:expected_count]
    commits.reverse()
    return tuple(commits)

"""Pull request gateway: GraphQL first, REST fallback, reconciled commit list."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import httpx

from prgateway.config import GatewaySettings
from prgateway.github_client import GitHubApiError
from prgateway.graphql_fetcher import fetch_primary
from prgateway.mapper import map_graphql_pull_request
from prgateway.models import Commit, PullRequest, PullRequestRef
from prgateway.reconcile import FALLBACK_EMPTY_WARNING, reconcile
from prgateway.rest_fetcher import fetch_fallback_commits, fetch_rest_pull_summary

logger = logging.getLogger(__name__)


@contextmanager
def _failing_path(ref: PullRequestRef, path: str) -> Iterator[None]:
    """Tag GitHub errors raised inside the block with the ref and source path."""
    try:
        yield
    except GitHubApiError as error:
        if error.ref is None:
            error.ref = str(ref)
        if error.path is None:
            error.path = path
        raise


class PullRequestGateway:
    """Fetches normalized pull requests through an injected HTTP client.

    The client is the only shared state; it must be rooted at the REST base
    URL for ``settings.domain`` (see ``build_github_client``). Each call owns
    its own page accumulators, so one gateway can serve concurrent callers.
    """

    def __init__(self, client: httpx.Client, settings: GatewaySettings | None = None) -> None:
        self._client = client
        self._settings = settings or GatewaySettings()

    @property
    def settings(self) -> GatewaySettings:
        return self._settings

    def fetch_pull_request(self, ref: PullRequestRef, include_commits: bool = True) -> PullRequest:
        """Fetch one pull request; with ``include_commits`` False only metadata is read."""
        with _failing_path(ref, "graphql"):
            primary = fetch_primary(
                self._client,
                ref,
                include_commits=include_commits,
                settings=self._settings,
            )

        total_commits = primary.total_count
        fallback: tuple[Commit, ...] | None = None
        fallback_invoked = False
        if include_commits and primary.insufficient:
            logger.info(
                "GraphQL returned %d of %d commits for %s; listing commits through REST",
                len(primary.commits),
                primary.total_count,
                ref,
            )
            with _failing_path(ref, "rest"):
                summary = fetch_rest_pull_summary(self._client, ref)
                fallback = fetch_fallback_commits(
                    self._client,
                    ref,
                    head_sha=summary.head_sha,
                    expected_count=summary.commits,
                    settings=self._settings,
                )
            fallback_invoked = True
            total_commits = summary.commits

        outcome = reconcile(primary.commits, primary.insufficient, fallback, fallback_invoked)

        warnings: list[str] = []
        if outcome.reverted:
            warnings.append(FALLBACK_EMPTY_WARNING)
        if include_commits and len(outcome.commits) != total_commits:
            message = (
                f"Commit list for {ref} is incomplete: "
                f"{len(outcome.commits)} of {total_commits} commits retrieved."
            )
            logger.warning(message)
            warnings.append(message)

        with _failing_path(ref, "graphql"):
            return map_graphql_pull_request(
                primary.repository,
                commits=outcome.commits,
                endpoint=self._settings.graphql_url,
                total_commits=total_commits if include_commits else None,
                commits_source=outcome.source if include_commits else None,
                warnings=tuple(warnings),
            )


def fetch_pull_request(
    *,
    client: httpx.Client,
    ref: PullRequestRef,
    include_commits: bool = True,
    settings: GatewaySettings | None = None,
) -> PullRequest:
    """Fetch one pull request with a throwaway gateway."""
    return PullRequestGateway(client, settings).fetch_pull_request(ref, include_commits)

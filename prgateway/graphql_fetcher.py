"""GraphQL path: pull request metadata plus cursor-paginated commits."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import httpx

from prgateway.config import GatewaySettings
from prgateway.github_client import (
    GitHubNotFoundError,
    GitHubShapeError,
    optional_str,
    post_graphql,
    require_bool,
    require_int,
    require_object,
)
from prgateway.mapper import map_graphql_commit_nodes
from prgateway.models import GraphCommitsPage, PrimaryResult, PullRequestRef

logger = logging.getLogger(__name__)

PULL_REQUEST_QUERY = """
query PullRequest(
  $owner: String!
  $repo: String!
  $number: Int!
  $commitPageSize: Int!
  $cursor: String
  $withCommits: Boolean!
) {
  repository(owner: $owner, name: $repo) {
    isPrivate
    pullRequest(number: $number) {
      url
      title
      number
      body
      author {
        login
      }
      assignees(first: 100) {
        edges {
          node {
            login
          }
        }
      }
      baseRef {
        name
      }
      headRef {
        name
        target {
          oid
          ... on Commit {
            tree {
              entries {
                name
                path
              }
            }
          }
        }
      }
      commits(first: $commitPageSize, after: $cursor) {
        totalCount
        edges @include(if: $withCommits) {
          node {
            commit {
              message
              oid
            }
          }
        }
        pageInfo {
          hasNextPage
          endCursor
        }
      }
    }
  }
}
"""


def _parse_commits_page(repository: dict[str, Any], *, endpoint: str) -> GraphCommitsPage:
    """Read one commit connection page out of ``data.repository``."""
    pull_request = require_object(repository, key="pullRequest", endpoint=endpoint)
    connection = require_object(pull_request, key="commits", endpoint=endpoint)
    page_info = require_object(connection, key="pageInfo", endpoint=endpoint)
    end_cursor = optional_str(page_info, key="endCursor", endpoint=endpoint)
    return GraphCommitsPage(
        commits=map_graphql_commit_nodes(connection, endpoint=endpoint),
        total_count=require_int(connection, key="totalCount", endpoint=endpoint),
        has_next_page=require_bool(page_info, key="hasNextPage", endpoint=endpoint),
        end_cursor=end_cursor or None,
    )


def _query_repository(
    client: httpx.Client,
    ref: PullRequestRef,
    *,
    graphql_url: str,
    page_size: int,
    cursor: str | None,
    with_commits: bool,
) -> dict[str, Any]:
    """Run the pull request query for one page and return ``data.repository``."""
    data = post_graphql(
        client,
        graphql_url,
        query=PULL_REQUEST_QUERY,
        variables={
            "owner": ref.owner,
            "repo": ref.repo,
            "number": ref.number,
            "commitPageSize": page_size,
            "cursor": cursor,
            "withCommits": with_commits,
        },
    )
    repository = data.get("repository")
    missing_pull_request = isinstance(repository, dict) and repository.get("pullRequest") is None
    if repository is None or missing_pull_request:
        raise GitHubNotFoundError(
            f"Pull request {ref} was not found or is not accessible.",
            status_code=None,
            endpoint=graphql_url,
            error_type="NOT_FOUND",
        )
    if not isinstance(repository, dict):
        raise GitHubShapeError(
            "Expected object field 'repository' in GitHub response.",
            endpoint=graphql_url,
        )
    return repository


def iter_graphql_pages(
    client: httpx.Client,
    ref: PullRequestRef,
    *,
    graphql_url: str,
    page_size: int,
    max_pages: int,
    with_commits: bool = True,
) -> Iterator[tuple[dict[str, Any], GraphCommitsPage]]:
    """Yield ``(repository, page)`` pairs, one query per page, following ``endCursor``.

    Requests are issued lazily, so a consumer that stops iterating after the
    first page never triggers the next query.
    """
    cursor: str | None = None
    for page_number in range(1, max_pages + 1):
        repository = _query_repository(
            client,
            ref,
            graphql_url=graphql_url,
            page_size=page_size,
            cursor=cursor,
            with_commits=with_commits,
        )
        page = _parse_commits_page(repository, endpoint=graphql_url)
        logger.debug(
            "GraphQL page %d for %s: %d commits (total %d, has_next_page=%s)",
            page_number,
            ref,
            len(page.commits),
            page.total_count,
            page.has_next_page,
        )
        yield repository, page
        if not with_commits or not page.has_next_page or page.end_cursor is None:
            return
        cursor = page.end_cursor


def fetch_primary(
    client: httpx.Client,
    ref: PullRequestRef,
    *,
    include_commits: bool,
    settings: GatewaySettings,
) -> PrimaryResult:
    """Fetch metadata and as many commits as GraphQL reliably returns."""
    pages = iter_graphql_pages(
        client,
        ref,
        graphql_url=settings.graphql_url,
        page_size=settings.commit_page_size,
        max_pages=settings.graphql_max_pages,
        with_commits=include_commits,
    )
    repository, first_page = next(pages)
    total_count = first_page.total_count

    if not include_commits:
        pages.close()
        return PrimaryResult(
            repository=repository,
            commits=(),
            total_count=total_count,
            insufficient=False,
        )

    commits = list(first_page.commits)
    pages_fetched = 1
    if total_count > 0 and not commits:
        logger.info(
            "GraphQL returned no commit nodes for %s despite totalCount=%d",
            ref,
            total_count,
        )
        pages.close()
        return PrimaryResult(
            repository=repository,
            commits=(),
            total_count=total_count,
            insufficient=True,
        )

    if total_count > settings.graphql_commit_threshold:
        logger.info(
            "%s has %d commits, above the GraphQL threshold of %d",
            ref,
            total_count,
            settings.graphql_commit_threshold,
        )
        pages.close()
        return PrimaryResult(
            repository=repository,
            commits=tuple(commits),
            total_count=total_count,
            insufficient=True,
        )

    for _repository, page in pages:
        commits.extend(page.commits)
        pages_fetched += 1

    insufficient = len(commits) != total_count
    if insufficient:
        logger.info(
            "GraphQL pagination for %s stopped at %d of %d commits after %d page(s)",
            ref,
            len(commits),
            total_count,
            pages_fetched,
        )
    return PrimaryResult(
        repository=repository,
        commits=tuple(commits),
        total_count=total_count,
        insufficient=insufficient,
        pages_fetched=pages_fetched,
    )

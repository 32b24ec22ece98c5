"""Pure mapping from GraphQL and REST payloads to canonical records."""

from __future__ import annotations

from typing import Any

from prgateway.github_client import (
    GitHubShapeError,
    optional_object,
    optional_str,
    require_bool,
    require_int,
    require_object,
    require_str,
)
from prgateway.models import Commit, CommitsSource, PullRequest


def _edge_nodes(
    connection: dict[str, Any], *, endpoint: str, field_name: str
) -> list[dict[str, Any]]:
    """Return the non-null ``node`` objects of a GraphQL connection."""
    edges = connection.get("edges")
    if edges is None:
        return []
    if not isinstance(edges, list):
        raise GitHubShapeError(
            f"Expected '{field_name}.edges' to be a list in GitHub response.",
            endpoint=endpoint,
        )
    nodes: list[dict[str, Any]] = []
    for edge in edges:
        if not isinstance(edge, dict):
            continue
        node = edge.get("node")
        if isinstance(node, dict):
            nodes.append(node)
    return nodes


def map_graphql_commit_nodes(connection: dict[str, Any], *, endpoint: str) -> tuple[Commit, ...]:
    """Map ``commits.edges[].node.commit`` entries, keeping server order."""
    commits: list[Commit] = []
    for node in _edge_nodes(connection, endpoint=endpoint, field_name="commits"):
        commit_payload = require_object(node, key="commit", endpoint=endpoint)
        commits.append(
            Commit(
                message=require_str(commit_payload, key="message", endpoint=endpoint),
                oid=require_str(commit_payload, key="oid", endpoint=endpoint),
            )
        )
    return tuple(commits)


def map_rest_commits(rows: list[dict[str, Any]], *, endpoint: str) -> tuple[Commit, ...]:
    """Map REST ``{sha, commit: {message}}`` rows, keeping response order."""
    commits: list[Commit] = []
    for row in rows:
        commit_payload = require_object(row, key="commit", endpoint=endpoint)
        commits.append(
            Commit(
                message=require_str(commit_payload, key="message", endpoint=endpoint),
                oid=require_str(row, key="sha", endpoint=endpoint),
            )
        )
    return tuple(commits)


def _assignee_logins(pull_request: dict[str, Any], *, endpoint: str) -> tuple[str, ...]:
    assignees = optional_object(pull_request, key="assignees")
    logins: list[str] = []
    for node in _edge_nodes(assignees, endpoint=endpoint, field_name="assignees"):
        login = optional_str(node, key="login", endpoint=endpoint)
        if login:
            logins.append(login)
    return tuple(logins)


def _tree_entry_paths(head_ref: dict[str, Any], *, endpoint: str) -> tuple[str, ...]:
    target = optional_object(head_ref, key="target")
    tree = optional_object(target, key="tree")
    entries = tree.get("entries")
    if not isinstance(entries, list):
        return ()
    paths: list[str] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        path = optional_str(entry, key="path", endpoint=endpoint)
        if path is None:
            path = optional_str(entry, key="name", endpoint=endpoint)
        if path:
            paths.append(path)
    return tuple(paths)


def map_graphql_pull_request(
    repository: dict[str, Any],
    *,
    commits: tuple[Commit, ...],
    endpoint: str,
    total_commits: int | None = None,
    commits_source: CommitsSource | None = None,
    warnings: tuple[str, ...] = (),
) -> PullRequest:
    """Build the canonical record from ``data.repository`` and the winning commit list.

    Missing assignees, tree entries, author, body or head ref map to empty
    values. A missing number, url, title or base ref name raises
    GitHubShapeError.
    """
    pull_request = require_object(repository, key="pullRequest", endpoint=endpoint)
    base_ref = require_object(pull_request, key="baseRef", endpoint=endpoint)
    head_ref = optional_object(pull_request, key="headRef")
    author = optional_object(pull_request, key="author")
    head_target = optional_object(head_ref, key="target")

    is_private = repository.get("isPrivate")
    if is_private is not None:
        is_private = require_bool(repository, key="isPrivate", endpoint=endpoint)

    return PullRequest(
        url=require_str(pull_request, key="url", endpoint=endpoint),
        title=require_str(pull_request, key="title", endpoint=endpoint),
        number=require_int(pull_request, key="number", endpoint=endpoint),
        body=optional_str(pull_request, key="body", endpoint=endpoint) or "",
        author_login=optional_str(author, key="login", endpoint=endpoint),
        assignee_logins=_assignee_logins(pull_request, endpoint=endpoint),
        base_ref_name=require_str(base_ref, key="name", endpoint=endpoint),
        head_ref_name=optional_str(head_ref, key="name", endpoint=endpoint),
        head_sha=optional_str(head_target, key="oid", endpoint=endpoint),
        head_tree_entries=_tree_entry_paths(head_ref, endpoint=endpoint),
        commits=commits,
        is_private=bool(is_private),
        total_commits=total_commits,
        commits_source=commits_source,
        warnings=warnings,
    )

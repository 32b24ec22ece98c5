"""End-to-end gateway tests against simulated GitHub endpoints."""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx
import pytest

from prgateway.config import GatewaySettings
from prgateway.gateway import PullRequestGateway, fetch_pull_request
from prgateway.github_client import GitHubNotFoundError, GitHubTransportError
from prgateway.models import PullRequestRef
from tests.factories import (
    FakeGitHub,
    graphql_variables,
    make_client,
    make_commit_nodes,
    make_settings,
)

REF = PullRequestRef(owner="acme", repo="rocket", number=42)


def make_fallback_scenario_handler(
    requested: list[str],
) -> Callable[[httpx.Request], httpx.Response]:
    """GraphQL reports 300 commits but returns one; REST lists nothing."""

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        if request.url.path == "/api/graphql":
            return httpx.Response(
                status_code=200,
                json={
                    "data": {
                        "repository": {
                            "isPrivate": False,
                            "pullRequest": {
                                "url": "http://example.com/1",
                                "title": "title",
                                "number": 1,
                                "body": "body",
                                "author": {"login": "author"},
                                "assignees": {"edges": []},
                                "baseRef": {"name": "master"},
                                "headRef": {"target": {"tree": {"entries": []}}},
                                "commits": {
                                    "totalCount": 300,
                                    "edges": [
                                        {
                                            "node": {
                                                "commit": {
                                                    "message": "graphql commit",
                                                    "oid": "abc",
                                                }
                                            }
                                        }
                                    ],
                                    "pageInfo": {"hasNextPage": False, "endCursor": ""},
                                },
                            },
                        }
                    }
                },
            )
        if request.url.path == "/api/v3/repos/o/r/pulls/1":
            return httpx.Response(
                status_code=200,
                json={"commits": 300, "head": {"sha": "headsha"}},
            )
        if request.url.path == "/api/v3/repos/o/r/commits":
            assert request.url.params["sha"] == "headsha"
            return httpx.Response(status_code=200, json=[])
        raise AssertionError(f"Unexpected endpoint {request.url}")

    return handler


@pytest.mark.unit
def test_empty_fallback_reverts_to_graphql_commits(caplog: pytest.LogCaptureFixture) -> None:
    requested: list[str] = []
    settings = GatewaySettings(domain="ghe.example.com")
    transport = httpx.MockTransport(make_fallback_scenario_handler(requested))
    ref = PullRequestRef(owner="o", repo="r", number=1)

    with caplog.at_level(logging.WARNING), httpx.Client(
        base_url=settings.rest_base_url, transport=transport
    ) as client:
        pull_request = PullRequestGateway(client, settings).fetch_pull_request(ref, True)

    assert len(pull_request.commits) == 1
    assert pull_request.commits[0].message == "graphql commit"
    assert pull_request.commits_source == "graphql"
    assert pull_request.total_commits == 300
    assert pull_request.commits_complete is False
    assert any("empty commits list" in warning for warning in pull_request.warnings)
    assert any("incomplete" in warning for warning in pull_request.warnings)
    assert "returned empty commits list, reverting to primary" in caplog.text
    assert requested == [
        "/api/graphql",
        "/api/v3/repos/o/r/pulls/1",
        "/api/v3/repos/o/r/commits",
    ]


@pytest.mark.unit
def test_below_threshold_uses_graphql_only() -> None:
    fake = FakeGitHub(commits=make_commit_nodes(180))

    with make_client(fake.handler) as client:
        pull_request = fetch_pull_request(client=client, ref=REF)

    assert len(pull_request.commits) == 180
    assert pull_request.total_commits == 180
    assert pull_request.commits_complete is True
    assert pull_request.commits_source == "graphql"
    assert pull_request.warnings == ()
    assert fake.listing_requests == []
    assert [commit.oid for commit in pull_request.commits] == [
        node["oid"] for node in fake.commits
    ]


@pytest.mark.unit
def test_total_equal_to_threshold_stays_on_graphql() -> None:
    fake = FakeGitHub(commits=make_commit_nodes(250))

    with make_client(fake.handler) as client:
        pull_request = fetch_pull_request(client=client, ref=REF)

    assert len(pull_request.commits) == 250
    assert pull_request.total_commits == 250
    assert pull_request.commits_source == "graphql"
    assert pull_request.commits_complete is True
    assert len(fake.graphql_requests) == 3
    assert fake.listing_requests == []


@pytest.mark.unit
def test_above_threshold_falls_back_to_rest_listing() -> None:
    fake = FakeGitHub(commits=make_commit_nodes(300), history=make_commit_nodes(40, start=5000))

    with make_client(fake.handler) as client:
        pull_request = fetch_pull_request(client=client, ref=REF)

    assert len(pull_request.commits) == 300
    assert pull_request.total_commits == 300
    assert pull_request.commits_complete is True
    assert pull_request.commits_source == "rest"
    assert pull_request.warnings == ()
    assert [commit.message for commit in pull_request.commits] == [
        f"commit {index}" for index in range(300)
    ]
    assert len(fake.graphql_requests) == 1


@pytest.mark.unit
def test_both_paths_agree_on_order() -> None:
    commit_nodes = make_commit_nodes(120)
    graphql_only = FakeGitHub(commits=commit_nodes)
    rest_backed = FakeGitHub(commits=commit_nodes)

    with make_client(graphql_only.handler) as client:
        from_graphql = fetch_pull_request(client=client, ref=REF)
    with make_client(rest_backed.handler) as client:
        from_rest = fetch_pull_request(
            client=client,
            ref=REF,
            settings=make_settings(graphql_commit_threshold=100),
        )

    assert from_graphql.commits_source == "graphql"
    assert from_rest.commits_source == "rest"
    assert from_graphql.commits == from_rest.commits


@pytest.mark.unit
def test_metadata_only_never_touches_rest() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/graphql":
            return FakeGitHub(commits=make_commit_nodes(400)).handler(request)
        raise httpx.ConnectError("REST endpoint unreachable", request=request)

    with make_client(handler) as client:
        pull_request = fetch_pull_request(client=client, ref=REF, include_commits=False)

    assert pull_request.commits == ()
    assert pull_request.total_commits is None
    assert pull_request.commits_source is None
    assert pull_request.commits_complete is True
    assert pull_request.title == "Fix race condition"


@pytest.mark.unit
def test_rest_transport_failure_propagates_with_context() -> None:
    fake = FakeGitHub(commits=make_commit_nodes(300))

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/repos/acme/rocket/commits":
            raise httpx.ReadTimeout("timed out", request=request)
        return fake.handler(request)

    with make_client(handler) as client, pytest.raises(GitHubTransportError) as exc_info:
        fetch_pull_request(client=client, ref=REF)

    assert exc_info.value.ref == "acme/rocket#42"
    assert exc_info.value.path == "rest"


@pytest.mark.unit
def test_graphql_timeout_on_later_page_fails_whole_fetch() -> None:
    fake = FakeGitHub(commits=make_commit_nodes(180))
    results: list[object] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/graphql" and graphql_variables(request)["cursor"] == "100":
            raise httpx.ReadTimeout("timed out", request=request)
        return fake.handler(request)

    with make_client(handler) as client, pytest.raises(GitHubTransportError) as exc_info:
        results.append(fetch_pull_request(client=client, ref=REF))

    assert exc_info.value.ref == "acme/rocket#42"
    assert exc_info.value.path == "graphql"
    assert results == []
    assert fake.listing_requests == []


@pytest.mark.unit
def test_graphql_not_found_propagates_with_context() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code=200,
            json={
                "data": {"repository": None},
                "errors": [{"type": "NOT_FOUND", "message": "Could not resolve to a Repository."}],
            },
        )

    with make_client(handler) as client, pytest.raises(GitHubNotFoundError) as exc_info:
        fetch_pull_request(client=client, ref=REF)

    assert exc_info.value.path == "graphql"
    assert "acme/rocket#42" in str(exc_info.value)


@pytest.mark.unit
def test_gateway_defaults_to_github_com_settings() -> None:
    with make_client(FakeGitHub(commits=make_commit_nodes(1)).handler) as client:
        gateway = PullRequestGateway(client)

    assert gateway.settings.graphql_url == "https://api.github.com/graphql"

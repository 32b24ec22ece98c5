"""Canonical pull request records and internal fetch results."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal

from prgateway.github_client import GitHubInputError

PULL_REQUEST_URL_PATTERN = re.compile(
    r"^https?://(?P<host>[^/]+)/(?P<owner>[^/]+)/(?P<repo>[^/]+)/pull/(?P<number>\d+)/?$"
)
SHORT_REF_PATTERN = re.compile(r"^(?P<owner>[^/#\s]+)/(?P<repo>[^/#\s]+)#(?P<number>\d+)$")

CommitsSource = Literal["graphql", "rest"]


def parse_repo_full_name(repo_full_name: str) -> tuple[str, str]:
    """Parse and validate repository input in owner/repo format."""
    owner, separator, repo = repo_full_name.strip().partition("/")
    if not separator or not owner or not repo or "/" in repo:
        raise GitHubInputError(
            f"Invalid repo '{repo_full_name}'. Expected format is owner/repo."
        )
    return owner, repo


def validate_pr_number(pr_number: int) -> int:
    """Validate and normalize pull request number input."""
    if isinstance(pr_number, bool) or pr_number <= 0:
        raise GitHubInputError(f"Invalid PR number '{pr_number}'. Expected a positive integer.")
    return pr_number


@dataclass(frozen=True, slots=True)
class PullRequestRef:
    """Identifies one pull request on the hosting service."""

    owner: str
    repo: str
    number: int

    def __post_init__(self) -> None:
        if not self.owner or not self.repo:
            raise GitHubInputError(
                f"Invalid repo '{self.owner}/{self.repo}'. Expected format is owner/repo."
            )
        validate_pr_number(self.number)

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"

    @property
    def repo_full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def parse(cls, value: str, number: int | None = None) -> PullRequestRef:
        """Build a ref from ``owner/repo#N``, a pull request URL, or ``owner/repo`` plus number."""
        text = value.strip()
        url_match = PULL_REQUEST_URL_PATTERN.match(text)
        if url_match is not None:
            return cls(
                owner=url_match.group("owner"),
                repo=url_match.group("repo"),
                number=int(url_match.group("number")),
            )
        short_match = SHORT_REF_PATTERN.match(text)
        if short_match is not None:
            return cls(
                owner=short_match.group("owner"),
                repo=short_match.group("repo"),
                number=int(short_match.group("number")),
            )
        if number is None:
            raise GitHubInputError(
                f"Invalid pull request reference '{value}'. "
                "Expected owner/repo#N, a pull request URL, or owner/repo with a number."
            )
        owner, repo = parse_repo_full_name(text)
        return cls(owner=owner, repo=repo, number=number)


@dataclass(frozen=True, slots=True)
class Commit:
    """One pull request commit."""

    message: str
    oid: str


@dataclass(frozen=True, slots=True)
class PullRequest:
    """Normalized pull request record returned to callers."""

    url: str
    title: str
    number: int
    body: str
    author_login: str | None
    assignee_logins: tuple[str, ...]
    base_ref_name: str
    head_ref_name: str | None
    head_sha: str | None
    head_tree_entries: tuple[str, ...]
    commits: tuple[Commit, ...]
    is_private: bool
    total_commits: int | None = None
    commits_source: CommitsSource | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def commits_complete(self) -> bool:
        """Whether ``commits`` holds every commit the service reported."""
        if self.total_commits is None:
            return True
        return len(self.commits) == self.total_commits


@dataclass(frozen=True, slots=True)
class GraphCommitsPage:
    """One page of commits from the GraphQL connection."""

    commits: tuple[Commit, ...]
    total_count: int
    has_next_page: bool
    end_cursor: str | None


@dataclass(frozen=True, slots=True)
class PrimaryResult:
    """Outcome of the GraphQL path.

    ``insufficient`` means the GraphQL source did not (or cannot) return the
    whole commit list; it is resolved by the fallback path, never raised.
    """

    repository: dict[str, Any]
    commits: tuple[Commit, ...]
    total_count: int
    insufficient: bool
    pages_fetched: int = 1


@dataclass(frozen=True, slots=True)
class RestPullSummary:
    """Commit count and head revision from the REST pull request endpoint."""

    commits: int
    head_sha: str

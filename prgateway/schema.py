"""Schema contract for pull request JSON artifacts."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from prgateway.models import PullRequest


class CommitsSourceName(StrEnum):
    """Source that produced the commit list."""

    GRAPHQL = "graphql"
    REST = "rest"


class CommitArtifact(BaseModel):
    """One commit in an artifact."""

    model_config = ConfigDict(extra="forbid")

    oid: str = Field(min_length=1)
    message: str


class PullRequestArtifact(BaseModel):
    """Serialized pull request record."""

    model_config = ConfigDict(extra="forbid")

    schema_version: str = Field(default="v1", pattern=r"^v\d+$")
    captured_at: str = Field(min_length=1)
    repository: str = Field(pattern=r"^[^/\s]+/[^/\s]+$")
    url: str = Field(min_length=1)
    number: int = Field(ge=1)
    title: str
    body: str = ""
    author_login: str | None = None
    assignee_logins: list[str] = Field(default_factory=list)
    base_ref_name: str = Field(min_length=1)
    head_ref_name: str | None = None
    head_sha: str | None = None
    head_tree_entries: list[str] = Field(default_factory=list)
    is_private: bool = False
    commits_included: bool = True
    commits_source: CommitsSourceName | None = None
    total_commits: int | None = Field(default=None, ge=0)
    commits_complete: bool = True
    commits: list[CommitArtifact] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_commit_completeness(self) -> PullRequestArtifact:
        """Validate that a complete commit list matches the reported total."""
        if (
            self.commits_complete
            and self.total_commits is not None
            and len(self.commits) != self.total_commits
        ):
            raise ValueError(
                "commits must contain total_commits entries when commits_complete is true."
            )
        return self


def build_pull_request_artifact(
    pull_request: PullRequest, *, repository: str
) -> PullRequestArtifact:
    """Convert a pull request record into its artifact model."""
    captured_at = datetime.now(tz=UTC).isoformat().replace("+00:00", "Z")
    return PullRequestArtifact(
        captured_at=captured_at,
        repository=repository,
        url=pull_request.url,
        number=pull_request.number,
        title=pull_request.title,
        body=pull_request.body,
        author_login=pull_request.author_login,
        assignee_logins=list(pull_request.assignee_logins),
        base_ref_name=pull_request.base_ref_name,
        head_ref_name=pull_request.head_ref_name,
        head_sha=pull_request.head_sha,
        head_tree_entries=list(pull_request.head_tree_entries),
        is_private=pull_request.is_private,
        commits_included=pull_request.total_commits is not None,
        commits_source=pull_request.commits_source,
        total_commits=pull_request.total_commits,
        commits_complete=pull_request.commits_complete,
        commits=[
            CommitArtifact(oid=commit.oid, message=commit.message)
            for commit in pull_request.commits
        ],
        warnings=list(pull_request.warnings),
    )


def validate_artifact(payload: dict[str, Any]) -> PullRequestArtifact:
    """Validate a decoded JSON artifact."""
    return PullRequestArtifact.model_validate(payload)

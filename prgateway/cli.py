"""Typer CLI for the pull request gateway."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import typer

from prgateway.config import GatewaySettings, load_settings
from prgateway.gateway import PullRequestGateway
from prgateway.github_client import (
    GitHubApiError,
    GitHubAuthError,
    GitHubInputError,
    build_github_client,
    fetch_authenticated_user_login,
    get_github_token_with_source,
)
from prgateway.models import PullRequestRef
from prgateway.schema import build_pull_request_artifact

app = typer.Typer(help="Fetch normalized GitHub pull requests with complete commit lists.")


def _configure_logging(settings: GatewaySettings, *, verbose: bool) -> None:
    level = logging.DEBUG if verbose else settings.log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_settings_or_exit() -> GatewaySettings:
    try:
        return load_settings()
    except ValueError as error:
        typer.echo(f"Invalid configuration: {error}")
        raise typer.Exit(code=1) from error


@app.command("fetch")
def fetch_command(
    ref: Annotated[
        str,
        typer.Argument(help="Pull request as owner/repo#N, a pull request URL, or owner/repo."),
    ],
    pr: Annotated[
        int | None, typer.Option(help="Pull request number when REF is owner/repo.")
    ] = None,
    commits: Annotated[
        bool,
        typer.Option("--commits/--no-commits", help="Fetch the full commit list."),
    ] = True,
    output: Annotated[
        Path | None, typer.Option(help="Write the JSON artifact to this path.")
    ] = None,
    verbose: Annotated[bool, typer.Option(help="Print pagination and fallback progress.")] = False,
    trust_env: Annotated[
        bool,
        typer.Option(
            "--trust-env/--no-trust-env",
            help="Use proxy/SSL environment variables from the current shell.",
        ),
    ] = True,
) -> None:
    """Fetch one pull request and print a summary or write a JSON artifact."""
    settings = _load_settings_or_exit()
    _configure_logging(settings, verbose=verbose)

    try:
        pull_request_ref = PullRequestRef.parse(ref, pr)
    except GitHubInputError as error:
        raise typer.BadParameter(str(error)) from error

    try:
        with build_github_client(
            timeout_seconds=settings.timeout_seconds,
            domain=settings.domain,
            trust_env=trust_env,
        ) as client:
            gateway = PullRequestGateway(client, settings)
            pull_request = gateway.fetch_pull_request(pull_request_ref, include_commits=commits)
    except (GitHubAuthError, GitHubApiError) as error:
        typer.echo(f"Fetch failed: {error}")
        raise typer.Exit(code=1) from error
    except ImportError as error:
        typer.echo(
            "Fetch failed: proxy transport dependency is missing. "
            "Try `prgateway fetch --no-trust-env`, or install `httpx[socks]`."
        )
        raise typer.Exit(code=1) from error

    artifact = build_pull_request_artifact(
        pull_request,
        repository=pull_request_ref.repo_full_name,
    )
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(
            json.dumps(artifact.model_dump(mode="json"), indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        typer.echo(str(output))
        return

    typer.echo(f"{pull_request_ref}: {pull_request.title}")
    typer.echo(f"url={pull_request.url} base={pull_request.base_ref_name}")
    if pull_request.total_commits is not None:
        typer.echo(
            f"commits={len(pull_request.commits)}/{pull_request.total_commits} "
            f"source={pull_request.commits_source}"
        )
        for commit in pull_request.commits:
            summary_line = commit.message.splitlines()[0] if commit.message else ""
            typer.echo(f"  {commit.oid[:12]} {summary_line}")
    for warning in pull_request.warnings:
        typer.echo(f"warning: {warning}")


@app.command("auth-check")
def auth_check_command(
    repo: Annotated[
        str | None,
        typer.Option(help="Optional repository in owner/repo format for permission check."),
    ] = None,
    pr: Annotated[
        int | None,
        typer.Option(help="Optional pull request number used with --repo for permission check."),
    ] = None,
    trust_env: Annotated[
        bool,
        typer.Option(
            "--trust-env/--no-trust-env",
            help="Use proxy/SSL environment variables from the current shell.",
        ),
    ] = True,
) -> None:
    """Validate GitHub token setup and optional metadata-only PR read access."""
    if (repo is None) != (pr is None):
        raise typer.BadParameter("Provide both --repo and --pr together, or neither.")

    settings = _load_settings_or_exit()
    try:
        _token, token_source = get_github_token_with_source()
    except GitHubAuthError as error:
        typer.echo(f"GitHub auth check failed: {error}")
        raise typer.Exit(code=1) from error

    typer.echo(f"Token detected in {token_source}.")

    try:
        with build_github_client(
            timeout_seconds=settings.timeout_seconds,
            domain=settings.domain,
            trust_env=trust_env,
        ) as client:
            login = fetch_authenticated_user_login(client=client)
            typer.echo(f"Authenticated as GitHub user '{login}'.")

            if repo is not None and pr is not None:
                pull_request_ref = PullRequestRef.parse(repo, pr)
                PullRequestGateway(client, settings).fetch_pull_request(
                    pull_request_ref,
                    include_commits=False,
                )
                typer.echo(f"Repository/PR access check passed for {pull_request_ref}.")
    except GitHubInputError as error:
        raise typer.BadParameter(str(error)) from error
    except GitHubApiError as error:
        typer.echo(
            "GitHub auth check failed: "
            f"status={error.status_code} endpoint={error.endpoint}."
        )
        raise typer.Exit(code=1) from error
    except ImportError as error:
        typer.echo(
            "GitHub auth check failed: proxy transport dependency is missing. "
            "Try `prgateway auth-check --no-trust-env`, or install `httpx[socks]`."
        )
        raise typer.Exit(code=1) from error

    typer.echo("GitHub token setup is valid.")


if __name__ == "__main__":
    app()

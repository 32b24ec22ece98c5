"""GitHub HTTP wrapper, typed errors and auth helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import httpx
from dotenv import load_dotenv

GITHUB_COM_DOMAIN = "github.com"
GITHUB_API_BASE_URL = "https://api.github.com"
GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"
GITHUB_API_VERSION = "2022-11-28"
GRAPHQL_NOT_FOUND_ERROR_TYPES = frozenset({"NOT_FOUND", "FORBIDDEN"})
GRAPHQL_RATE_LIMIT_ERROR_TYPES = frozenset({"RATE_LIMITED"})


class GitHubAuthError(RuntimeError):
    """Raised when required GitHub authentication is missing."""


class GitHubInputError(ValueError):
    """Raised when repository or PR input values are invalid."""


class GitHubApiError(RuntimeError):
    """Raised when a GitHub API request fails.

    ``ref`` and ``path`` are filled in by the gateway so callers can tell which
    pull request and which source (``graphql`` or ``rest``) failed.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None,
        endpoint: str,
        ref: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint
        self.ref = ref
        self.path = path

    def __str__(self) -> str:
        message = super().__str__()
        pairs = (("ref", self.ref), ("path", self.path))
        context = [f"{name}={value}" for name, value in pairs if value]
        if not context:
            return message
        return f"{message} ({', '.join(context)})"


class GitHubTransportError(GitHubApiError):
    """Raised on network, TLS or timeout failures."""


class GitHubRateLimitError(GitHubApiError):
    """Raised when GitHub API rate limiting prevents request completion."""


class GitHubQueryError(GitHubApiError):
    """Raised when the GraphQL endpoint answers with an error payload."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None,
        endpoint: str,
        error_type: str | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, endpoint=endpoint)
        self.error_type = error_type


class GitHubNotFoundError(GitHubQueryError):
    """Raised when the repository or pull request is missing or not visible."""


class GitHubShapeError(GitHubApiError):
    """Raised when a response lacks a field the mapper cannot do without."""

    def __init__(self, message: str, *, endpoint: str) -> None:
        super().__init__(message, status_code=None, endpoint=endpoint)


def api_urls_for_domain(domain: str) -> tuple[str, str]:
    """Return (REST base URL, GraphQL URL) for github.com or an Enterprise host."""
    normalized = domain.strip().rstrip("/")
    if not normalized:
        raise GitHubInputError("Invalid GitHub domain ''. Expected a host name.")
    if normalized == GITHUB_COM_DOMAIN:
        return GITHUB_API_BASE_URL, GITHUB_GRAPHQL_URL
    return f"https://{normalized}/api/v3", f"https://{normalized}/api/graphql"


def ensure_mapping(value: object, *, context: str) -> dict[str, Any]:
    """Ensure a response fragment is a JSON object."""
    if not isinstance(value, dict):
        raise GitHubShapeError(f"Expected JSON object for {context}.", endpoint=context)
    return value


def require_str(payload: dict[str, Any], *, key: str, endpoint: str) -> str:
    """Read a required string field from payload."""
    value = payload.get(key)
    if not isinstance(value, str):
        raise GitHubShapeError(
            f"Expected string field '{key}' in GitHub response.",
            endpoint=endpoint,
        )
    return value


def require_bool(payload: dict[str, Any], *, key: str, endpoint: str) -> bool:
    """Read a required boolean field from payload."""
    value = payload.get(key)
    if not isinstance(value, bool):
        raise GitHubShapeError(
            f"Expected boolean field '{key}' in GitHub response.",
            endpoint=endpoint,
        )
    return value


def require_int(payload: dict[str, Any], *, key: str, endpoint: str) -> int:
    """Read a required integer field from payload."""
    value = payload.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise GitHubShapeError(
            f"Expected integer field '{key}' in GitHub response.",
            endpoint=endpoint,
        )
    return value


def require_object(payload: dict[str, Any], *, key: str, endpoint: str) -> dict[str, Any]:
    """Read a required object field from payload."""
    value = payload.get(key)
    if not isinstance(value, dict):
        raise GitHubShapeError(
            f"Expected object field '{key}' in GitHub response.",
            endpoint=endpoint,
        )
    return value


def optional_object(payload: dict[str, Any], *, key: str) -> dict[str, Any]:
    """Read an optional object field, treating null or absent as empty."""
    value = payload.get(key)
    if isinstance(value, dict):
        return value
    return {}


def optional_str(payload: dict[str, Any], *, key: str, endpoint: str) -> str | None:
    """Read an optional string field that may be null or absent."""
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise GitHubShapeError(
            f"Expected '{key}' to be a string or null in GitHub response.",
            endpoint=endpoint,
        )
    return value


def _is_rate_limited(response: httpx.Response) -> bool:
    """Return whether a failed response was caused by rate limiting."""
    if response.status_code == 429:
        return True
    return response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"


def _raise_http_error(response: httpx.Response, endpoint: str) -> None:
    """Raise a typed error for a non-success GitHub API response."""
    message = f"GitHub API request failed with status {response.status_code} for '{endpoint}'."
    if _is_rate_limited(response):
        raise GitHubRateLimitError(
            message,
            status_code=response.status_code,
            endpoint=endpoint,
        )
    if response.status_code == 404:
        raise GitHubNotFoundError(
            message,
            status_code=response.status_code,
            endpoint=endpoint,
            error_type="NOT_FOUND",
        )
    raise GitHubApiError(
        message,
        status_code=response.status_code,
        endpoint=endpoint,
    )


def _send(
    client: httpx.Client,
    method: str,
    endpoint: str,
    *,
    params: dict[str, str | int] | None = None,
    json_body: dict[str, Any] | None = None,
) -> httpx.Response:
    """Issue one request; transport failures become GitHubTransportError."""
    try:
        response = client.request(
            method,
            endpoint,
            params=params,
            json=json_body,
            headers={"Accept": "application/vnd.github+json"},
        )
    except httpx.HTTPError as error:
        raise GitHubTransportError(
            f"GitHub API request to '{endpoint}' failed: {error}",
            status_code=None,
            endpoint=endpoint,
        ) from error
    if response.status_code >= 400:
        _raise_http_error(response, endpoint)
    return response


def _decode_json(response: httpx.Response, endpoint: str) -> object:
    """Decode a JSON body, reporting malformed payloads as shape errors."""
    try:
        return response.json()
    except ValueError as error:
        raise GitHubShapeError(
            f"Expected JSON body from '{endpoint}'.",
            endpoint=endpoint,
        ) from error


def request_json(
    client: httpx.Client,
    endpoint: str,
    *,
    params: dict[str, str | int] | None = None,
) -> dict[str, Any]:
    """Perform a JSON GET request against the REST API."""
    response = _send(client, "GET", endpoint, params=params)
    return ensure_mapping(_decode_json(response, endpoint), context=endpoint)


def request_json_list(
    client: httpx.Client,
    endpoint: str,
    *,
    params: dict[str, str | int] | None = None,
) -> list[dict[str, Any]]:
    """Perform a JSON GET request that returns an array of objects."""
    response = _send(client, "GET", endpoint, params=params)
    payload = _decode_json(response, endpoint)
    if not isinstance(payload, list):
        raise GitHubShapeError("Expected JSON array in GitHub response.", endpoint=endpoint)
    rows: list[dict[str, Any]] = []
    for item in payload:
        if not isinstance(item, dict):
            raise GitHubShapeError(
                "Expected all array items to be JSON objects in GitHub response.",
                endpoint=endpoint,
            )
        rows.append(item)
    return rows


def _raise_graphql_errors(errors: list[Any], *, status_code: int, endpoint: str) -> None:
    """Map a GraphQL ``errors`` array to the matching typed error."""
    first_error = errors[0] if isinstance(errors[0], dict) else {}
    error_type = first_error.get("type")
    if not isinstance(error_type, str):
        error_type = None
    messages = [
        str(error.get("message", "unknown error")) if isinstance(error, dict) else str(error)
        for error in errors
    ]
    message = f"GitHub GraphQL query failed: {'; '.join(messages)}"
    if error_type in GRAPHQL_RATE_LIMIT_ERROR_TYPES:
        raise GitHubRateLimitError(message, status_code=status_code, endpoint=endpoint)
    if error_type in GRAPHQL_NOT_FOUND_ERROR_TYPES:
        raise GitHubNotFoundError(
            message,
            status_code=status_code,
            endpoint=endpoint,
            error_type=error_type,
        )
    raise GitHubQueryError(
        message,
        status_code=status_code,
        endpoint=endpoint,
        error_type=error_type,
    )


def post_graphql(
    client: httpx.Client,
    graphql_url: str,
    *,
    query: str,
    variables: dict[str, Any],
) -> dict[str, Any]:
    """Run a GraphQL query and return its ``data`` object."""
    response = _send(
        client,
        "POST",
        graphql_url,
        json_body={"query": query, "variables": variables},
    )
    payload = ensure_mapping(_decode_json(response, graphql_url), context=graphql_url)
    errors = payload.get("errors")
    if isinstance(errors, list) and errors:
        _raise_graphql_errors(errors, status_code=response.status_code, endpoint=graphql_url)
    return require_object(payload, key="data", endpoint=graphql_url)


def get_github_token() -> str:
    """Read GitHub token from environment and fail fast if missing."""
    token, _source = get_github_token_with_source()
    return token


def get_github_token_with_source() -> tuple[str, str]:
    """Read GitHub token and return token value with environment source key."""
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    github_token = os.getenv("GITHUB_TOKEN")
    if github_token:
        return github_token, "GITHUB_TOKEN"

    gh_token = os.getenv("GH_TOKEN")
    if gh_token:
        return gh_token, "GH_TOKEN"

    message = "Missing GitHub token. Set GITHUB_TOKEN (preferred) or GH_TOKEN."
    raise GitHubAuthError(message)


def fetch_authenticated_user_login(*, client: httpx.Client) -> str:
    """Fetch authenticated GitHub user login for token validation."""
    endpoint = "/user"
    payload = request_json(client, endpoint)
    return require_str(payload, key="login", endpoint=endpoint)


def build_github_client(
    timeout_seconds: float = 20,
    *,
    domain: str = GITHUB_COM_DOMAIN,
    trust_env: bool = True,
) -> httpx.Client:
    """Build an authenticated GitHub HTTP client rooted at the REST base URL."""
    token = get_github_token()
    rest_base_url, _graphql_url = api_urls_for_domain(domain)
    headers = {
        "Accept": "application/vnd.github+json",
        "Authorization": f"Bearer {token}",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }
    return httpx.Client(
        base_url=rest_base_url,
        headers=headers,
        timeout=timeout_seconds,
        trust_env=trust_env,
    )

"""Gateway settings loaded from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from prgateway.github_client import GITHUB_COM_DOMAIN, api_urls_for_domain

MAX_GRAPHQL_PAGE_SIZE = 100
DEFAULT_COMMIT_PAGE_SIZE = 100
# GitHub does not reliably paginate PR commits through GraphQL past ~250.
DEFAULT_GRAPHQL_COMMIT_THRESHOLD = 250
DEFAULT_GRAPHQL_MAX_PAGES = 10
DEFAULT_REST_MAX_PAGES = 50
DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_LOG_LEVEL = "WARNING"

GITHUB_DOMAIN_ENV_VAR = "GITHUB_DOMAIN"
COMMIT_PAGE_SIZE_ENV_VAR = "PRGATEWAY_COMMIT_PAGE_SIZE"
GRAPHQL_COMMIT_THRESHOLD_ENV_VAR = "PRGATEWAY_GRAPHQL_COMMIT_THRESHOLD"
GRAPHQL_MAX_PAGES_ENV_VAR = "PRGATEWAY_GRAPHQL_MAX_PAGES"
REST_MAX_PAGES_ENV_VAR = "PRGATEWAY_REST_MAX_PAGES"
TIMEOUT_SECONDS_ENV_VAR = "PRGATEWAY_TIMEOUT_SECONDS"
LOG_LEVEL_ENV_VAR = "LOG_LEVEL"


@dataclass(frozen=True, slots=True)
class GatewaySettings:
    """Tunable limits and endpoints for one gateway instance."""

    domain: str = GITHUB_COM_DOMAIN
    commit_page_size: int = DEFAULT_COMMIT_PAGE_SIZE
    graphql_commit_threshold: int = DEFAULT_GRAPHQL_COMMIT_THRESHOLD
    graphql_max_pages: int = DEFAULT_GRAPHQL_MAX_PAGES
    rest_max_pages: int = DEFAULT_REST_MAX_PAGES
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        if not 1 <= self.commit_page_size <= MAX_GRAPHQL_PAGE_SIZE:
            raise ValueError(
                f"commit_page_size must be between 1 and {MAX_GRAPHQL_PAGE_SIZE}, "
                f"got {self.commit_page_size}."
            )
        for name in ("graphql_commit_threshold", "graphql_max_pages", "rest_max_pages"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be a positive integer, got {getattr(self, name)}.")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}.")
        if self.log_level not in logging.getLevelNamesMapping():
            raise ValueError(f"log_level must be a logging level name, got '{self.log_level}'.")

    @property
    def rest_base_url(self) -> str:
        return api_urls_for_domain(self.domain)[0]

    @property
    def graphql_url(self) -> str:
        return api_urls_for_domain(self.domain)[1]


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"{name} must be an integer, got '{value}'.") from error


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"{name} must be a number, got '{value}'.") from error


def load_settings() -> GatewaySettings:
    """Read settings from the environment, honoring a ``.env`` in the working directory."""
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    return GatewaySettings(
        domain=os.getenv(GITHUB_DOMAIN_ENV_VAR) or GITHUB_COM_DOMAIN,
        commit_page_size=_int_from_env(COMMIT_PAGE_SIZE_ENV_VAR, DEFAULT_COMMIT_PAGE_SIZE),
        graphql_commit_threshold=_int_from_env(
            GRAPHQL_COMMIT_THRESHOLD_ENV_VAR, DEFAULT_GRAPHQL_COMMIT_THRESHOLD
        ),
        graphql_max_pages=_int_from_env(GRAPHQL_MAX_PAGES_ENV_VAR, DEFAULT_GRAPHQL_MAX_PAGES),
        rest_max_pages=_int_from_env(REST_MAX_PAGES_ENV_VAR, DEFAULT_REST_MAX_PAGES),
        timeout_seconds=_float_from_env(TIMEOUT_SECONDS_ENV_VAR, DEFAULT_TIMEOUT_SECONDS),
        log_level=(os.getenv(LOG_LEVEL_ENV_VAR) or DEFAULT_LOG_LEVEL).upper(),
    )

"""Pick the authoritative commit list from the GraphQL and REST results."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from prgateway.models import Commit, CommitsSource

logger = logging.getLogger(__name__)

FALLBACK_EMPTY_WARNING = (
    "warning: fallback REST commits listing returned empty commits list, "
    "reverting to primary GraphQL result"
)


@dataclass(frozen=True, slots=True)
class ReconcileOutcome:
    """Final commit list and where it came from."""

    commits: tuple[Commit, ...]
    source: CommitsSource
    reverted: bool = False


def reconcile(
    primary: tuple[Commit, ...],
    primary_insufficient: bool,
    fallback: tuple[Commit, ...] | None,
    fallback_invoked: bool,
) -> ReconcileOutcome:
    """Choose between primary and fallback commits.

    The fallback wins only when the primary was insufficient and the fallback
    is non-empty. An empty fallback never replaces primary data; that case is
    logged as a warning and the call still succeeds.
    """
    if not primary_insufficient or not fallback_invoked:
        return ReconcileOutcome(commits=primary, source="graphql")

    if fallback:
        return ReconcileOutcome(commits=fallback, source="rest")

    logger.warning(FALLBACK_EMPTY_WARNING)
    return ReconcileOutcome(commits=primary, source="graphql", reverted=True)

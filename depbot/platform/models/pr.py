"""Pull request (or Gerrit change) model."""

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class PrState(str, Enum):
    """PR state; ALL and NOT_OPEN are only used as search filters."""

    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"
    ALL = "all"
    NOT_OPEN = "!open"


def matches_state(state: str, desired: str) -> bool:
    """Return True if a PR in `state` satisfies the `desired` filter.

    "all" matches everything, a leading "!" negates the comparison.
    """
    state = getattr(state, "value", state)
    desired = getattr(desired, "value", desired)
    if desired == PrState.ALL.value:
        return True
    if desired.startswith("!"):
        return state != desired[1:]
    return state == desired


class Pr(BaseModel):
    """Pull request (or merge/change request)."""

    number: int
    title: str = ""
    state: PrState = PrState.OPEN
    source_branch: str | None = None
    target_branch: str | None = None
    source_repo: str | None = None
    sha: str | None = None
    body: str | None = None
    body_hash: str | None = None
    labels: List[str] = Field(default_factory=list)
    reviewers: List[str] = Field(default_factory=list)
    created_at: datetime | None = None
    closed_at: datetime | None = None
    can_merge: bool = False
    is_conflicted: bool = False
    has_assignees: bool = False
    has_reviewers: bool = False
    display_number: str | None = None

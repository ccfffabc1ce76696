"""Aggregate CI / review signal for a branch."""

from enum import Enum


class BranchStatus(str, Enum):
    """Three-valued branch status: green (success), yellow (pending), red (failure)."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

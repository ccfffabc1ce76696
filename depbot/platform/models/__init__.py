"""Data models shared by all platform adapters (Pydantic)."""

from depbot.platform.models.branch_status import BranchStatus
from depbot.platform.models.comment import Comment
from depbot.platform.models.commit import CommitResult, FileChange
from depbot.platform.models.issue import Issue
from depbot.platform.models.pr import Pr, PrState, matches_state
from depbot.platform.models.results import PlatformOptions, PlatformResult, RepoResult
from depbot.platform.models.vulnerability import VulnerabilityAlert

__all__ = [
    "BranchStatus",
    "Comment",
    "CommitResult",
    "FileChange",
    "Issue",
    "PlatformOptions",
    "PlatformResult",
    "Pr",
    "PrState",
    "RepoResult",
    "VulnerabilityAlert",
    "matches_state",
]

"""Abstract base for code hosting platform adapters (GitHub, Gerrit)."""

from abc import ABC, abstractmethod
from typing import Any, List

from depbot.platform.models import (
    BranchStatus,
    FileChange,
    Issue,
    PlatformOptions,
    PlatformResult,
    Pr,
    PrState,
    RepoResult,
    VulnerabilityAlert,
)
from depbot.platform.util import parse_json

REPOSITORY_ARCHIVED = "archived"
REPOSITORY_CANNOT_FORK = "cannot-fork"
REPOSITORY_CHANGED = "repository-changed"
REPOSITORY_NOT_FOUND = "not-found"
REPOSITORY_RENAMED = "renamed"
CONFIG_GIT_URL_UNAVAILABLE = "config-git-url-unavailable"


class PlatformError(Exception):
    """Raised when a platform API call fails.

    status_code is None for transport errors (connection refused, timeout).
    """

    def __init__(self, message: str, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @property
    def provider_message(self) -> str:
        """The `message` field of a JSON error body, or empty string."""
        if isinstance(self.body, dict):
            return str(self.body.get("message") or "")
        return ""


class RepositoryError(PlatformError):
    """Fatal repository initialization error; message is one of the REPOSITORY_* constants."""

    pass


class ConfigurationError(PlatformError):
    """Raised when init_platform is called without endpoint or credentials."""

    pass


class Platform(ABC):
    """Uniform interface every hosting platform adapter implements.

    Operations the provider has no concept of return a neutral value
    (None, [], False) instead of raising.
    """

    name: str = ""

    @abstractmethod
    def init_platform(self, endpoint: str | None = None, **credentials: Any) -> PlatformResult:
        """Validate credentials and discover the bot identity."""
        ...

    @abstractmethod
    def get_repos(self) -> List[str]:
        """List repositories the bot can access."""
        ...

    @abstractmethod
    def init_repo(self, repository: str, **options: Any) -> RepoResult:
        """Load repository settings; resets every per-repository cache."""
        ...

    @abstractmethod
    def get_repo_force_rebase(self) -> bool:
        """Whether branches must be up to date with the base before merging."""
        ...

    @abstractmethod
    def find_pr(
        self,
        branch_name: str,
        pr_title: str | None = None,
        state: PrState | str = PrState.ALL,
    ) -> Pr | None:
        """Find the bot's PR for a branch."""
        ...

    @abstractmethod
    def get_pr(self, number: int) -> Pr | None:
        """Fetch PR by number; None if it does not exist."""
        ...

    @abstractmethod
    def get_branch_pr(self, branch_name: str) -> Pr | None:
        """Return the open PR for a branch."""
        ...

    @abstractmethod
    def get_pr_list(self) -> List[Pr]:
        """List the bot's PRs in all states."""
        ...

    @abstractmethod
    def create_pr(
        self,
        source_branch: str,
        target_branch: str,
        pr_title: str,
        pr_body: str,
        labels: List[str] | None = None,
        draft_pr: bool = False,
        platform_options: PlatformOptions | None = None,
    ) -> Pr | None:
        """Create a pull request."""
        ...

    @abstractmethod
    def update_pr(
        self,
        number: int,
        pr_title: str,
        pr_body: str | None = None,
        state: PrState | str | None = None,
        platform_options: PlatformOptions | None = None,
    ) -> None:
        """Update title/body/state of a pull request."""
        ...

    @abstractmethod
    def merge_pr(self, id: int, branch_name: str | None = None) -> bool:
        """Merge a pull request; False if the platform refused."""
        ...

    @abstractmethod
    def get_branch_status(self, branch_name: str) -> BranchStatus:
        """Aggregate status of a branch."""
        ...

    @abstractmethod
    def get_branch_status_check(self, branch_name: str, context: str | None) -> BranchStatus | None:
        """Status of a single named check on a branch."""
        ...

    @abstractmethod
    def set_branch_status(
        self,
        branch_name: str,
        context: str,
        description: str,
        state: BranchStatus,
        url: str | None = None,
    ) -> None:
        """Set a named check on a branch."""
        ...

    @abstractmethod
    def ensure_comment(self, number: int, topic: str | None, content: str) -> bool:
        """Add or update the comment identified by topic."""
        ...

    @abstractmethod
    def massage_markdown(self, text: str) -> str:
        """Adapt generated markdown to what the platform renders."""
        ...

    @abstractmethod
    def get_raw_file(
        self,
        file_name: str,
        repo_name: str | None = None,
        branch_or_tag: str | None = None,
    ) -> str | None:
        """Read a file from the repository."""
        ...

    def get_json_file(
        self,
        file_name: str,
        repo_name: str | None = None,
        branch_or_tag: str | None = None,
    ) -> Any:
        """Read and parse a JSON (or JSON5) file from the repository."""
        raw = self.get_raw_file(file_name, repo_name, branch_or_tag)
        if raw is None:
            return None
        return parse_json(raw, file_name)

    def ensure_comment_removal(
        self,
        number: int,
        topic: str | None = None,
        content: str | None = None,
    ) -> None:
        """Delete the comment identified by topic or by content. Override if needed."""
        return None

    def add_assignees(self, number: int, assignees: List[str]) -> None:
        """Assign users to an issue or PR. Override if needed."""
        return None

    def add_reviewers(self, number: int, reviewers: List[str]) -> None:
        """Request reviews on a PR. Override if needed."""
        return None

    def delete_label(self, number: int, label: str) -> None:
        """Remove a label from an issue or PR. Override if needed."""
        return None

    def find_issue(self, title: str) -> Issue | None:
        """Find an open issue by title. Override if needed."""
        return None

    def ensure_issue(
        self,
        title: str,
        body: str,
        reuse_title: str | None = None,
        labels: List[str] | None = None,
        once: bool = False,
        should_reopen: bool = True,
    ) -> str | None:
        """Create or update an issue; returns "created", "updated" or None. Override if needed."""
        return None

    def ensure_issue_closing(self, title: str) -> None:
        """Close open issues with this title. Override if needed."""
        return None

    def get_issue_list(self) -> List[Issue]:
        """List the bot's issues. Override if needed."""
        return []

    def get_vulnerability_alerts(self) -> List[VulnerabilityAlert]:
        """List security alerts. Override if needed."""
        return []

    def commit_files(
        self,
        branch_name: str,
        files: List[FileChange],
        message: str,
        force: bool = False,
    ) -> str | None:
        """Create a commit through the platform API. Override if needed."""
        return None


__all__ = [
    "CONFIG_GIT_URL_UNAVAILABLE",
    "REPOSITORY_ARCHIVED",
    "REPOSITORY_CANNOT_FORK",
    "REPOSITORY_CHANGED",
    "REPOSITORY_NOT_FOUND",
    "REPOSITORY_RENAMED",
    "ConfigurationError",
    "Platform",
    "PlatformError",
    "RepositoryError",
]

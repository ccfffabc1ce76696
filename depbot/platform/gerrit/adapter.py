"""Gerrit platform adapter.

Changes play the role of pull requests. A change is created by pushing to
refs/for/<branch>; the adapter only decorates it (subject, body message,
votes) and submits it.
"""

import logging
import re
from typing import Any, Dict, List

import json5
from pydantic import BaseModel, Field

from depbot.platform.base import ConfigurationError, Platform, PlatformError
from depbot.platform.gerrit.client import GerritClient, build_search_filters
from depbot.platform.gerrit.types import (
    TAG_PULL_REQUEST_BODY,
    GerritChange,
    GerritLabelMapping,
    GerritLabelTypeInfo,
)
from depbot.platform.gerrit.utils import (
    get_gerrit_repo_url,
    map_branch_status_to_label,
    map_gerrit_change_to_pr,
)
from depbot.platform.markdown import smart_truncate
from depbot.platform.models import (
    BranchStatus,
    PlatformOptions,
    PlatformResult,
    Pr,
    PrState,
    RepoResult,
)
from depbot.platform.util import repo_fingerprint

LOG = logging.getLogger("depbot.platform.gerrit")

MAX_BODY_LENGTH = 16384
MAX_MESSAGE_LENGTH = 0x4000
DEFAULT_PROJECT = "All-Projects"
DEFAULT_BRANCH = "HEAD"
STABILITY_DAYS_CONTEXT = "renovate/stability-days"
MERGE_CONFIDENCE_CONTEXT = "renovate/merge-confidence"

_MARKDOWN_REWRITES = [
    (re.compile(r"Pull Requests"), "Change-Requests"),
    (re.compile(r"Pull Request"), "Change-Request"),
    (re.compile(r"\bPRs\b"), "Change-Requests"),
    (re.compile(r"\bPR\b"), "Change-Request"),
    (re.compile(r"</?summary>"), "**"),
    (re.compile(r"</?details>"), ""),
    (re.compile(r"<!--[a-z]+-(?:debug|config-hash):.*?-->", re.DOTALL), ""),
]


class _RepoConfig(BaseModel):
    repository: str | None = None
    head: str | None = None
    labels: Dict[str, GerritLabelTypeInfo] = Field(default_factory=dict)


class GerritPlatform(Platform):
    name = "gerrit"

    def __init__(
        self,
        client: GerritClient | None = None,
        git: Any = None,
        label_mappings: GerritLabelMapping | None = None,
    ) -> None:
        self._client = client or GerritClient()
        self._git = git
        self._label_mappings = label_mappings or GerritLabelMapping()
        self._endpoint: str | None = None
        self._username: str | None = None
        self._password: str | None = None
        self._repo = _RepoConfig()

    def init_platform(self, endpoint: str | None = None, **credentials: Any) -> PlatformResult:
        LOG.debug("Gerrit init_platform(%s)", endpoint)
        if not endpoint:
            raise ConfigurationError("Init: You must configure a Gerrit Server endpoint")
        username = credentials.get("username")
        password = credentials.get("password")
        if not (username and password):
            raise ConfigurationError("Init: You must configure a Gerrit Server username/password")
        self._endpoint = endpoint.rstrip("/") + "/"
        self._username = username
        self._password = password
        self._client.configure(self._endpoint, username, password)
        return PlatformResult(endpoint=self._endpoint)

    def get_repos(self) -> List[str]:
        LOG.debug("Autodiscovering Gerrit repositories")
        return self._client.get_repos()

    def init_repo(self, repository: str, **options: Any) -> RepoResult:
        LOG.debug("init_repo(%s)", repository)
        self._repo = _RepoConfig(repository=repository)
        project = self._client.get_project_info(repository)
        branch = self._client.get_branch_info(repository)
        self._repo.head = branch.revision
        self._repo.labels = project.labels

        endpoint = self._endpoint or self._client.endpoint
        url = get_gerrit_repo_url(repository, endpoint, self._username, self._password)
        if self._git is not None:
            self._git.init_repo(url)
            self._git.sync_git()

        rejected = self._client.find_changes(build_search_filters(repository, state=PrState.OPEN, label="-2"))
        for change in rejected:
            LOG.info("Abandoning change %s rejected with Code-Review -2", change.number)
            self._client.abandon_change(change.number)

        return RepoResult(
            default_branch=branch.revision,
            is_fork=False,
            repo_fingerprint=repo_fingerprint("", get_gerrit_repo_url(repository, endpoint)),
        )

    def get_repo_force_rebase(self) -> bool:
        return False

    # --- changes ---------------------------------------------------------------

    def _find_changes(self, refresh_cache: bool = False, **search: Any) -> List[GerritChange]:
        filters = build_search_filters(self._repo.repository or "", **search)
        return self._client.find_changes(filters, refresh_cache)

    def _find_open_change(self, branch_name: str) -> GerritChange | None:
        changes = self._find_changes(refresh_cache=True, branch_name=branch_name, state=PrState.OPEN)
        return changes[-1] if changes else None

    def find_pr(
        self,
        branch_name: str,
        pr_title: str | None = None,
        state: PrState | str = PrState.ALL,
    ) -> Pr | None:
        changes = self._find_changes(branch_name=branch_name, state=state, pr_title=pr_title)
        if not changes:
            return None
        return map_gerrit_change_to_pr(changes[-1])

    def get_pr(self, number: int) -> Pr | None:
        try:
            change = self._client.get_change(number)
        except PlatformError as e:
            if e.status_code == 404:
                return None
            raise
        return map_gerrit_change_to_pr(change)

    def get_branch_pr(self, branch_name: str) -> Pr | None:
        return self.find_pr(branch_name, state=PrState.OPEN)

    def get_pr_list(self) -> List[Pr]:
        return [map_gerrit_change_to_pr(c) for c in self._find_changes(state=PrState.ALL)]

    def _update_subject(self, number: int, change_id: str, title: str) -> None:
        LOG.debug("Setting subject of change %s to %s", number, title)
        try:
            self._client.set_commit_message(number, f"{title}\n\nChange-Id: {change_id}\n")
        except PlatformError as e:
            LOG.warning("Cannot update commit message of change %s: %s", number, e)

    def _has_message(self, number: int, message: str, tag: str | None) -> bool:
        needle = message[:MAX_MESSAGE_LENGTH].strip()
        for existing in self._client.get_messages(number):
            if (tag is None or existing.tag == tag) and needle in existing.message:
                return True
        return False

    def _add_message_if_missing(self, number: int, message: str, tag: str | None) -> None:
        if not self._has_message(number, message, tag):
            self._client.add_message(number, message, tag)

    def _decorate_change(
        self,
        change: GerritChange,
        pr_title: str,
        pr_body: str | None,
        platform_options: PlatformOptions | None,
    ) -> None:
        if change.subject != pr_title:
            self._update_subject(change.number, change.change_id, pr_title)
        if pr_body:
            body = smart_truncate(pr_body, MAX_BODY_LENGTH)
            self._add_message_if_missing(change.number, body, TAG_PULL_REQUEST_BODY)
        if platform_options and platform_options.gerrit_auto_approve:
            self._client.approve_change(change.number)

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
        LOG.debug("create_pr(%s -> %s, %s)", source_branch, target_branch, pr_title)
        changes = self._find_changes(
            refresh_cache=True,
            branch_name=source_branch,
            target_branch=target_branch,
            state=PrState.OPEN,
        )
        if not changes:
            raise PlatformError(
                f"the change should be created automatically from previous push to refs/for/{source_branch}"
            )
        change = changes[-1]
        self._decorate_change(change, pr_title, pr_body, platform_options)
        return self.get_pr(change.number)

    def update_pr(
        self,
        number: int,
        pr_title: str,
        pr_body: str | None = None,
        state: PrState | str | None = None,
        platform_options: PlatformOptions | None = None,
    ) -> None:
        LOG.debug("update_pr(%s, %s)", number, pr_title)
        change = self._client.get_change(number)
        self._decorate_change(change, pr_title, pr_body, platform_options)
        if getattr(state, "value", state) == PrState.CLOSED.value:
            self._client.abandon_change(number)

    def merge_pr(self, id: int, branch_name: str | None = None) -> bool:
        LOG.debug("merge_pr(%s)", id)
        try:
            change = self._client.submit_change(id)
        except PlatformError as e:
            if e.status_code == 409:
                LOG.warning("Cannot submit change %s, submit requirements not met: %s", id, e)
                return False
            raise
        return change.status == "MERGED"

    # --- statuses --------------------------------------------------------------

    def get_branch_status(self, branch_name: str) -> BranchStatus:
        changes = self._find_changes(refresh_cache=True, branch_name=branch_name, state=PrState.OPEN)
        if changes:
            if all(c.submittable for c in changes):
                return BranchStatus.GREEN
            if any(c.problems for c in changes):
                return BranchStatus.RED
        return BranchStatus.YELLOW

    def _label_for_context(self, context: str | None) -> str | None:
        label = {
            STABILITY_DAYS_CONTEXT: self._label_mappings.stability_days_label,
            MERGE_CONFIDENCE_CONTEXT: self._label_mappings.merge_confidence_label,
        }.get(context or "")
        if label and label in self._repo.labels:
            return label
        return None

    def get_branch_status_check(self, branch_name: str, context: str | None) -> BranchStatus | None:
        label = self._label_for_context(context)
        if label:
            change = self._find_open_change(branch_name)
            vote = change.labels.get(label) if change else None
            if vote is not None:
                if vote.approved is not None:
                    return BranchStatus.GREEN
                if vote.rejected is not None:
                    return BranchStatus.RED
        return BranchStatus.YELLOW

    def set_branch_status(
        self,
        branch_name: str,
        context: str,
        description: str,
        state: BranchStatus,
        url: str | None = None,
    ) -> None:
        label = self._label_for_context(context)
        if not label:
            return
        value = map_branch_status_to_label(state, self._repo.labels[label])
        change = self._find_open_change(branch_name)
        if change:
            LOG.debug("Voting %s=%s on change %s", label, value, change.number)
            self._client.set_label(change.number, label, value)

    # --- people and comments ---------------------------------------------------

    def add_reviewers(self, number: int, reviewers: List[str]) -> None:
        for reviewer in reviewers:
            self._client.add_reviewer(number, reviewer)

    def add_assignees(self, number: int, assignees: List[str]) -> None:
        if assignees:
            if len(assignees) > 1:
                LOG.debug("Gerrit supports a single assignee, using %s", assignees[0])
            self._client.add_assignee(number, assignees[0])

    def ensure_comment(self, number: int, topic: str | None, content: str) -> bool:
        self._add_message_if_missing(number, content, topic)
        return True

    # --- content ---------------------------------------------------------------

    def massage_markdown(self, text: str) -> str:
        text = smart_truncate(text, MAX_BODY_LENGTH)
        for pattern, replacement in _MARKDOWN_REWRITES:
            text = pattern.sub(replacement, text)
        return text

    def get_raw_file(
        self,
        file_name: str,
        repo_name: str | None = None,
        branch_or_tag: str | None = None,
    ) -> str | None:
        repo = repo_name or self._repo.repository or DEFAULT_PROJECT
        branch = branch_or_tag
        if not branch:
            branch = (self._repo.head if repo == self._repo.repository else None) or DEFAULT_BRANCH
        return self._client.get_file(repo, branch, file_name)

    def get_json_file(
        self,
        file_name: str,
        repo_name: str | None = None,
        branch_or_tag: str | None = None,
    ) -> Any:
        raw = self.get_raw_file(file_name, repo_name, branch_or_tag)
        if raw is None:
            return None
        return json5.loads(raw)

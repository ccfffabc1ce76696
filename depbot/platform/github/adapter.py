"""GitHub platform adapter (REST v3 + GraphQL v4)."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Tuple
from urllib.parse import quote, urlparse

from pydantic import BaseModel, Field

from depbot.platform.base import (
    REPOSITORY_ARCHIVED,
    REPOSITORY_CANNOT_FORK,
    REPOSITORY_CHANGED,
    REPOSITORY_NOT_FOUND,
    REPOSITORY_RENAMED,
    ConfigurationError,
    Platform,
    PlatformError,
    RepositoryError,
)
from depbot.platform.github.graphql import (
    CLOSED_PRS_QUERY,
    ENABLE_AUTO_MERGE_MUTATION,
    ISSUES_QUERY,
    OPEN_PRS_QUERY,
    REPO_INFO_QUERY,
    VULNERABILITY_ALERTS_QUERY,
)
from depbot.platform.github.http import DEFAULT_API_URL, GithubHttp
from depbot.platform.markdown import sanitize, smart_truncate
from depbot.platform.models import (
    BranchStatus,
    Comment,
    FileChange,
    Issue,
    PlatformOptions,
    PlatformResult,
    Pr,
    PrState,
    RepoResult,
    VulnerabilityAlert,
    matches_state,
)
from depbot.platform.util import escape_hash, from_base64, hash_body, parse_iso, repo_fingerprint

LOG = logging.getLogger("depbot.platform.github")

DEFAULT_ENDPOINT = DEFAULT_API_URL + "/"
MAX_BODY_LENGTH = 60000
AUTOCLOSED_SUFFIX = " - autoclosed"
AUTOCLOSED_REOPEN_DAYS = 7
GITHUB_APP_TOKEN_PREFIX = "x-access-token:"
MERGE_METHODS = ("rebase", "squash", "merge")
GREEN_CONCLUSIONS = ("success", "skipped", "neutral")

_STATUS_TO_BRANCH = {
    "success": BranchStatus.GREEN,
    "failure": BranchStatus.RED,
    "error": BranchStatus.RED,
    "pending": BranchStatus.YELLOW,
}
_BRANCH_TO_STATUS = {
    BranchStatus.GREEN: "success",
    BranchStatus.YELLOW: "pending",
    BranchStatus.RED: "failure",
}

_TOGITHUB_PATTERNS = [
    (re.compile(r'href="https?://github\.com/'), 'href="https://togithub.com/'),
    (re.compile(r"\]\(https://github\.com/"), "](https://togithub.com/"),
    (re.compile(r"\]: https://github\.com/"), "]: https://togithub.com/"),
]


def _version_tuple(version: str) -> Tuple[int, ...]:
    parts = []
    for part in version.split("."):
        digits = re.match(r"\d+", part)
        parts.append(int(digits.group(0)) if digits else 0)
    return tuple(parts)


def _pr_from_rest(data: Dict[str, Any]) -> Pr:
    head = data.get("head") or {}
    base = data.get("base") or {}
    reviewers = [r["login"] for r in (data.get("requested_reviewers") or []) if "login" in r]
    state = PrState.MERGED if data.get("merged_at") else PrState(data.get("state") or "open")
    return Pr(
        number=data["number"],
        title=data.get("title") or "",
        state=state,
        source_branch=head.get("ref"),
        target_branch=base.get("ref"),
        source_repo=(head.get("repo") or {}).get("full_name"),
        sha=head.get("sha"),
        body=data.get("body"),
        body_hash=hash_body(data.get("body")),
        labels=[lb["name"] for lb in (data.get("labels") or []) if isinstance(lb, dict) and "name" in lb],
        reviewers=reviewers,
        created_at=parse_iso(data["created_at"]) if data.get("created_at") else None,
        closed_at=parse_iso(data["closed_at"]) if data.get("closed_at") else None,
        can_merge=data.get("mergeable") is True,
        is_conflicted=data.get("mergeable_state") == "dirty",
        has_assignees=bool(data.get("assignee") or data.get("assignees")),
        has_reviewers=bool(reviewers or data.get("requested_teams")),
        display_number=f"Pull Request #{data['number']}",
    )


def _pr_from_graphql(node: Dict[str, Any], repository: str) -> Pr:
    labels = [lb["name"] for lb in ((node.get("labels") or {}).get("nodes") or []) if "name" in lb]
    return Pr(
        number=node["number"],
        title=node.get("title") or "",
        state=PrState(str(node.get("state") or "open").lower()),
        source_branch=node.get("headRefName"),
        target_branch=node.get("baseRefName"),
        source_repo=repository,
        sha=node.get("headRefOid"),
        body=node.get("body"),
        body_hash=hash_body(node.get("body")),
        labels=labels,
        created_at=parse_iso(node["createdAt"]) if node.get("createdAt") else None,
        closed_at=parse_iso(node["closedAt"]) if node.get("closedAt") else None,
        can_merge=node.get("mergeable") == "MERGEABLE",
        is_conflicted=node.get("mergeable") == "CONFLICTING",
        has_assignees=bool((node.get("assignees") or {}).get("totalCount")),
        has_reviewers=bool((node.get("reviewRequests") or {}).get("totalCount")),
        display_number=f"Pull Request #{node['number']}",
    )


class _PlatformConfig(BaseModel):
    endpoint: str = DEFAULT_ENDPOINT
    token: str | None = None
    username: str | None = None
    git_author: str | None = None
    is_ghe: bool = False
    ghe_version: str | None = None
    is_gh_app: bool = False


class _RepoConfig(BaseModel):
    """Per-repository state; replaced on every init_repo."""

    repository: str = ""
    parent_repo: str | None = None
    fork_mode: bool = False
    fork_token: str | None = None
    ignore_pr_author: bool = False
    repo_id: str | None = None
    default_branch: str = ""
    default_branch_sha: str | None = None
    is_fork: bool = False
    has_issues_enabled: bool | None = None
    auto_merge_allowed: bool | None = None
    merge_method: str | None = None
    force_rebase: bool | None = None
    pr_list: List[Pr] | None = None
    open_prs: Dict[int, Pr] | None = None
    closed_prs: Dict[int, Pr] | None = None
    closed_pr_comments: Dict[int, List[Comment]] = Field(default_factory=dict)
    issue_list: List[Issue] | None = None


class GitHubPlatform(Platform):
    """Platform adapter for github.com and GitHub Enterprise.

    `git` is the local repository collaborator (see depbot.git.GitRepo); it is
    used for the authenticated clone URL, branch head lookups and
    platform-native commits.
    """

    name = "github"

    def __init__(self, http: GithubHttp | None = None, git: Any = None) -> None:
        self._http = http or GithubHttp()
        self._git = git
        self._platform = _PlatformConfig()
        self._repo = _RepoConfig()

    # --- platform / repository -------------------------------------------------

    def init_platform(self, endpoint: str | None = None, **credentials: Any) -> PlatformResult:
        token = credentials.get("token")
        if not token:
            raise ConfigurationError("Init: You must configure a GitHub personal access token")
        endpoint = (endpoint or DEFAULT_ENDPOINT).rstrip("/") + "/"
        self._platform = _PlatformConfig(
            endpoint=endpoint,
            token=token,
            is_gh_app=token.startswith(GITHUB_APP_TOKEN_PREFIX),
        )
        self._http.set_base_url(endpoint)
        self._http.set_token(token)
        if endpoint != DEFAULT_ENDPOINT:
            self._detect_ghe(endpoint)

        user: Dict[str, Any] = {}
        username = credentials.get("username")
        if not username:
            user = self._http.get_json("/user") or {}
            username = user.get("login")
        self._platform.username = username
        LOG.debug("Authenticated on %s as %s", endpoint, username)

        git_author = credentials.get("git_author") or self._get_git_author(user.get("name") or username)
        self._platform.git_author = git_author
        return PlatformResult(endpoint=endpoint, username=username, git_author=git_author)

    def _detect_ghe(self, endpoint: str) -> None:
        try:
            resp = self._http.head(endpoint)
        except PlatformError as e:
            LOG.debug("Could not determine GitHub Enterprise version: %s", e)
            return
        version = resp.headers.get("x-github-enterprise-version")
        if version:
            self._platform.is_ghe = True
            self._platform.ghe_version = version
            LOG.debug("Detected GitHub Enterprise %s", version)

    def _get_git_author(self, name: str | None) -> str | None:
        try:
            emails = self._http.get_json("/user/emails") or []
        except PlatformError as e:
            LOG.debug("Cannot read user/emails endpoint on GitHub to retrieve gitAuthor: %s", e)
            return None
        if not emails or not emails[0].get("email"):
            return None
        return f"{name} <{emails[0]['email']}>"

    def get_repos(self) -> List[str]:
        LOG.debug("Autodiscovering GitHub repositories")
        try:
            if self._platform.is_gh_app:
                body = self._http.get_json(
                    "/installation/repositories?per_page=100",
                    paginate=True,
                    pagination_field="repositories",
                )
                return [r["full_name"] for r in (body or {}).get("repositories", [])]
            body = self._http.get_json("/user/repos?per_page=100", paginate=True)
            return [r["full_name"] for r in body or []]
        except PlatformError as e:
            LOG.error("GitHub getRepos error: %s", e)
            return []

    def init_repo(
        self,
        repository: str,
        fork_mode: bool = False,
        fork_token: str | None = None,
        ignore_pr_author: bool = False,
        **options: Any,
    ) -> RepoResult:
        LOG.debug("init_repo(%s)", repository)
        self._http.clear_cache()
        self._repo = _RepoConfig(
            repository=repository,
            fork_mode=fork_mode,
            fork_token=fork_token,
            ignore_pr_author=ignore_pr_author,
        )
        repo = self._query_repo_info(repository)
        if str(repo.get("nameWithOwner") or "").lower() != repository.lower():
            LOG.debug("Repository has been renamed to %s", repo.get("nameWithOwner"))
            raise RepositoryError(REPOSITORY_RENAMED)
        if repo.get("isArchived"):
            LOG.debug("Repository is archived")
            raise RepositoryError(REPOSITORY_ARCHIVED)

        default_ref = repo.get("defaultBranchRef") or {}
        self._repo.repo_id = repo.get("id")
        self._repo.is_fork = repo.get("isFork") is True
        self._repo.default_branch = default_ref.get("name") or ""
        self._repo.default_branch_sha = (default_ref.get("target") or {}).get("oid")
        self._repo.has_issues_enabled = repo.get("hasIssuesEnabled")
        self._repo.auto_merge_allowed = repo.get("autoMergeAllowed")
        self._repo.merge_method = self._detect_merge_method(repo)

        if fork_mode:
            self._fork_repo(repository)

        if self._git is not None:
            self._git.init_repo(self._git_url(self._repo.repository))
        return RepoResult(
            default_branch=self._repo.default_branch,
            is_fork=self._repo.is_fork,
            repo_fingerprint=repo_fingerprint(self._repo.repo_id, self._platform.endpoint),
        )

    def _query_repo_info(self, repository: str) -> Dict[str, Any]:
        owner, name = repository.split("/", 1)
        try:
            body = self._http.query(REPO_INFO_QUERY, {"owner": owner, "name": name})
        except PlatformError as e:
            if e.status_code == 404:
                raise RepositoryError(REPOSITORY_NOT_FOUND, status_code=404) from e
            raise
        errors = body.get("errors") or []
        if any(err.get("type") == "NOT_FOUND" for err in errors):
            raise RepositoryError(REPOSITORY_NOT_FOUND)
        if errors:
            raise PlatformError(f"GraphQL error: {errors}", body=body)
        repo = (body.get("data") or {}).get("repository")
        if not repo:
            raise RepositoryError(REPOSITORY_NOT_FOUND)
        return repo

    @staticmethod
    def _detect_merge_method(repo: Dict[str, Any]) -> str | None:
        if repo.get("rebaseMergeAllowed"):
            return "rebase"
        if repo.get("squashMergeAllowed"):
            return "squash"
        if repo.get("mergeCommitAllowed"):
            return "merge"
        LOG.debug("No permitted merge method detected. Not guessing.")
        return None

    def _fork_repo(self, repository: str) -> None:
        self._repo.parent_repo = repository
        existing = self._http.get_json("/user/repos?per_page=100", paginate=True) or []
        existing_names = {r.get("full_name") for r in existing}
        try:
            fork = self._http.post_json(f"/repos/{repository}/forks") or {}
        except PlatformError as e:
            LOG.info("Cannot fork %s: %s", repository, e)
            raise RepositoryError(REPOSITORY_CANNOT_FORK) from e
        fork_name = fork.get("full_name")
        if not fork_name:
            raise RepositoryError(REPOSITORY_CANNOT_FORK)
        self._repo.repository = fork_name
        default_branch = self._repo.default_branch
        sha = self._repo.default_branch_sha
        LOG.debug("Using fork %s of %s", fork_name, repository)

        if fork.get("default_branch") != default_branch:
            try:
                self._http.post_json(
                    f"/repos/{fork_name}/git/refs",
                    {"ref": f"refs/heads/{default_branch}", "sha": sha},
                )
            except PlatformError as e:
                if "Reference already exists" not in e.provider_message:
                    raise
                LOG.debug("Branch %s already exists in the fork", default_branch)
            try:
                self._http.patch_json(
                    f"/repos/{fork_name}",
                    {"name": fork_name.split("/", 1)[1], "default_branch": default_branch},
                )
            except PlatformError as e:
                LOG.warning("Could not set default branch %s on fork %s: %s", default_branch, fork_name, e)

        if fork_name in existing_names:
            LOG.debug("Updating existing fork %s to %s", fork_name, sha)
            try:
                self._http.patch_json(
                    f"/repos/{fork_name}/git/refs/heads/{escape_hash(default_branch)}",
                    {"sha": sha, "force": True},
                )
            except PlatformError as e:
                LOG.warning("Error updating fork from upstream: %s", e)
                raise RepositoryError(REPOSITORY_CANNOT_FORK) from e

    def _git_url(self, repository: str) -> str:
        parsed = urlparse(self._platform.endpoint)
        host = "github.com" if parsed.hostname == "api.github.com" else parsed.netloc
        token = self._repo.fork_token or self._platform.token or ""
        token = token[len(GITHUB_APP_TOKEN_PREFIX) :] if token.startswith(GITHUB_APP_TOKEN_PREFIX) else token
        return f"https://x-access-token:{token}@{host}/{repository}.git"

    @property
    def _pr_repo(self) -> str:
        return self._repo.parent_repo or self._repo.repository

    def _owner_name(self) -> Dict[str, str]:
        owner, name = self._pr_repo.split("/", 1)
        return {"owner": owner, "name": name}

    def _secrets(self) -> List[str | None]:
        secrets: List[str | None] = [self._platform.token, self._repo.fork_token]
        for token in (self._platform.token, self._repo.fork_token):
            if token and token.startswith(GITHUB_APP_TOKEN_PREFIX):
                secrets.append(token[len(GITHUB_APP_TOKEN_PREFIX) :])
        return secrets

    def get_repo_force_rebase(self) -> bool:
        if self._repo.force_rebase is None:
            path = f"/repos/{self._repo.repository}/branches/{escape_hash(self._repo.default_branch)}/protection"
            try:
                body = self._http.get_json(path) or {}
                checks = body.get("required_status_checks") or {}
                self._repo.force_rebase = checks.get("strict") is True
            except PlatformError as e:
                if e.status_code == 404:
                    LOG.debug("No branch protection found")
                elif e.status_code == 403:
                    LOG.debug("Branch protection: not enough permissions")
                else:
                    raise
                self._repo.force_rebase = False
        return self._repo.force_rebase

    # --- pull requests ---------------------------------------------------------

    def get_pr_list(self) -> List[Pr]:
        if self._repo.pr_list is None:
            body = self._http.get_json(f"/repos/{self._pr_repo}/pulls?per_page=100&state=all", paginate=True)
            filter_author = not (self._repo.fork_mode or self._repo.ignore_pr_author)
            prs = []
            for data in body or []:
                if filter_author and (data.get("user") or {}).get("login") != self._platform.username:
                    continue
                prs.append(_pr_from_rest(data))
            self._repo.pr_list = prs
            LOG.debug("Retrieved %s PRs", len(prs))
        return self._repo.pr_list

    def find_pr(
        self,
        branch_name: str,
        pr_title: str | None = None,
        state: PrState | str = PrState.ALL,
    ) -> Pr | None:
        LOG.debug("find_pr(%s, %s, %s)", branch_name, pr_title, getattr(state, "value", state))
        for pr in self.get_pr_list():
            if pr.source_branch != branch_name:
                continue
            if pr_title and pr.title != pr_title:
                continue
            if not matches_state(pr.state, state):
                continue
            if not self._repo.fork_mode and pr.source_repo != self._repo.repository:
                continue
            LOG.debug("Found PR #%s", pr.number)
            return pr
        return None

    def get_branch_pr(self, branch_name: str) -> Pr | None:
        open_pr = self.find_pr(branch_name, state=PrState.OPEN)
        if open_pr:
            return self.get_pr(open_pr.number)

        closed = self.find_pr(branch_name, state=PrState.CLOSED)
        if not closed or not closed.title.endswith(AUTOCLOSED_SUFFIX) or not closed.closed_at:
            return None
        if closed.closed_at < datetime.now(timezone.utc) - timedelta(days=AUTOCLOSED_REOPEN_DAYS):
            LOG.debug("Autoclosed PR #%s is too old to reopen", closed.number)
            return None
        LOG.debug("Reopening autoclosed PR #%s", closed.number)
        title = closed.title[: -len(AUTOCLOSED_SUFFIX)]
        try:
            self._http.post_json(
                f"/repos/{self._repo.repository}/git/refs",
                {"ref": f"refs/heads/{branch_name}", "sha": closed.sha},
            )
            self._http.patch_json(
                f"/repos/{self._pr_repo}/pulls/{closed.number}",
                {"state": "open", "title": title},
            )
        except PlatformError as e:
            LOG.debug("Could not reopen autoclosed PR #%s: %s", closed.number, e)
            return None
        LOG.info("Successfully reopened autoclosed PR #%s", closed.number)
        self._repo.pr_list = None
        self._repo.open_prs = None
        self._repo.closed_prs = None
        self._repo.closed_pr_comments = {}
        return self.get_pr(closed.number)

    def _get_pr_map(self, query: str) -> Tuple[Dict[int, Pr], Dict[int, List[Comment]]]:
        prs: Dict[int, Pr] = {}
        comments: Dict[int, List[Comment]] = {}
        try:
            nodes = self._http.query_repo_field(query, "pullRequests", self._owner_name())
        except PlatformError as e:
            LOG.debug("Error fetching PRs via GraphQL: %s", e)
            return prs, comments
        filter_author = not (self._repo.fork_mode or self._repo.ignore_pr_author)
        for node in nodes:
            if filter_author and (node.get("author") or {}).get("login") != self._platform.username:
                continue
            pr = _pr_from_graphql(node, self._repo.repository)
            prs[pr.number] = pr
            comments[pr.number] = [
                Comment(id=c["databaseId"], body=c.get("body") or "")
                for c in ((node.get("comments") or {}).get("nodes") or [])
            ]
        return prs, comments

    def _get_open_prs(self) -> Dict[int, Pr]:
        if self._repo.open_prs is None:
            self._repo.open_prs, _ = self._get_pr_map(OPEN_PRS_QUERY)
        return self._repo.open_prs

    def _get_closed_prs(self) -> Dict[int, Pr]:
        if self._repo.closed_prs is None:
            self._repo.closed_prs, self._repo.closed_pr_comments = self._get_pr_map(CLOSED_PRS_QUERY)
        return self._repo.closed_prs

    def get_pr(self, number: int) -> Pr | None:
        if not number:
            return None
        pr = self._get_open_prs().get(number) or self._get_closed_prs().get(number)
        if pr:
            LOG.debug("Returning PR #%s from GraphQL", number)
            return pr
        try:
            data = self._http.get_json(f"/repos/{self._pr_repo}/pulls/{number}")
        except PlatformError as e:
            if e.status_code == 404:
                return None
            raise
        if not data:
            return None
        return _pr_from_rest(data)

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
        options = platform_options or PlatformOptions()
        head = source_branch
        if self._repo.parent_repo:
            head = f"{self._repo.repository.split('/', 1)[0]}:{source_branch}"
        payload: Dict[str, Any] = {
            "title": pr_title,
            "head": head,
            "base": target_branch,
            "body": sanitize(pr_body, self._secrets()),
            "draft": draft_pr,
        }
        if self._repo.fork_token:
            payload["maintainer_can_modify"] = True
        LOG.debug("Creating PR: %s", pr_title)
        data = self._http.post_json(f"/repos/{self._pr_repo}/pulls", payload) or {}
        pr = _pr_from_rest(data)
        LOG.info("PR created: #%s", pr.number)
        self._add_labels(pr.number, labels)
        if options.use_platform_automerge:
            self._try_pr_automerge(pr.number, data.get("node_id"))
        if self._repo.pr_list is not None:
            self._repo.pr_list.append(pr)
        return pr

    def _add_labels(self, number: int, labels: List[str] | None) -> None:
        if not labels:
            return
        LOG.debug("Adding labels %s to #%s", labels, number)
        try:
            self._http.post_json(f"/repos/{self._pr_repo}/issues/{number}/labels", labels)
        except PlatformError as e:
            LOG.warning("Error adding labels to #%s: %s", number, e)

    def _try_pr_automerge(self, number: int, node_id: str | None) -> None:
        if self._repo.auto_merge_allowed is False:
            LOG.debug("GitHub-native automerge: not enabled in repo settings")
            return
        if self._platform.is_ghe and self._platform.ghe_version:
            if _version_tuple(self._platform.ghe_version) < (3, 3):
                LOG.debug("GitHub-native automerge: not supported on this version of GHE (%s)", self._platform.ghe_version)
                return
        variables = {
            "pullRequestId": node_id,
            "mergeMethod": (self._repo.merge_method or "merge").upper(),
        }
        try:
            body = self._http.query(ENABLE_AUTO_MERGE_MUTATION, variables)
        except PlatformError as e:
            LOG.warning("GitHub-native automerge: REST API error for PR #%s: %s", number, e)
            return
        if body.get("errors"):
            LOG.warning("GitHub-native automerge: fail for PR #%s: %s", number, body["errors"])
            return
        LOG.debug("GitHub-native automerge: success for PR #%s", number)

    def update_pr(
        self,
        number: int,
        pr_title: str,
        pr_body: str | None = None,
        state: PrState | str | None = None,
        platform_options: PlatformOptions | None = None,
    ) -> None:
        LOG.debug("update_pr(#%s, %s)", number, pr_title)
        payload: Dict[str, Any] = {"title": pr_title}
        if pr_body is not None:
            payload["body"] = sanitize(pr_body, self._secrets())
        if state is not None:
            payload["state"] = getattr(state, "value", state)
        try:
            self._http.patch_json(f"/repos/{self._pr_repo}/pulls/{number}", payload)
            LOG.debug("PR #%s updated", number)
        except PlatformError as e:
            LOG.warning("Error updating PR #%s: %s", number, e)

    def merge_pr(self, id: int, branch_name: str | None = None) -> bool:
        path = f"/repos/{self._pr_repo}/pulls/{id}/merge"
        merged = False
        if self._repo.merge_method:
            try:
                self._http.put_json(path, {"merge_method": self._repo.merge_method})
                merged = True
            except PlatformError as e:
                if e.status_code not in (404, 405):
                    LOG.info("Failed to merge PR #%s: %s", id, e)
                    return False
                LOG.debug("Merge method %s rejected for PR #%s: %s", self._repo.merge_method, id, e)
        if not merged:
            LOG.debug("Detecting merge method for PR #%s", id)
            for method in MERGE_METHODS:
                try:
                    self._http.put_json(path, {"merge_method": method})
                    merged = True
                    break
                except PlatformError as e:
                    LOG.debug("Merge method %s failed for PR #%s: %s", method, id, e)
        if not merged:
            LOG.info("All merge attempts failed for PR #%s", id)
            return False
        LOG.debug("PR #%s merged", id)
        for pr in self._repo.pr_list or []:
            if pr.number == id:
                pr.state = PrState.MERGED
        return True

    # --- branch statuses -------------------------------------------------------

    def _get_status(self, branch_name: str, use_cache: bool = True) -> Dict[str, Any]:
        path = f"/repos/{self._repo.repository}/commits/{escape_hash(branch_name)}/status"
        return self._http.get_json(path, use_cache=use_cache) or {}

    def _get_status_check(self, branch_name: str, use_cache: bool = True) -> List[Dict[str, Any]]:
        branch_commit = self._git.get_branch_commit(branch_name)
        path = f"/repos/{self._repo.repository}/commits/{branch_commit}/statuses"
        return self._http.get_json(path, use_cache=use_cache) or []

    def get_branch_status(self, branch_name: str) -> BranchStatus:
        try:
            commit_status = self._get_status(branch_name)
        except PlatformError as e:
            if e.status_code == 404:
                LOG.debug("Received 404 when checking branch status, assuming branch deletion")
                raise RepositoryError(REPOSITORY_CHANGED, status_code=404) from e
            raise
        state = commit_status.get("state")
        LOG.debug("Branch %s commit status: %s", branch_name, state)

        check_runs: List[Dict[str, Any]] = []
        path = f"/repos/{self._repo.repository}/commits/{escape_hash(branch_name)}/check-runs?per_page=100"
        try:
            body = self._http.get_json(path, paginate=True, pagination_field="check_runs")
            if isinstance(body, dict):
                check_runs = body.get("check_runs") or []
        except PlatformError as e:
            if e.status_code == 403:
                LOG.debug("No permission to view check runs")
            else:
                LOG.warning("Error retrieving check runs: %s", e)

        if not check_runs:
            if state == "success":
                return BranchStatus.GREEN
            if state == "failure":
                return BranchStatus.RED
            return BranchStatus.YELLOW
        if state == "failure" or any(run.get("conclusion") == "failure" for run in check_runs):
            return BranchStatus.RED
        no_statuses = not commit_status.get("statuses")
        if (state == "success" or no_statuses) and all(
            run.get("conclusion") in GREEN_CONCLUSIONS for run in check_runs
        ):
            return BranchStatus.GREEN
        return BranchStatus.YELLOW

    def get_branch_status_check(self, branch_name: str, context: str | None) -> BranchStatus | None:
        try:
            statuses = self._get_status_check(branch_name)
        except PlatformError as e:
            if e.status_code == 404:
                LOG.debug("Commit not found when checking statuses")
                raise RepositoryError(REPOSITORY_CHANGED, status_code=404) from e
            raise
        for status in statuses:
            if status.get("context") == context:
                return _STATUS_TO_BRANCH.get(status.get("state"), BranchStatus.YELLOW)
        return None

    def set_branch_status(
        self,
        branch_name: str,
        context: str,
        description: str,
        state: BranchStatus,
        url: str | None = None,
    ) -> None:
        state = BranchStatus(state)
        existing = self.get_branch_status_check(branch_name, context)
        if existing == state:
            LOG.debug("Status check %s is already up-to-date", context)
            return
        LOG.debug("Setting branch status %s=%s on %s", context, state.value, branch_name)
        try:
            sha = self._git.get_branch_commit(branch_name)
            payload: Dict[str, Any] = {
                "state": _BRANCH_TO_STATUS[state],
                "description": description,
                "context": context,
            }
            if url:
                payload["target_url"] = url
            self._http.post_json(f"/repos/{self._repo.repository}/statuses/{sha}", payload)
            self._get_status(branch_name, use_cache=False)
            self._get_status_check(branch_name, use_cache=False)
        except PlatformError as e:
            LOG.debug("Caught error setting branch status - aborting: %s", e)
            raise RepositoryError(REPOSITORY_CHANGED) from e

    # --- issues ----------------------------------------------------------------

    def get_issue_list(self) -> List[Issue]:
        if self._repo.has_issues_enabled is False:
            return []
        if self._repo.issue_list is None:
            variables = {**self._owner_name(), "user": self._platform.username}
            nodes = self._http.query_repo_field(ISSUES_QUERY, "issues", variables)
            self._repo.issue_list = [
                Issue(
                    number=node["number"],
                    state=str(node.get("state") or "open").lower(),
                    title=node.get("title") or "",
                    body=node.get("body"),
                )
                for node in nodes
            ]
            LOG.debug("Retrieved %s issues", len(self._repo.issue_list))
        return self._repo.issue_list

    def _get_issue_body(self, number: int) -> str | None:
        try:
            data = self._http.get_json(f"/repos/{self._pr_repo}/issues/{number}", use_cache=False)
        except PlatformError as e:
            LOG.debug("Error getting issue #%s: %s", number, e)
            return None
        if not data:
            return None
        return data.get("body") or ""

    def find_issue(self, title: str) -> Issue | None:
        LOG.debug("find_issue(%s)", title)
        issue = next(
            (i for i in self.get_issue_list() if i.state == "open" and i.title == title),
            None,
        )
        if not issue:
            return None
        LOG.debug("Found issue #%s", issue.number)
        body = self._get_issue_body(issue.number)
        return Issue(number=issue.number, state=issue.state, title=issue.title, body=body)

    def _close_issue(self, number: int) -> None:
        LOG.debug("Closing issue #%s", number)
        self._http.patch_json(f"/repos/{self._pr_repo}/issues/{number}", {"state": "closed"})

    def ensure_issue(
        self,
        title: str,
        body: str,
        reuse_title: str | None = None,
        labels: List[str] | None = None,
        once: bool = False,
        should_reopen: bool = True,
    ) -> str | None:
        LOG.debug("ensure_issue(%s)", title)
        if self._repo.has_issues_enabled is False:
            LOG.info("Cannot ensure issue because issues are disabled in this repository")
            return None
        body = sanitize(body, self._secrets())
        try:
            issue_list = self.get_issue_list()
            issues = [i for i in issue_list if i.title == title]
            if not issues and reuse_title:
                issues = [i for i in issue_list if i.title == reuse_title]
            if issues:
                issue = next((i for i in issues if i.state == "open"), None)
                if issue is None:
                    if once:
                        LOG.debug("Issue already closed - skipping recreation")
                        return None
                    issue = issues[-1]
                for other in issues:
                    if other.state == "open" and other.number != issue.number:
                        LOG.warning("Closing duplicate issue #%s", other.number)
                        self._close_issue(other.number)
                existing_body = self._get_issue_body(issue.number)
                if existing_body is None:
                    return None
                if issue.title == title and issue.state == "open" and existing_body == body:
                    LOG.debug("Issue is open and up to date - nothing to do")
                    return None
                if should_reopen:
                    LOG.debug("Patching issue #%s", issue.number)
                    payload: Dict[str, Any] = {"body": body, "state": "open", "title": title}
                    if labels is not None:
                        payload["labels"] = labels
                    self._http.patch_json(f"/repos/{self._pr_repo}/issues/{issue.number}", payload)
                    LOG.debug("Issue updated")
                    return "updated"
            self._http.post_json(
                f"/repos/{self._pr_repo}/issues",
                {"title": title, "body": body, "labels": labels or []},
            )
            LOG.info("Issue created: %s", title)
            self._repo.issue_list = None
            return "created"
        except PlatformError as e:
            if e.provider_message.startswith("Issues are disabled for this repo"):
                LOG.debug("Issues are disabled, so could not create issue: %s", title)
                return None
            raise

    def ensure_issue_closing(self, title: str) -> None:
        LOG.debug("ensure_issue_closing(%s)", title)
        for issue in self.get_issue_list():
            if issue.state == "open" and issue.title == title:
                self._close_issue(issue.number)
                LOG.debug("Issue #%s closed", issue.number)

    # --- labels, assignees, reviewers -----------------------------------------

    def delete_label(self, number: int, label: str) -> None:
        LOG.debug("Deleting label %s from #%s", label, number)
        try:
            self._http.delete(f"/repos/{self._pr_repo}/issues/{number}/labels/{quote(label, safe='')}")
        except PlatformError as e:
            LOG.warning("Failed to delete label %s from #%s: %s", label, number, e)

    def add_assignees(self, number: int, assignees: List[str]) -> None:
        LOG.debug("Adding assignees %s to #%s", assignees, number)
        self._http.post_json(f"/repos/{self._pr_repo}/issues/{number}/assignees", {"assignees": assignees})

    def add_reviewers(self, number: int, reviewers: List[str]) -> None:
        LOG.debug("Adding reviewers %s to #%s", reviewers, number)
        users = [r for r in reviewers if not r.startswith("team:")]
        teams = [r[len("team:") :] for r in reviewers if r.startswith("team:")]
        try:
            self._http.post_json(
                f"/repos/{self._pr_repo}/pulls/{number}/requested_reviewers",
                {"reviewers": users, "team_reviewers": teams},
            )
        except PlatformError as e:
            LOG.warning("Failed to assign reviewers to #%s: %s", number, e)

    # --- comments --------------------------------------------------------------

    def _get_comments(self, number: int) -> List[Comment]:
        if number in self._get_closed_prs():
            LOG.debug("Using comments of closed PR #%s from cache", number)
            return self._repo.closed_pr_comments.get(number, [])
        data = self._http.get_json(
            f"/repos/{self._pr_repo}/issues/{number}/comments?per_page=100",
            use_cache=False,
            paginate=True,
        )
        return [Comment(id=c["id"], body=c.get("body") or "") for c in data or []]

    def ensure_comment(self, number: int, topic: str | None, content: str) -> bool:
        sanitized = sanitize(content, self._secrets())
        try:
            comments = self._get_comments(number)
            if topic:
                header = f"### {topic}\n\n"
                body = f"{header}{sanitized}"
                existing = next((c for c in comments if c.body.startswith(header)), None)
            else:
                body = sanitized
                existing = next((c for c in comments if c.body == body), None)
            if existing is None:
                self._http.post_json(f"/repos/{self._pr_repo}/issues/{number}/comments", {"body": body})
                LOG.info("Comment added to #%s (%s)", number, topic)
            elif existing.body != body:
                self._http.patch_json(f"/repos/{self._pr_repo}/issues/comments/{existing.id}", {"body": body})
                LOG.debug("Comment %s on #%s updated (%s)", existing.id, number, topic)
            else:
                LOG.debug("Comment on #%s is already up-to-date (%s)", number, topic)
            return True
        except PlatformError as e:
            if "Unable to create comment because issue is locked" in e.provider_message:
                LOG.debug("Issue #%s is locked - cannot add comment", number)
                return False
            LOG.warning("Error ensuring comment on #%s: %s", number, e)
            return False

    def ensure_comment_removal(
        self,
        number: int,
        topic: str | None = None,
        content: str | None = None,
    ) -> None:
        LOG.debug("ensure_comment_removal(#%s, %s)", number, topic)
        header = f"### {topic}\n\n" if topic else None
        try:
            for comment in self._get_comments(number):
                by_topic = header is not None and comment.body.startswith(header)
                by_content = content is not None and comment.body.strip() == content.strip()
                if by_topic or by_content:
                    self._http.delete(f"/repos/{self._pr_repo}/issues/comments/{comment.id}")
                    LOG.debug("Removed comment %s from #%s", comment.id, number)
                    return
        except PlatformError as e:
            LOG.warning("Error deleting comment on #%s: %s", number, e)

    # --- content ---------------------------------------------------------------

    def massage_markdown(self, text: str) -> str:
        if not self._platform.is_ghe:
            for pattern, replacement in _TOGITHUB_PATTERNS:
                text = pattern.sub(replacement, text)
        return smart_truncate(text, MAX_BODY_LENGTH)

    def get_vulnerability_alerts(self) -> List[VulnerabilityAlert]:
        try:
            edges = self._http.query_repo_field(
                VULNERABILITY_ALERTS_QUERY,
                "vulnerabilityAlerts",
                self._owner_name(),
                paginate=False,
            )
            alerts = [VulnerabilityAlert.model_validate(edge.get("node") or {}) for edge in edges]
        except PlatformError as e:
            LOG.debug("Error retrieving vulnerability alerts: %s", e)
            return []
        summary: Dict[str, Dict[str, Any]] = {}
        for alert in alerts:
            vuln = alert.security_vulnerability
            if not vuln:
                continue
            package = vuln.get("package") or {}
            key = f"{str(package.get('ecosystem') or '').lower()}/{package.get('name')}"
            patched = (vuln.get("firstPatchedVersion") or {}).get("identifier")
            summary.setdefault(key, {})[vuln.get("vulnerableVersionRange")] = patched
        if summary:
            LOG.debug("GitHub vulnerability details: %s", summary)
        else:
            LOG.debug("No vulnerability alerts found")
        return alerts

    def get_raw_file(
        self,
        file_name: str,
        repo_name: str | None = None,
        branch_or_tag: str | None = None,
    ) -> str | None:
        repo = repo_name or self._repo.repository
        path = f"/repos/{repo}/contents/{file_name}"
        if branch_or_tag:
            path += f"?ref={branch_or_tag}"
        body = self._http.get_json(path)
        if not body or not body.get("content"):
            return None
        return from_base64(body["content"])

    def commit_files(
        self,
        branch_name: str,
        files: List[FileChange],
        message: str,
        force: bool = False,
    ) -> str | None:
        """Commit through the API so the commit is signed by GitHub.

        The commit is prepared locally, its tree pushed to a private ref and
        then recreated remotely; the branch ref is moved onto the new commit.
        """
        result = self._git.prepare_commit(
            branch_name,
            files,
            message,
            base_branch=self._repo.default_branch,
            force=force,
        )
        if result is None:
            return None
        repo = self._repo.repository
        try:
            self._git.push_commit_to_ref(result.commit_sha, branch_name)
            tree_items = self._git.list_commit_tree(result.commit_sha)
            tree = self._http.post_json(
                f"/repos/{repo}/git/trees",
                {"base_tree": result.parent_commit_sha, "tree": tree_items},
            )
            commit = self._http.post_json(
                f"/repos/{repo}/git/commits",
                {"message": message, "tree": tree["sha"], "parents": [result.parent_commit_sha]},
            )
            if self._git.branch_exists(branch_name):
                self._http.patch_json(
                    f"/repos/{repo}/git/refs/heads/{escape_hash(branch_name)}",
                    {"sha": commit["sha"], "force": True},
                )
            else:
                self._http.post_json(
                    f"/repos/{repo}/git/refs",
                    {"ref": f"refs/heads/{branch_name}", "sha": commit["sha"]},
                )
        except PlatformError as e:
            LOG.debug("Platform-native commit failed for %s: %s", branch_name, e)
            return None
        return self._git.fetch_commit(branch_name)

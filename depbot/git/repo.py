"""Local clone of the repository being processed.

Platform adapters use it for branch head lookups and to prepare commits that
are then recreated through the platform API.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List

from depbot.git._run import GitRunnerError, _run_git
from depbot.platform.models import CommitResult, FileChange

LOG = logging.getLogger("depbot.git")

PRIVATE_REF_PREFIX = "refs/depbot/branches/"
DEFAULT_AUTHOR = "depbot <bot@depbot.invalid>"

_AUTHOR_RE = re.compile(r"^\s*(?P<name>.*?)\s*<(?P<email>[^>]+)>\s*$")


def parse_git_author(author: str) -> tuple[str, str]:
    """Split 'Name <email>' into (name, email)."""
    match = _AUTHOR_RE.match(author or "")
    if not match:
        raise ValueError(f"Invalid git author: {author!r}")
    return match.group("name") or match.group("email"), match.group("email")


class GitRepo:
    """Git working copy under `local_dir`, cloned from the URL given to init_repo."""

    def __init__(self, local_dir: Path | str, git_author: str | None = None) -> None:
        self._local_dir = Path(local_dir)
        self._git_author = git_author or DEFAULT_AUTHOR
        self._url: str | None = None
        self._branch_commits: Dict[str, str] | None = None

    @property
    def local_dir(self) -> Path:
        return self._local_dir

    def set_git_author(self, git_author: str | None) -> None:
        if git_author:
            self._git_author = git_author

    def _git(self, args: List[str]) -> str:
        return _run_git(args, cwd=self._local_dir, log=LOG)

    def init_repo(self, url: str) -> None:
        """Remember the clone URL; nothing touches the disk until sync_git."""
        self._url = url
        self._branch_commits = None

    def sync_git(self) -> None:
        """Clone the repository, or fetch it when a clone already exists."""
        if not self._url:
            raise GitRunnerError("sync_git called before init_repo")
        if (self._local_dir / ".git").exists():
            LOG.debug("Fetching existing clone in %s", self._local_dir)
            self._git(["remote", "set-url", "origin", self._url])
            self._git(["fetch", "--prune", "origin"])
        else:
            LOG.debug("Cloning into %s", self._local_dir)
            self._local_dir.mkdir(parents=True, exist_ok=True)
            self._git(["clone", "--no-single-branch", self._url, "."])
        self._refresh_branch_commits()

    def _refresh_branch_commits(self) -> None:
        commits: Dict[str, str] = {}
        for line in self._git(["ls-remote", "--heads", "origin"]).splitlines():
            if "\t" not in line:
                continue
            sha, ref = line.split("\t", 1)
            commits[ref[len("refs/heads/") :]] = sha
        self._branch_commits = commits
        LOG.debug("Found %s remote branches", len(commits))

    def _branches(self) -> Dict[str, str]:
        if self._branch_commits is None:
            self.sync_git()
        return self._branch_commits or {}

    def branch_exists(self, branch_name: str) -> bool:
        return branch_name in self._branches()

    def get_branch_commit(self, branch_name: str) -> str | None:
        return self._branches().get(branch_name)

    def prepare_commit(
        self,
        branch_name: str,
        files: List[FileChange],
        message: str,
        base_branch: str | None = None,
        force: bool = False,
    ) -> CommitResult | None:
        """Commit `files` on top of `base_branch` in a detached checkout.

        Returns None when the files produce no change, or (unless force) when
        the result does not differ from the current remote branch.
        """
        self._branches()
        base = f"origin/{base_branch}" if base_branch else "HEAD"
        self._git(["checkout", "--force", "--detach", base])
        self._git(["clean", "-fd"])
        parent_sha = self._git(["rev-parse", "HEAD"]).strip()

        for change in files:
            if change.type == "deletion":
                self._git(["rm", "-r", "-f", "--ignore-unmatch", "--", change.path])
                continue
            target = self._local_dir / change.path
            target.parent.mkdir(parents=True, exist_ok=True)
            contents = change.contents if change.contents is not None else ""
            target.write_bytes(contents if isinstance(contents, bytes) else contents.encode("utf-8"))
            self._git(["add", "--", change.path])
            if change.is_executable:
                self._git(["update-index", "--chmod=+x", "--", change.path])

        if not self._git(["status", "--porcelain"]).strip():
            LOG.debug("No file changes detected for %s", branch_name)
            return None

        name, email = parse_git_author(self._git_author)
        self._git(["-c", f"user.name={name}", "-c", f"user.email={email}", "commit", "-m", message])
        commit_sha = self._git(["rev-parse", "HEAD"]).strip()

        if not force and self.branch_exists(branch_name):
            diff = self._git(["diff", "--name-only", f"origin/{branch_name}", commit_sha])
            if not diff.strip():
                LOG.debug("Branch %s is already up to date", branch_name)
                return None
        return CommitResult(parent_commit_sha=parent_sha, commit_sha=commit_sha, files=files)

    def push_commit_to_ref(self, commit_sha: str, branch_name: str) -> str:
        """Force-push a commit to the bot's private ref for `branch_name`; returns the ref."""
        ref = f"{PRIVATE_REF_PREFIX}{branch_name}"
        self._git(["push", "--force", "origin", f"{commit_sha}:{ref}"])
        LOG.debug("Pushed %s to %s", commit_sha, ref)
        return ref

    def list_commit_tree(self, commit_sha: str) -> List[Dict[str, str]]:
        """Tree entries of a commit in the shape expected by the GitHub trees API."""
        items = []
        for line in self._git(["ls-tree", "-r", commit_sha]).splitlines():
            if "\t" not in line:
                continue
            meta, path = line.split("\t", 1)
            mode, obj_type, sha = meta.split()
            items.append({"path": path, "mode": mode, "type": obj_type, "sha": sha})
        return items

    def fetch_commit(self, branch_name: str) -> str:
        """Fetch the remote branch and return its head sha."""
        self._git(["fetch", "origin", f"+refs/heads/{branch_name}:refs/remotes/origin/{branch_name}"])
        sha = self._git(["rev-parse", f"refs/remotes/origin/{branch_name}"]).strip()
        if self._branch_commits is not None:
            self._branch_commits[branch_name] = sha
        return sha

"""Results of platform / repository initialization and per-call options."""

from pydantic import BaseModel


class PlatformResult(BaseModel):
    """What init_platform learned about the endpoint and the bot identity."""

    endpoint: str
    username: str | None = None
    git_author: str | None = None


class RepoResult(BaseModel):
    """What init_repo learned about the repository."""

    default_branch: str
    is_fork: bool = False
    repo_fingerprint: str | None = None


class PlatformOptions(BaseModel):
    """Provider-specific switches passed to create_pr / update_pr."""

    use_platform_automerge: bool = False
    gerrit_auto_approve: bool = False

"""Local git operations used by the platform adapters."""

from depbot.git._run import GitRunnerError
from depbot.git.repo import GitRepo, parse_git_author

__all__ = ["GitRepo", "GitRunnerError", "parse_git_author"]

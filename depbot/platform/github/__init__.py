"""GitHub platform adapter."""

from depbot.platform.github.adapter import GitHubPlatform
from depbot.platform.github.http import GithubHttp

__all__ = ["GitHubPlatform", "GithubHttp"]

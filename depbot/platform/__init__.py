"""Code hosting platform adapters behind one interface."""

from typing import Any

from depbot.platform.base import (
    ConfigurationError,
    Platform,
    PlatformError,
    RepositoryError,
)
from depbot.platform.gerrit import GerritPlatform
from depbot.platform.github import GitHubPlatform

PLATFORMS = {
    GitHubPlatform.name: GitHubPlatform,
    GerritPlatform.name: GerritPlatform,
}


def get_platform(name: str, **kwargs: Any) -> Platform:
    """Instantiate the adapter registered under `name` ("github" or "gerrit").

    Keyword arguments go to the adapter constructor (git, http/client,
    label_mappings).
    """
    try:
        platform_cls = PLATFORMS[name.lower().strip()]
    except KeyError:
        raise ValueError(f"Unknown platform: {name!r} (expected one of {', '.join(sorted(PLATFORMS))})") from None
    return platform_cls(**kwargs)


__all__ = [
    "PLATFORMS",
    "ConfigurationError",
    "GerritPlatform",
    "GitHubPlatform",
    "Platform",
    "PlatformError",
    "RepositoryError",
    "get_platform",
]

"""Gerrit platform adapter."""

from depbot.platform.gerrit.adapter import GerritPlatform
from depbot.platform.gerrit.client import GerritClient, build_search_filters

__all__ = ["GerritClient", "GerritPlatform", "build_search_filters"]

"""Configuration loading from YAML and environment.

Secrets (GitHub token, Gerrit password) are taken from environment
variables or from files (Docker secrets). Never put real tokens in config
files committed to the repo.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from depbot.platform.gerrit.types import GerritLabelMapping


def _read_secret(env_key: str, file_env_key: str) -> str | None:
    """Read secret from env var or from file path in env (e.g. Docker
    secrets)."""
    value = _current_env.get(env_key)
    if value:
        return value.strip()
    file_path = _current_env.get(file_env_key)
    if file_path:
        return Path(file_path).read_text().strip()
    return None


def _is_placeholder(value: str | None) -> bool:
    return not value or value.startswith("${")


# Injected by load_config so secret resolution can read env/file
_current_env: dict[str, str] = {}


class PlatformConfig(BaseSettings):
    """Which hosting platform to talk to and which repository to process."""

    model_config = SettingsConfigDict(env_prefix="PLATFORM_", extra="ignore")

    name: str = Field(default="github", description="github or gerrit")
    endpoint: str | None = Field(default=None, description="API endpoint; platform default when empty")
    repository: str | None = Field(default=None, description="Target repo e.g. owner/repo")
    fork_mode: bool = Field(default=False, description="Work on a fork of the repository (GitHub)")
    ignore_pr_author: bool = Field(default=False, description="Consider PRs of any author as the bot's (GitHub)")

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        return value.strip().lower()


class GitHubConfig(BaseSettings):
    """GitHub API settings."""

    model_config = SettingsConfigDict(env_prefix="GITHUB_", extra="ignore")

    token: str | None = Field(default=None, description="PAT or app token; use env or secret file")
    api_url: str = Field(default="https://api.github.com", description="API base URL")
    username: str | None = Field(default=None, description="Bot login; looked up from the token when empty")
    git_author: str | None = Field(default=None, description="'Name <email>' for commits")
    fork_token: str | None = Field(default=None, description="Token used to push to the fork in fork mode")


class GerritConfig(BaseSettings):
    """Gerrit server settings."""

    model_config = SettingsConfigDict(env_prefix="GERRIT_", extra="ignore")

    endpoint: str | None = Field(default=None, description="Server URL e.g. https://review.example.com/")
    username: str | None = Field(default=None, description="HTTP username")
    password: str | None = Field(default=None, description="HTTP password; use env or secret file")
    label_mappings: GerritLabelMapping = Field(default_factory=GerritLabelMapping)


class GitConfig(BaseSettings):
    """Local clone settings."""

    model_config = SettingsConfigDict(env_prefix="GIT_", extra="ignore")

    work_dir: str = Field(default=".depbot/repo", description="Directory of the local clone")


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="LOGGING_", extra="ignore")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )


class AppConfig(BaseSettings):
    """Root application config from YAML + env."""

    model_config = SettingsConfigDict(extra="ignore")

    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    gerrit: GerritConfig = Field(default_factory=GerritConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def github_token_resolved(self) -> str | None:
        """Resolve GitHub token from config, env or Docker secret file."""
        t = self.github.token
        if not _is_placeholder(t):
            return t
        return _read_secret("GITHUB_TOKEN", "GITHUB_TOKEN_FILE")

    @property
    def gerrit_password_resolved(self) -> str | None:
        """Resolve Gerrit password from config, env or Docker secret file."""
        p = self.gerrit.password
        if not _is_placeholder(p):
            return p
        return _read_secret("GERRIT_PASSWORD", "GERRIT_PASSWORD_FILE")


def _substitute_env(value: Any) -> Any:
    """Replace ${VAR} and $VAR in strings with os.environ."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            key = value[2:-1].strip()
            return _current_env.get(key, value)
        if value.startswith("$") and not value.startswith("${"):
            key = value[1:].strip()
            return _current_env.get(key, value)
        return value
    if isinstance(value, dict):
        return {k: _substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v) for v in value]
    return value


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load config from YAML file and environment.

    Secrets: GITHUB_TOKEN or GITHUB_TOKEN_FILE, GERRIT_PASSWORD or
    GERRIT_PASSWORD_FILE.
    """
    global _current_env
    _current_env = dict(os.environ)

    path = config_path or Path("config.yaml")
    if not path.is_file():
        return AppConfig()

    raw = yaml.safe_load(path.read_text()) or {}
    raw = _substitute_env(raw)

    # Env overrides for values usually set per run
    platform_raw = raw.get("platform") or {}
    for key in ("name", "repository", "endpoint"):
        env_value = _current_env.get(f"PLATFORM_{key.upper()}")
        if env_value:
            platform_raw = {**platform_raw, key: env_value}

    return AppConfig(
        platform=PlatformConfig(**platform_raw),
        github=GitHubConfig(**(raw.get("github") or {})),
        gerrit=GerritConfig(**(raw.get("gerrit") or {})),
        git=GitConfig(**(raw.get("git") or {})),
        logging=LoggingConfig(**(raw.get("logging") or {})),
    )

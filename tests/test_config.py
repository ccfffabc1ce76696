"""Tests for depbot.config (YAML + env loading, secret resolution)."""

from pathlib import Path

import pytest

from depbot.config import AppConfig, load_config

ENV_KEYS = [
    "PLATFORM_NAME",
    "PLATFORM_REPOSITORY",
    "PLATFORM_ENDPOINT",
    "GITHUB_TOKEN",
    "GITHUB_TOKEN_FILE",
    "GERRIT_PASSWORD",
    "GERRIT_PASSWORD_FILE",
    "LOGGING_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path) -> None:
        config = load_config(tmp_path / "missing.yaml")
        assert isinstance(config, AppConfig)
        assert config.platform.name == "github"
        assert config.github.api_url == "https://api.github.com"
        assert config.git.work_dir == ".depbot/repo"
        assert config.logging.level == "INFO"

    def test_sections(self, tmp_path) -> None:
        path = write_config(
            tmp_path,
            """
platform:
  name: gerrit
  repository: test/repo
  fork_mode: true
gerrit:
  endpoint: https://gerrit.example.com/
  username: bot
  label_mappings:
    stability_days_label: Renovate-Stability
git:
  work_dir: /tmp/clone
logging:
  level: DEBUG
""",
        )
        config = load_config(path)
        assert config.platform.name == "gerrit"
        assert config.platform.repository == "test/repo"
        assert config.platform.fork_mode is True
        assert config.gerrit.username == "bot"
        assert config.gerrit.label_mappings.stability_days_label == "Renovate-Stability"
        assert config.gerrit.label_mappings.merge_confidence_label is None
        assert config.git.work_dir == "/tmp/clone"
        assert config.logging.level == "DEBUG"

    def test_env_substitution(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("BOT_AUTHOR", "Bot <bot@example.com>")
        path = write_config(tmp_path, "github:\n  git_author: ${BOT_AUTHOR}\n  username: $UNSET_VAR_XYZ\n")
        config = load_config(path)
        assert config.github.git_author == "Bot <bot@example.com>"
        assert config.github.username == "$UNSET_VAR_XYZ"

    def test_platform_name_normalized(self, tmp_path) -> None:
        path = write_config(tmp_path, "platform:\n  name: GitHub\n")
        assert load_config(path).platform.name == "github"

    def test_platform_env_overrides(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("PLATFORM_REPOSITORY", "other/repo")
        path = write_config(tmp_path, "platform:\n  name: github\n  repository: some/repo\n")
        assert load_config(path).platform.repository == "other/repo"


class TestSecrets:
    def test_token_from_config(self, tmp_path) -> None:
        path = write_config(tmp_path, "github:\n  token: abc\n")
        assert load_config(path).github_token_resolved == "abc"

    def test_placeholder_token_from_env(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", " from-env \n")
        path = write_config(tmp_path, "github:\n  token: ${MISSING_TOKEN_VAR}\n")
        assert load_config(path).github_token_resolved == "from-env"

    def test_token_from_secret_file(self, tmp_path, monkeypatch) -> None:
        secret = tmp_path / "token"
        secret.write_text("from-file\n")
        monkeypatch.setenv("GITHUB_TOKEN_FILE", str(secret))
        path = write_config(tmp_path, "platform:\n  name: github\n")
        assert load_config(path).github_token_resolved == "from-file"

    def test_gerrit_password(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("GERRIT_PASSWORD", "secret")
        path = write_config(tmp_path, "gerrit:\n  username: bot\n")
        assert load_config(path).gerrit_password_resolved == "secret"

    def test_no_secret(self, tmp_path) -> None:
        path = write_config(tmp_path, "platform:\n  name: github\n")
        assert load_config(path).github_token_resolved is None

"""Tests for shared platform helpers: util, markdown, models and the adapter factory."""

import hashlib
from datetime import datetime, timezone

import pytest

from depbot.platform import GerritPlatform, GitHubPlatform, get_platform
from depbot.platform.markdown import REDACTED, sanitize, smart_truncate
from depbot.platform.models import PrState, VulnerabilityAlert, matches_state
from depbot.platform.util import escape_hash, from_base64, hash_body, parse_iso, parse_json, repo_fingerprint


class TestUtil:
    def test_repo_fingerprint(self) -> None:
        expected = hashlib.sha512(b"https://api.github.com/::R_1").hexdigest()
        assert repo_fingerprint("R_1", "https://api.github.com/") == expected
        assert repo_fingerprint("R_1", "https://a/") != repo_fingerprint("R_1", "https://b/")

    def test_parse_json(self) -> None:
        assert parse_json('{"a": 1}', "renovate.json") == {"a": 1}
        assert parse_json("{a: 1, /* c */ b: [2,],}", "renovate.json5") == {"a": 1, "b": [2]}
        with pytest.raises(ValueError):
            parse_json("{a: 1}", "renovate.json")

    def test_parse_iso(self) -> None:
        assert parse_iso("2024-01-15T10:00:00Z") == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

    def test_escape_hash(self) -> None:
        assert escape_hash("renovate/#1-fix") == "renovate/%231-fix"

    def test_from_base64(self) -> None:
        assert from_base64("aGVsbG8=") == "hello"

    def test_hash_body_ignores_surrounding_whitespace(self) -> None:
        assert hash_body(" body\n") == hash_body("body")
        assert hash_body(None) == hash_body("")


class TestMarkdown:
    def test_short_text_unchanged(self) -> None:
        assert smart_truncate("abc", 10) == "abc"

    def test_plain_cut(self) -> None:
        assert smart_truncate("a" * 20, 10) == "a" * 10

    def test_release_notes_shortened(self) -> None:
        """The configuration footer survives truncation of the release notes."""
        text = "Intro\n### Release Notes\n" + "n" * 500 + "\n### Configuration\nfooter"
        result = smart_truncate(text, 200)
        assert result.startswith("Intro\n### Release Notes\n")
        assert result.endswith("### Configuration\nfooter")
        assert len(result) < len(text)

    def test_sanitize(self) -> None:
        assert sanitize("token abc and fork xyz", ["abc", None, "xyz"]) == f"token {REDACTED} and fork {REDACTED}"
        assert sanitize(None, ["abc"]) == ""


class TestModels:
    @pytest.mark.parametrize(
        "state, desired, expected",
        [
            ("open", "all", True),
            ("merged", PrState.ALL, True),
            ("open", "open", True),
            ("closed", PrState.OPEN, False),
            ("closed", PrState.NOT_OPEN, True),
            (PrState.OPEN, "!open", False),
        ],
    )
    def test_matches_state(self, state, desired, expected) -> None:
        assert matches_state(state, desired) is expected

    def test_vulnerability_alert_by_field_name(self) -> None:
        alert = VulnerabilityAlert(vulnerable_manifest_path="package.json")
        assert alert.vulnerable_manifest_path == "package.json"


class TestFactory:
    def test_known_platforms(self) -> None:
        assert isinstance(get_platform("github"), GitHubPlatform)
        assert isinstance(get_platform(" Gerrit "), GerritPlatform)

    def test_unknown_platform(self) -> None:
        with pytest.raises(ValueError, match="Unknown platform"):
            get_platform("gitlab")

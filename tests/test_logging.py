"""Tests for depbot.logging (DepbotLogging, level/format from config)."""

import logging

from depbot.config import LoggingConfig
from depbot.logging import (
    DEFAULT_FORMAT,
    DEFAULT_LEVEL,
    LEVELS,
    DepbotLogging,
    _resolve_level,
)


class TestConstants:
    """Module constants and level mapping."""

    def test_levels_has_four_standard_levels(self) -> None:
        assert LEVELS == {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
        }

    def test_default_format_contains_placeholders(self) -> None:
        assert "%(levelname)s" in DEFAULT_FORMAT
        assert "%(name)s" in DEFAULT_FORMAT
        assert "%(message)s" in DEFAULT_FORMAT

    def test_default_level_is_info(self) -> None:
        assert DEFAULT_LEVEL == "INFO"


class TestResolveLevel:
    """_resolve_level maps level names to logging constants."""

    def test_case_and_whitespace_normalized(self) -> None:
        assert _resolve_level("debug") == logging.DEBUG
        assert _resolve_level("  WARNING\t") == logging.WARNING

    def test_unknown_level_returns_info(self) -> None:
        """Unknown level name falls back to INFO."""
        assert _resolve_level("TRACE") == logging.INFO
        assert _resolve_level("") == logging.INFO


class TestDepbotLogging:
    """DepbotLogging applies LoggingConfig (level + format) to the root logger."""

    def test_setup_sets_root_level_from_config(self) -> None:
        for level_name, expected_num in LEVELS.items():
            DepbotLogging(LoggingConfig(level=level_name, format="%(message)s")).setup()
            assert logging.root.level == expected_num

    def test_setup_applies_format(self) -> None:
        custom = "%(levelname)s || %(message)s"
        DepbotLogging(LoggingConfig(level="INFO", format=custom)).setup()
        assert logging.root.handlers[0].formatter._fmt == custom

    def test_empty_format_uses_default(self) -> None:
        DepbotLogging(LoggingConfig(level="INFO", format="")).setup()
        assert logging.root.handlers[0].formatter._fmt == DEFAULT_FORMAT

    def test_urllib3_never_below_info(self) -> None:
        """urllib3 request logs can carry credentials in URLs."""
        DepbotLogging(LoggingConfig(level="DEBUG", format="%(message)s")).setup()
        assert logging.getLogger("urllib3").level == logging.INFO
        DepbotLogging(LoggingConfig(level="ERROR", format="%(message)s")).setup()
        assert logging.getLogger("urllib3").level == logging.ERROR

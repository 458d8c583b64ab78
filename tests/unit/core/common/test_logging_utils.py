"""
Tests for logging utilities.
"""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog
from zion.core.common.logging_utils import (
    ApiKeyRedactionFilter,
    EnvironmentTaggingFilter,
    EnvironmentTaggingFormatter,
    configure_logging,
    get_logger,
    redact,
)


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, filters, level = list(root.handlers), list(root.filters), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.filters[:] = filters
    root.setLevel(level)
    structlog.reset_defaults()


def _record(msg: str, *args: object) -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


class TestRedaction:
    def test_redact(self) -> None:
        assert redact("api_key_12345678") == "ap***78"
        assert redact("key") == "***"
        assert redact("") == ""
        assert redact("password123", mask="[REDACTED]") == "pa[REDACTED]23"

    def test_configured_keys_are_masked(self) -> None:
        redaction = ApiKeyRedactionFilter(["secret-weather-key", "short"])
        record = _record("calling with %s and %s", "secret-weather-key", "short")

        assert redaction.filter(record) is True
        assert record.getMessage() == "calling with *** and ***"

    def test_query_string_keys_are_masked(self) -> None:
        redaction = ApiKeyRedactionFilter()
        record = _record(
            "GET https://api.example.com/weather?q=Paris&appid=abc123&units=metric"
        )

        redaction.filter(record)

        assert record.getMessage() == (
            "GET https://api.example.com/weather?q=Paris&appid=***&units=metric"
        )

    def test_bearer_tokens_are_masked(self) -> None:
        redaction = ApiKeyRedactionFilter()
        record = _record("headers: %s", {"Authorization": "Bearer tok.en-value"})

        redaction.filter(record)

        assert "tok.en-value" not in record.getMessage()
        assert "Bearer ***" in record.getMessage()

    def test_non_string_args_untouched(self) -> None:
        redaction = ApiKeyRedactionFilter(["k3y"])
        record = _record("%d requests", 5)

        redaction.filter(record)

        assert record.getMessage() == "5 requests"


class TestEnvironmentTagging:
    def test_filter_tags_records_under_pytest(self) -> None:
        record = _record("hello")

        EnvironmentTaggingFilter().filter(record)

        assert record.env_tag == "test"  # type: ignore[attr-defined]

    def test_formatter_adds_tag_when_missing(self) -> None:
        formatter = EnvironmentTaggingFormatter(fmt="[%(env_tag)s] %(message)s")

        assert formatter.format(_record("hello")) == "[test] hello"


class TestConfigureLogging:
    def test_writes_tagged_redacted_file(
        self, tmp_path: Path, restore_root_logger: None
    ) -> None:
        log_file = tmp_path / "logs" / "zion.log"

        configure_logging(
            level="info", log_file=str(log_file), api_keys=["super-secret-key"]
        )
        logging.getLogger("zion.test").info("using key %s", "super-secret-key")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "[test]" in content
        assert "using key ***" in content
        assert "super-secret-key" not in content

    def test_unknown_level_falls_back_to_info(self, restore_root_logger: None) -> None:
        configure_logging(level="chatty")

        assert logging.getLogger().level == logging.INFO

    def test_structlog_events_reach_stdlib(
        self, caplog: pytest.LogCaptureFixture, restore_root_logger: None
    ) -> None:
        configure_logging(level=logging.DEBUG)
        # configure_logging replaces root handlers, caplog's included
        logging.getLogger().addHandler(caplog.handler)
        logger = get_logger("zion.events")

        with caplog.at_level(logging.INFO, logger="zion.events"):
            logger.info("command_executed", command="calc", duration_ms=1.5)

        assert any(
            "event='command_executed'" in r.getMessage()
            and "command='calc'" in r.getMessage()
            for r in caplog.records
        )

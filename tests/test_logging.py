"""Tests for structured logging setup."""

from __future__ import annotations

import io
import json

import pytest
import structlog

from slotkeeper.logging_config import APP_NAME, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _restore_structlog():
    saved = structlog.get_config()
    yield
    structlog.configure(**saved)


class TestSetupLogging:
    """Tests for setup_logging and get_logger."""

    def test_json_lines_carry_app_context(self) -> None:
        stream = io.StringIO()
        setup_logging(level="INFO", json_logs=True, stream=stream)
        get_logger("tests.logging").info("booking_created", booking_id="b-1")

        record = json.loads(stream.getvalue().strip())
        assert record["event"] == "booking_created"
        assert record["booking_id"] == "b-1"
        assert record["app"] == APP_NAME
        assert record["env"] == "test"
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_level_filters_events(self) -> None:
        stream = io.StringIO()
        setup_logging(level="warning", json_logs=True, stream=stream)
        logger = get_logger("tests.logging")
        logger.info("slot_checked")
        logger.warning("booking_conflict_rejected")

        lines = stream.getvalue().strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["booking_conflict_rejected"]

    def test_console_renderer_outside_production(self) -> None:
        stream = io.StringIO()
        setup_logging(level="DEBUG", stream=stream)
        get_logger("tests.logging").debug("no_available_date", scanned=91)

        output = stream.getvalue()
        assert "no_available_date" in output
        assert "scanned=91" in output
        assert not output.lstrip().startswith("{")

    def test_unknown_level_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            setup_logging(level="chatty", stream=io.StringIO())

"""Unit tests for logging infrastructure."""

import json
import logging
import sys

from smartchef.utils.logger import JSONFormatter, RichTextFormatter, get_logger, logger


def make_record(msg="Test message", level=logging.INFO, name="test_logger", exc_info=None):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJSONFormatter:
    """Test JSONFormatter produces valid JSON output."""

    def test_json_formatter_outputs_valid_json(self):
        """Test that JSONFormatter produces valid JSON."""
        parsed = json.loads(JSONFormatter().format(make_record()))

        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "test_logger"
        assert parsed["message"] == "Test message"
        assert "timestamp" in parsed

    def test_json_formatter_includes_exception_traceback(self):
        """Test that JSONFormatter includes exception traceback when present."""
        try:
            raise ValueError("Test error")
        except ValueError:
            record = make_record("Error occurred", logging.ERROR, exc_info=sys.exc_info())

        parsed = json.loads(JSONFormatter().format(record))

        assert "exception" in parsed
        assert "ValueError" in parsed["exception"]

    def test_json_formatter_includes_context_fields(self):
        """recipe_id / user_id / capability / generation extras are copied into the output."""
        record = make_record()
        record.recipe_id = "r-1"
        record.user_id = "u-1"
        record.capability = "Recipe generation"
        record.generation = 3

        parsed = json.loads(JSONFormatter().format(record))

        assert parsed["recipe_id"] == "r-1"
        assert parsed["user_id"] == "u-1"
        assert parsed["capability"] == "Recipe generation"
        assert parsed["generation"] == 3

    def test_json_formatter_omits_absent_context(self):
        """Context keys appear only when the call site passed them."""
        parsed = json.loads(JSONFormatter().format(make_record()))
        assert "recipe_id" not in parsed
        assert "user_id" not in parsed


class TestRichTextFormatter:
    """Test RichTextFormatter produces colored text output."""

    def test_includes_level_logger_and_message(self):
        """Level name, logger name and message are all rendered."""
        output = RichTextFormatter().format(make_record("Custom message", name="my_logger"))

        assert "INFO" in output
        assert "my_logger" in output
        assert "Custom message" in output

    def test_includes_icon_per_level(self):
        """Each level gets its icon."""
        formatter = RichTextFormatter()
        for level, icon in (
            (logging.DEBUG, "🔍"),
            (logging.INFO, "ℹ️"),
            (logging.WARNING, "⚠️"),
            (logging.ERROR, "❌"),
        ):
            assert icon in formatter.format(make_record(level=level))

    def test_appends_context_suffix(self):
        """Context extras are shown as a [key=value] suffix."""
        record = make_record()
        record.recipe_id = "abc"

        output = RichTextFormatter().format(record)

        assert "[recipe_id=abc]" in output

    def test_includes_exception_traceback(self):
        """Tracebacks follow the message line."""
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record("failed", logging.ERROR, exc_info=sys.exc_info())

        output = RichTextFormatter().format(record)

        assert "RuntimeError: boom" in output


class TestGetLogger:
    """Test logger factory configuration."""

    def test_json_log_type_uses_json_formatter(self, monkeypatch):
        """LOG_TYPE=json selects the JSON formatter."""
        monkeypatch.setenv("LOG_TYPE", "json")
        test_logger = get_logger("smartchef.test.json")
        try:
            assert isinstance(test_logger.handlers[0].formatter, JSONFormatter)
        finally:
            test_logger.handlers.clear()

    def test_log_level_from_env(self, monkeypatch):
        """LOG_LEVEL sets the logger level."""
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        test_logger = get_logger("smartchef.test.level")
        try:
            assert test_logger.level == logging.ERROR
        finally:
            test_logger.handlers.clear()

    def test_existing_logger_is_not_reconfigured(self):
        """A configured logger keeps its single handler."""
        again = get_logger("smartchef")
        assert again is logger
        assert len(again.handlers) == 1

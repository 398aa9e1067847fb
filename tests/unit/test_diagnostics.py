"""Tests for diagnostics sink construction."""
import logging

import pytest

from tablereader.errors.exceptions import BlankRowError, ConfigurationError
from tablereader.services.diagnostics import build_log_sink, log_and_raise


class RecordingLogger:
    """Minimal leveled logger recording (method, message)."""

    def __init__(self):
        self.calls = []

    def debug(self, msg):
        self.calls.append(("debug", msg))

    def info(self, msg):
        self.calls.append(("info", msg))

    def warning(self, msg):
        self.calls.append(("warning", msg))

    def error(self, msg):
        self.calls.append(("error", msg))


class TestBuildLogSink:
    """Tests for the accepted `log` destinations."""

    def test_list_collects_warnings_and_errors_only(self):
        collected = []
        sink = build_log_sink(collected)
        sink("debug", "quiet")
        sink("info", "also quiet")
        sink("warn", "heads up")
        sink("error", "broken")
        assert collected == [("warn", "heads up"), ("error", "broken")]

    def test_logger_object_receives_every_level(self):
        target = RecordingLogger()
        sink = build_log_sink(target)
        for level in ("debug", "info", "warn", "error"):
            sink(level, level + " message")
        assert target.calls == [
            ("debug", "debug message"),
            ("info", "info message"),
            ("warning", "warn message"),
            ("error", "error message"),
        ]

    def test_stdlib_logger(self, caplog):
        sink = build_log_sink(logging.getLogger("tablereader.test"))
        with caplog.at_level(logging.WARNING, logger="tablereader.test"):
            sink("warn", "Ignoring unknown columns: x")
        assert "Ignoring unknown columns: x" in caplog.text

    def test_callable_used_as_is(self, all_messages):
        assert build_log_sink(all_messages) is all_messages

    def test_default_sink_accepts_all_levels(self):
        sink = build_log_sink(None)
        for level in ("debug", "info", "warn", "error"):
            sink(level, "message")

    @pytest.mark.parametrize("dest", [42, "stderr", {"level": "warn"}])
    def test_unknown_destination(self, dest):
        with pytest.raises(ConfigurationError):
            build_log_sink(dest)


class TestLogAndRaise:
    """Every fatal error is logged with the same message it carries."""

    def test_logs_then_raises(self, messages):
        sink = build_log_sink(messages)
        with pytest.raises(BlankRowError) as exc_info:
            log_and_raise(sink, BlankRowError("Encountered blank rows at row 3..row 4"))
        assert messages == [("error", "Encountered blank rows at row 3..row 4")]
        assert exc_info.value.message == messages[0][1]

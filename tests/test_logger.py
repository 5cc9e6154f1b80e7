"""
Logger (logger.py)

Tests sanitization, formatters, handler setup and the injectable facade.
"""

import json
import logging

import pytest

from harrier.config import ServerConfig
from harrier.logger import (
    TRACE,
    DevFormatter,
    Logger,
    StructuredFormatter,
    clean,
    setup_logging,
)


def make_record(message="hello", level=logging.INFO, context=None, exc_info=None):
    record = logging.LogRecord(
        name="harrier",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=exc_info,
    )
    if context is not None:
        record.context = context
    return record


# ============================================================================
# clean
# ============================================================================

class TestClean:

    def test_escapes_line_breaks(self):
        assert clean("a\r\nb") == "a\\r\\nb"

    def test_strips_ansi(self):
        assert clean("\x1b[1;31mred\x1b[0m") == "red"

    def test_escapes_other_control_characters(self):
        assert clean("a\x00b\x07c\x7f") == "a\\x00b\\x07c\\x7f"

    def test_keeps_tabs_and_unicode(self):
        assert clean("a\tb é") == "a\tb é"

    def test_non_string(self):
        assert clean(404) == "404"


# ============================================================================
# Formatters
# ============================================================================

class TestFormatters:

    def test_dev_format_includes_context(self):
        line = DevFormatter().format(make_record(context={"id": "abc", "status": 404}))

        assert "harrier: hello" in line
        assert "id='abc'" in line
        assert "status=404" in line

    def test_dev_format_sanitizes_context(self):
        line = DevFormatter().format(make_record(context={"path": "/x\nINFO forged"}))

        assert "\nINFO forged" not in line

    def test_dev_format_exception(self):
        try:
            raise ValueError("bad")
        except ValueError as error:
            record = make_record(level=logging.ERROR, exc_info=(ValueError, error, error.__traceback__))

        line = DevFormatter().format(record)

        assert "ValueError: bad" in line

    def test_structured_format(self):
        line = StructuredFormatter().format(make_record(
            message="Request.render",
            context={"id": "abc", "body": b"12345"},
        ))

        entry = json.loads(line)
        assert entry["level"] == "info"
        assert entry["logger"] == "harrier"
        assert entry["message"] == "Request.render"
        assert entry["context"] == {"id": "'abc'", "body": "<5 bytes>"}
        assert "timestamp" in entry

    def test_structured_format_is_single_line(self):
        try:
            raise ValueError("multi\nline")
        except ValueError as error:
            record = make_record(level=logging.ERROR, exc_info=(ValueError, error, error.__traceback__))

        line = StructuredFormatter().format(record)

        assert "\n" not in line
        assert "multi\\\\nline" in line


# ============================================================================
# setup_logging
# ============================================================================

class TestSetupLogging:

    def test_replaces_previous_handler(self):
        logger = setup_logging("debug", "dev")
        setup_logging("trace", "structured")

        handlers = [h for h in logger.handlers if getattr(h, "_harrier_handler", False)]
        try:
            assert len(handlers) == 1
            assert isinstance(handlers[0].formatter, StructuredFormatter)
            assert logger.level == TRACE
        finally:
            for handler in handlers:
                logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging("loud")


# ============================================================================
# Logger
# ============================================================================

class TestLogger:

    def test_level_from_config(self):
        logger = Logger(ServerConfig(log_level="warn"), name="harrier.test.level")

        assert logger.level == logging.WARNING
        assert logger.is_enabled_for("error")
        assert not logger.is_enabled_for("info")

    def test_context_attached_to_record(self, caplog):
        logger = Logger(ServerConfig(log_level="trace"), name="harrier.test.context")

        with caplog.at_level(TRACE, logger="harrier.test.context"):
            logger.trace("Request.args", {"id": "abc"})
            logger.warn("careful")

        assert [r.levelname for r in caplog.records] == ["TRACE", "WARNING"]
        assert caplog.records[0].context == {"id": "abc"}
        assert caplog.records[1].context == {}

    def test_error_in_context_becomes_exc_info(self, caplog):
        logger = Logger(ServerConfig(), name="harrier.test.error")
        error = RuntimeError("failed")

        with caplog.at_level(logging.ERROR, logger="harrier.test.error"):
            logger.error("failed", {"error": error})

        assert caplog.records[0].exc_info[1] is error

    def test_disabled_levels_are_skipped(self, caplog):
        logger = Logger(ServerConfig(log_level="error"), name="harrier.test.skip")

        logger.info("ignored")

        assert not [r for r in caplog.records if r.name == "harrier.test.skip"]

    def test_resolved_by_injector(self, root, config):
        logger = root.get(Logger)

        assert logger.config is config
        assert logger.level == TRACE

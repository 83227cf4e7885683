"""Unit tests for the logging module."""

import json
import logging
import sys

from unit_migrator.utils.logging import (
    EnhancedFormatter,
    JsonFormatter,
    get_logger,
    log_with_context,
    setup_logger,
    setup_main_log_file,
)


def _make_record(msg="test message", level=logging.INFO, name="unit_migrator"):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


# --- JsonFormatter tests ---


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_format_contains_required_keys(self):
        result = json.loads(JsonFormatter().format(_make_record()))
        assert result["level"] == "INFO"
        assert result["message"] == "test message"
        assert result["module"] == "test"
        assert "time" in result

    def test_excludes_standard_record_attributes(self):
        result = json.loads(JsonFormatter().format(_make_record("hello")))
        for key in ("args", "exc_info", "lineno", "pathname", "funcName"):
            assert key not in result

    def test_includes_extra_attributes(self):
        record = _make_record("hello")
        record.unit_id = "Button"
        record.session_id = "session-1-abc"
        result = json.loads(JsonFormatter().format(record))
        assert result["unit_id"] == "Button"
        assert result["session_id"] == "session-1-abc"

    def test_exception_is_formatted(self):
        try:
            raise ValueError("kaput")
        except ValueError:
            record = logging.LogRecord(
                name="unit_migrator",
                level=logging.ERROR,
                pathname="test.py",
                lineno=1,
                msg="failed",
                args=(),
                exc_info=sys.exc_info(),
            )
        result = json.loads(JsonFormatter().format(record))
        assert "ValueError: kaput" in result["exception"]


# --- EnhancedFormatter tests ---


class TestEnhancedFormatter:
    """Tests for EnhancedFormatter."""

    def test_default_format(self):
        result = EnhancedFormatter().format(_make_record())
        assert "INFO" in result
        assert "test message" in result

    def test_verbose_format_includes_module_and_line(self):
        result = EnhancedFormatter(verbose=True).format(_make_record())
        assert "[test:1]" in result

    def test_verbose_appends_unit_context(self):
        record = _make_record()
        record.session_id = "session-1-abc"
        record.unit_id = "Form"
        result = EnhancedFormatter(verbose=True).format(record)
        assert result.endswith("[session_id=session-1-abc, unit_id=Form]")

    def test_non_verbose_omits_unit_context(self):
        record = _make_record()
        record.unit_id = "Form"
        assert "unit_id=Form" not in EnhancedFormatter().format(record)


# --- setup_logger tests ---


class TestSetupLogger:
    """Tests for setup_logger() and setup_main_log_file()."""

    def test_console_level_follows_verbose(self):
        logger = setup_logger(verbose=False)
        assert logger.level == logging.DEBUG
        assert [h.level for h in logger.handlers] == [logging.INFO]

        logger = setup_logger(verbose=True)
        assert [h.level for h in logger.handlers] == [logging.DEBUG]

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logger()
        logger = setup_logger()
        assert len(logger.handlers) == 1

    def test_output_dir_adds_log_file(self, tmp_path):
        logger = setup_logger(output_dir=str(tmp_path))
        assert len(logger.handlers) == 2
        log_with_context(logging.DEBUG, "debug goes to file", unit_id="Button")
        for handler in logger.handlers:
            handler.flush()

        content = (tmp_path / "migration.log").read_text()
        assert "Main log file created at" in content
        assert "debug goes to file" in content

    def test_main_log_file_creates_directory(self, tmp_path):
        target = tmp_path / "nested" / "out"
        handler = setup_main_log_file(str(target))
        assert isinstance(handler, logging.FileHandler)
        assert handler.level == logging.DEBUG
        assert (target / "migration.log").exists()

    def test_json_log_file(self, tmp_path):
        logger = setup_logger(output_dir=str(tmp_path), json_format=True)
        log_with_context(logging.INFO, "structured", unit_id="Form", count=2)
        for handler in logger.handlers:
            handler.flush()

        lines = (tmp_path / "migration.log").read_text().splitlines()
        entry = json.loads(lines[-1])
        assert entry["message"] == "structured"
        assert entry["unit_id"] == "Form"
        assert entry["count"] == 2


# --- log_with_context tests ---


class TestLogWithContext:
    """Tests for log_with_context()."""

    def test_none_values_are_dropped(self, caplog):
        caplog.set_level(logging.INFO, logger="unit_migrator")
        log_with_context(logging.INFO, "hello", unit_id="A", session_id=None)

        record = caplog.records[-1]
        assert record.getMessage() == "hello"
        assert record.unit_id == "A"
        assert not hasattr(record, "session_id")

    def test_exc_info_is_passed_through(self, caplog):
        caplog.set_level(logging.ERROR, logger="unit_migrator")
        try:
            raise RuntimeError("bad")
        except RuntimeError:
            log_with_context(logging.ERROR, "failed", exc_info=True)
        assert caplog.records[-1].exc_info is not None

    def test_get_logger_adds_default_handler(self):
        logger = get_logger()
        assert logger.name == "unit_migrator"
        assert len(logger.handlers) == 1

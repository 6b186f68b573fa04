"""Tests for logging configuration."""

import json
import logging
import sys

import pytest

from workflowgen.errors import ErrorCode, GenerationStage
from workflowgen.config import Settings
from workflowgen.logging_config import (
    ConsoleFormatter,
    JSONFormatter,
    configure_from_settings,
    setup_logging,
)


def make_record(msg="Test message", level=logging.INFO):
    return logging.LogRecord(
        name="workflowgen.test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.fixture
def restore_package_logger():
    """Undo setup_logging changes so caplog keeps working in other tests."""
    package_logger = logging.getLogger("workflowgen")
    handlers = package_logger.handlers[:]
    level = package_logger.level
    propagate = package_logger.propagate
    yield package_logger
    package_logger.handlers = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_basic_format(self):
        """Test basic JSON log format."""
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "workflowgen.test"
        assert data["message"] == "Test message"
        assert "timestamp" in data

    def test_extra_fields(self):
        """Test engine extras are included and enums serialized by value."""
        record = make_record("Retrying")
        record.stage = GenerationStage.TEMPLATE_LOADING
        record.error_code = ErrorCode.TEMPLATE_LOAD_ERROR
        record.attempt = 2
        record.template_name = "react-nodejs"

        data = json.loads(JSONFormatter().format(record))

        assert data["stage"] == "template-loading"
        assert data["error_code"] == "TEMPLATE_LOAD_ERROR"
        assert data["attempt"] == 2
        assert data["template_name"] == "react-nodejs"

    def test_exception_included(self):
        """Test exception info is formatted."""
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                name="workflowgen.test",
                level=logging.ERROR,
                pathname="test.py",
                lineno=1,
                msg="Failed",
                args=(),
                exc_info=sys.exc_info(),
            )

        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in data["exception"]


class TestConsoleFormatter:
    """Tests for console log formatter."""

    def test_basic_format(self):
        """Test console format includes level, logger and message."""
        output = ConsoleFormatter().format(make_record())

        assert "INFO" in output
        assert "workflowgen.test" in output
        assert "Test message" in output

    def test_extras_appended(self):
        """Test stage and template extras are shown."""
        record = make_record()
        record.stage = GenerationStage.OPTIMIZATION
        record.template_name = "ci-basic"

        output = ConsoleFormatter().format(record)

        assert "stage=optimization" in output
        assert "template=ci-basic" in output


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_by_default(self, restore_package_logger):
        """Test the console formatter is used by default."""
        setup_logging()

        handlers = restore_package_logger.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, ConsoleFormatter)
        assert restore_package_logger.level == logging.INFO

    def test_json_logs(self, restore_package_logger):
        """Test JSON output when requested."""
        setup_logging(json_logs=True)

        assert isinstance(restore_package_logger.handlers[0].formatter, JSONFormatter)

    def test_debug_overrides_json(self, restore_package_logger):
        """Test debug mode keeps console output at DEBUG level."""
        setup_logging(debug=True, json_logs=True)

        assert restore_package_logger.level == logging.DEBUG
        assert isinstance(restore_package_logger.handlers[0].formatter, ConsoleFormatter)

    def test_repeat_setup_no_duplicates(self, restore_package_logger):
        """Test calling setup twice keeps a single handler."""
        setup_logging()
        setup_logging()

        assert len(restore_package_logger.handlers) == 1

    def test_configure_from_settings(self, restore_package_logger):
        """Test Settings.debug and Settings.json_logs reach setup_logging."""
        configure_from_settings(Settings(json_logs=True))

        assert restore_package_logger.level == logging.INFO
        assert isinstance(restore_package_logger.handlers[0].formatter, JSONFormatter)

        configure_from_settings(Settings(debug=True))

        assert restore_package_logger.level == logging.DEBUG
        assert len(restore_package_logger.handlers) == 1

"""
Unit Tests for the Backend Logger

Tests the StructuredLogger methods the backend calls and the colored
formatter's area icons.
"""

import logging
import sys
import os

# Add backend to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "backend"))

from lib.logger import ColoredFormatter, StructuredLogger, get_logger


class TestStructuredLogger:
    """Test suite for StructuredLogger."""

    def test_get_logger_wraps_named_logger(self):
        logger = get_logger("backend.main")
        assert isinstance(logger, StructuredLogger)
        assert logger.logger is logging.getLogger("backend.main")

    def test_section_and_success_attach_data(self, caplog):
        logger = get_logger("tests.logger")
        with caplog.at_level(logging.INFO, logger="tests.logger"):
            logger.section("Shutdown")
            logger.success("Session completed", data={"session_id": "s-1", "score": 84})

        messages = [r.getMessage() for r in caplog.records]
        assert "📋 SHUTDOWN" in messages[0]
        assert messages[1].startswith("✅ Session completed")
        assert "session_id: s-1" in messages[1]

    def test_error_includes_exception(self, caplog):
        logger = get_logger("tests.logger")
        with caplog.at_level(logging.ERROR, logger="tests.logger"):
            logger.error("Store write failed", error=OSError("disk full"))

        record = caplog.records[0]
        assert "OSError: disk full" in record.getMessage()
        assert record.exc_info is not None

    def test_response_reports_milliseconds(self, caplog):
        logger = get_logger("tests.logger")
        with caplog.at_level(logging.INFO, logger="tests.logger"):
            logger.response(201, "/api/sessions", duration=0.0125)

        assert "duration_ms: 12.50" in caplog.records[0].getMessage()

    def test_no_section_bookkeeping_left(self):
        logger = get_logger("tests.logger")
        assert not hasattr(logger, "_section_stack")
        assert not hasattr(logger, "end_section")


class TestColoredFormatter:

    def test_area_icon_from_logger_name(self):
        formatter = ColoredFormatter(use_colors=False)
        record = logging.LogRecord(
            "cognitive_trainer.session_manager", logging.INFO, __file__, 1, "Started", None, None
        )
        formatted = formatter.format(record)
        assert "⏱️" in formatted
        assert formatted.endswith("| Started")

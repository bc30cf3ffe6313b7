"""
Tests for structured logging utilities
"""

import json
import logging
import logging.handlers
import sys
import pytest

from config.app_config import AppConfig
from utils.logging_config import (
    ErrorTracker,
    StructuredFormatter,
    log_execution_time,
    log_health_snapshot,
    log_resource_event,
    setup_logging
)


def make_record(message="hello", **extra):
    logger = logging.getLogger("test.structured")
    record = logger.makeRecord(
        "test.structured", logging.WARNING, __file__, 10, message, (), None, extra=extra
    )
    return record


class TestStructuredFormatter:
    """Test JSON log formatting"""

    def test_basic_fields(self):
        data = json.loads(StructuredFormatter().format(make_record("Model gemini: blacklisted")))

        assert data["level"] == "WARNING"
        assert data["logger"] == "test.structured"
        assert data["message"] == "Model gemini: blacklisted"
        assert "extra" not in data

    def test_extra_fields(self):
        data = json.loads(StructuredFormatter().format(make_record(resource="gemini", failures=3)))

        assert data["extra"] == {"resource": "gemini", "failures": 3}

    def test_exception_info(self):
        try:
            raise ValueError("broken")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "broken"


class TestLogHelpers:
    """Test logging helper functions"""

    def test_log_resource_event(self, caplog):
        logger = logging.getLogger("test.resource")

        with caplog.at_level(logging.INFO, logger="test.resource"):
            log_resource_event(logger, "blacklisted", "gemini", level=logging.WARNING, failures=3)

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "Model gemini: blacklisted"
        assert record.resource_event_type == "blacklisted"
        assert record.resource == "gemini"
        assert record.failures == 3

    def test_log_health_snapshot(self, caplog):
        logger = logging.getLogger("test.health")
        snapshot = {
            "openai-large": {"available": True, "failure_count": 0,
                             "last_failure_timestamp": None, "last_error_code": None},
            "gemini": {"available": False, "failure_count": 3,
                       "last_failure_timestamp": "2024-05-01T12:00:00", "last_error_code": 500}
        }

        with caplog.at_level(logging.INFO, logger="test.health"):
            log_health_snapshot(logger, snapshot)

        record = caplog.records[-1]
        assert record.getMessage() == "Model health: 1/2 available, blacklisted: gemini"
        assert record.models == snapshot

    def test_log_execution_time_success(self, caplog):
        logger = logging.getLogger("test.timing")

        with caplog.at_level(logging.DEBUG, logger="test.timing"):
            with log_execution_time(logger, "text generation", requested_model="gemini"):
                pass

        completed = caplog.records[-1]
        assert completed.getMessage().startswith("Completed text generation")
        assert completed.status == "success"
        assert completed.requested_model == "gemini"

    def test_log_execution_time_failure(self, caplog):
        logger = logging.getLogger("test.timing")

        with caplog.at_level(logging.DEBUG, logger="test.timing"):
            with pytest.raises(RuntimeError):
                with log_execution_time(logger, "text generation"):
                    raise RuntimeError("endpoint down")

        failed = caplog.records[-1]
        assert failed.levelno == logging.ERROR
        assert failed.status == "error"
        assert failed.error_type == "RuntimeError"


class TestErrorTracker:
    """Test error tracking"""

    def test_counts_errors_per_context(self):
        tracker = ErrorTracker(logging.getLogger("test.tracker"))

        tracker.track_error(RuntimeError("a"), context="gemini")
        tracker.track_error(RuntimeError("b"), context="gemini")
        tracker.track_error(ValueError("c"), context="openai-large", attempts=4)

        summary = tracker.get_error_summary()

        assert summary["total_errors"] == 3
        assert summary["unique_errors"] == 2
        assert summary["error_breakdown"]["RuntimeError:gemini"] == 2


class TestSetupLogging:
    """Test logging setup"""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_production_uses_json_console(self, tmp_path):
        config = AppConfig()
        config.environment = "production"
        config.debug = False
        config.logging.level = "INFO"
        config.logging.log_file = str(tmp_path / "logs" / "app.log")

        root = setup_logging(config)

        assert root.level == logging.INFO
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
        assert (tmp_path / "logs").exists()

    def test_file_logging_disabled(self):
        config = AppConfig()
        config.environment = "production"
        config.debug = False
        config.logging.enable_file_logging = False

        root = setup_logging(config)

        assert len(root.handlers) == 1

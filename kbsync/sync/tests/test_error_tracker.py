"""
Tests for error tracking and structured logging.
"""

import io
import json
import logging
import sys

from ..error_tracker import (
    ErrorTracker, ErrorSeverity, RemoteUnavailableError, ConfigurationError,
)
from ..logging_manager import JsonFormatter


class TestErrorTracker:
    def test_report_exception_keeps_sync_context(self):
        tracker = ErrorTracker()
        tracker.report_exception(
            ConfigurationError("Missing TEC_API_KEY", source_id="acme", recovery_suggestion="Set it"),
            source_id="job-1"
        )

        error = tracker.get_errors()[0]
        assert error.source_id == "acme"
        assert error.recovery_suggestion == "Set it"
        assert error.details == {"type": "ConfigurationError"}

    def test_report_plain_exception(self):
        tracker = ErrorTracker()
        tracker.report_exception(ValueError("bad"), source_id="job-1", severity=ErrorSeverity.WARNING)

        error = tracker.get_errors()[0]
        assert error.message == "bad"
        assert error.source_id == "job-1"
        assert error.severity == ErrorSeverity.WARNING

    def test_generate_report_counts(self):
        tracker = ErrorTracker()
        tracker.report("w", severity=ErrorSeverity.WARNING)
        tracker.report("e", severity=ErrorSeverity.ERROR)
        tracker.report_exception(RemoteUnavailableError("down", status_code=503), severity=ErrorSeverity.CRITICAL)

        report = tracker.generate_report()

        assert report["total_errors"] == 3
        assert report["warning_count"] == 1
        assert report["error_count"] == 1
        assert report["critical_count"] == 1
        assert tracker.has_critical_errors()
        assert len(tracker.get_errors(ErrorSeverity.ERROR)) == 2

    def test_remote_error_status_code(self):
        error = RemoteUnavailableError("down", source_id="acme/a.csv", status_code=503)
        assert error.status_code == 503
        assert str(error) == "down"


class TestJsonFormatter:
    def test_record_with_details(self):
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(JsonFormatter())
        logger = logging.getLogger("kbsync.tests.json_formatter")
        logger.propagate = False
        logger.handlers = [handler]
        logger.setLevel(logging.INFO)

        logger.info("[acme][a.csv] File uploaded", extra={'details': {'client_id': 'acme'}})

        record = json.loads(stream.getvalue())
        assert record["level"] == "INFO"
        assert record["logger"] == "kbsync.tests.json_formatter"
        assert record["client_id"] == "acme"
        assert record["message"] == "[acme][a.csv] File uploaded"
        assert record["details"] == {"client_id": "acme"}
        assert "timestamp" in record

    def test_exception_and_plain_details(self):
        formatter = JsonFormatter()
        try:
            raise ValueError("bad row")
        except ValueError:
            record = logging.LogRecord("kbsync.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
        record.details = "raw context"

        entry = json.loads(formatter.format(record))

        assert entry["details"] == "raw context"
        assert "client_id" not in entry
        assert "ValueError: bad row" in entry["exception"]

"""
Tests for structured logging

Tests cover:
- JSON line contents and context variables
- Domain helpers on StructuredLogger
"""

import json
import logging
from unittest.mock import patch

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


def make_record(**attrs):
    record = logging.LogRecord("roomcal.test", logging.INFO, __file__, 10, "Saved %s", ("2026-02-10",), None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter"""

    def test_basic_fields(self):
        from roomcal.utils.logging_config import JSONFormatter

        data = json.loads(JSONFormatter().format(make_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "roomcal.test"
        assert data["message"] == "Saved 2026-02-10"
        assert "session_id" not in data

    def test_context_fields_and_extra_data(self):
        from roomcal.utils.logging_config import JSONFormatter

        record = make_record(entity_type="reservation", entity_id="res-1", duration_ms=12.5,
                             extra_data={"dates": ["2026-02-10"]})
        data = json.loads(JSONFormatter().format(record))
        assert data["entity_type"] == "reservation"
        assert data["entity_id"] == "res-1"
        assert data["duration_ms"] == 12.5
        assert data["data"] == {"dates": ["2026-02-10"]}

    def test_session_context(self):
        from roomcal.utils.logging_config import (
            JSONFormatter, clear_session_context, set_session_context,
        )

        set_session_context("sess-42")
        try:
            data = json.loads(JSONFormatter().format(make_record()))
            assert data["session_id"] == "sess-42"
        finally:
            clear_session_context()

    def test_non_ascii_kept(self):
        from roomcal.utils.logging_config import JSONFormatter

        record = logging.LogRecord("roomcal.test", logging.INFO, __file__, 1, "Kızılbük booked", (), None)
        assert "Kızılbük" in JSONFormatter().format(record)


class TestStructuredLogger:
    """Tests for StructuredLogger helpers"""

    def test_reservation_committed(self):
        from roomcal.utils.logging_config import get_logger

        logger = get_logger("roomcal.test")
        logger.logger.setLevel(logging.DEBUG)
        with patch.object(logger.logger, "log") as log:
            logger.reservation_committed("res-1", "Ayşe", ["2026-02-10", "2026-02-11"], duration_ms=3.0)

        level, message = log.call_args[0][:2]
        extra = log.call_args[1]["extra"]
        assert level == logging.INFO
        assert "2 dates" in message
        assert extra["entity_id"] == "res-1"
        assert extra["operation"] == "commit"
        assert extra["extra_data"]["dates"] == ["2026-02-10", "2026-02-11"]

    def test_subscription_failed_logs_error(self):
        from roomcal.utils.logging_config import get_logger

        logger = get_logger("roomcal.test")
        logger.logger.setLevel(logging.DEBUG)
        with patch.object(logger.logger, "log") as log:
            logger.subscription_failed("bookings", RuntimeError("connection lost"))

        assert log.call_args[0][0] == logging.ERROR
        assert log.call_args[1]["extra"]["entity_id"] == "bookings"

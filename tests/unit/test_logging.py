"""
Unit tests for structured logging helpers.
"""
import json
import logging

import pytest

from vendorhive.lib.logging import (
    JSONFormatter,
    TextFormatter,
    correlation_scope,
    get_correlation_id,
    log_with_context,
)


class _Capture(logging.Handler):
    def __init__(self, formatter):
        super().__init__()
        self.setFormatter(formatter)
        self.lines = []

    def emit(self, record):
        self.lines.append(self.format(record))


@pytest.fixture
def capture_json():
    logger = logging.getLogger("vendorhive.tests.logging")
    handler = _Capture(JSONFormatter())
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    yield logger, handler
    logger.removeHandler(handler)
    logger.propagate = True


@pytest.mark.unit
def test_correlation_scope_restores_previous_value():
    assert get_correlation_id() is None

    with correlation_scope("outer"):
        assert get_correlation_id() == "outer"
        with correlation_scope("inner"):
            assert get_correlation_id() == "inner"
        assert get_correlation_id() == "outer"

    assert get_correlation_id() is None


@pytest.mark.unit
def test_json_formatter_includes_context(capture_json):
    """Test JSON lines carry service, correlation id and extra fields."""
    logger, handler = capture_json

    with correlation_scope("req-42"):
        logger.info("Booking created", extra={"booking_id": 7})

    entry = json.loads(handler.lines[0])
    assert entry["message"] == "Booking created"
    assert entry["level"] == "INFO"
    assert entry["service"] == "vendorhive"
    assert entry["correlation_id"] == "req-42"
    assert entry["booking_id"] == 7
    assert entry["timestamp"].endswith("Z")


@pytest.mark.unit
def test_log_with_context_flattens_fields(capture_json):
    logger, handler = capture_json

    log_with_context(logger, "warning", "Review rejected", user_id=3, vendor_id=9)

    entry = json.loads(handler.lines[0])
    assert entry["level"] == "WARNING"
    assert entry["user_id"] == 3
    assert entry["vendor_id"] == 9
    assert "extra_fields" not in entry
    assert "correlation_id" not in entry


@pytest.mark.unit
def test_json_formatter_includes_exception(capture_json):
    logger, handler = capture_json

    try:
        raise ValueError("bad input")
    except ValueError:
        logger.exception("Failed")

    entry = json.loads(handler.lines[0])
    assert "ValueError: bad input" in entry["exception"]


@pytest.mark.unit
def test_text_formatter_marks_missing_correlation_id():
    record = logging.LogRecord("vendorhive", logging.INFO, __file__, 1, "hello", None, None)

    line = TextFormatter().format(record)

    assert "[-]" in line
    assert line.endswith("hello")

"""Tests for structured logging."""

import json
import logging
import sys

from hashvault.core.logging import CloudLoggingFormatter, object_key_context


def make_record(msg: str, level: int = logging.INFO, exc_info=None, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="hashvault.test",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_single_line_json():
    """Test the base JSON fields."""
    entry = json.loads(CloudLoggingFormatter().format(make_record("Upload completed")))

    assert entry["message"] == "Upload completed"
    assert entry["severity"] == "INFO"
    assert entry["logger"] == "hashvault.test"
    assert entry["timestamp"].endswith("Z")


def test_includes_extra_fields_and_object_key():
    """Test extra fields and the object key context."""
    token = object_key_context.set("abc.txt")
    try:
        output = CloudLoggingFormatter().format(make_record("x", status_code=503, detail="busy"))
    finally:
        object_key_context.reset(token)

    entry = json.loads(output)
    assert "\n" not in output
    assert entry["object_key"] == "abc.txt"
    assert entry["status_code"] == 503
    assert entry["detail"] == "busy"


def test_includes_exception():
    """Test exception formatting."""
    try:
        raise ValueError("bad key")
    except ValueError:
        record = make_record("failed", level=logging.ERROR, exc_info=sys.exc_info())

    entry = json.loads(CloudLoggingFormatter().format(record))

    assert entry["severity"] == "ERROR"
    assert entry["exception_type"] == "ValueError"
    assert entry["exception_message"] == "bad key"
    assert "Traceback" in entry["exception"]

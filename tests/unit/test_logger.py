"""
Name: JSON Logger Tests

Responsibilities:
  - Validate JSON line shape with request context
  - Validate credential redaction and snapshot clipping
"""

import json
import logging
import sys

import pytest

from audit_relay.context import request_id_var
from audit_relay.crosscutting.logger import JSONFormatter, _LogSanitizer

pytestmark = pytest.mark.unit


def _record(msg="hello", exc_info=None, **extra):
    record = logging.LogRecord(
        "audit-relay", logging.INFO, __file__, 10, msg, (), exc_info
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_line_carries_base_fields_and_request_context():
    token = request_id_var.set("req-42")
    try:
        line = JSONFormatter().format(_record(stream="audit-events"))
    finally:
        request_id_var.reset(token)

    payload = json.loads(line)
    assert payload["message"] == "hello"
    assert payload["level"] == "INFO"
    assert payload["request_id"] == "req-42"
    assert payload["stream"] == "audit-events"


def test_secrets_are_redacted_even_inside_snapshots():
    formatter = JSONFormatter()

    payload = json.loads(
        formatter.format(
            _record(
                database_url="postgresql://u:p@db/audit",
                new_value={"username": "bob", "password_hash": "x"},
            )
        )
    )

    assert payload["database_url"] == "***REDACTADO***"
    assert json.loads(payload["new_value"]) == {
        "password_hash": "***REDACTADO***",
        "username": "bob",
    }


def test_snapshots_are_clipped_to_their_own_limit():
    sanitizer = _LogSanitizer(text_limit=100, snapshot_limit=10)

    assert sanitizer.field("old_value", "a" * 30) == "a" * 10 + "…(+20)"
    assert sanitizer.field("note", "a" * 30) == "a" * 30


def test_exception_block_is_attached():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record(exc_info=sys.exc_info())

    payload = json.loads(JSONFormatter().format(record))

    assert payload["exception"]["type"] == "ValueError"
    assert payload["exception"]["message"] == "boom"

# tests/test_logging.py
import logging

import pytest

from fs_app.context import create_request_context, request_scope, current_request_context
from fs_app.logging import REDACTED, RequestIdFilter, parse_level, redact_args, sanitize_for_logging


def test_sensitive_keys_redacted_without_mutating_input():
    payload = {
        "path": "/a",
        "password": "hunter2",
        "nested": {"apiKey": "k-123", "note": "mail john.doe@example.com"},
        "items": [{"Authorization": "Bearer x"}],
    }
    safe = sanitize_for_logging(payload)
    assert safe["path"] == "/a"
    assert safe["password"] == REDACTED
    assert safe["nested"]["apiKey"] == REDACTED
    assert "john.doe@example.com" not in safe["nested"]["note"]
    assert safe["items"][0]["Authorization"] == REDACTED
    assert payload["password"] == "hunter2"
    assert payload["nested"]["apiKey"] == "k-123"


def test_redact_args_keeps_plain_values():
    assert redact_args({"path": "/tmp/x", "recursive": True}) == {"path": "/tmp/x", "recursive": True}


def test_request_id_filter_uses_current_context():
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
    f = RequestIdFilter()
    f.filter(record)
    assert record.request_id == "-"

    ctx = create_request_context("tool:read_file", tool_name="read_file")
    with request_scope(ctx):
        assert current_request_context() is ctx
        f.filter(record)
        assert record.request_id == ctx.request_id
    assert current_request_context() is None


def test_level_aliases():
    assert parse_level("warn") == logging.WARNING
    assert parse_level("DEBUG") == logging.DEBUG
    assert parse_level("emerg") == logging.CRITICAL
    with pytest.raises(ValueError):
        parse_level("loud")


def test_request_ids_are_unique():
    a = create_request_context("op")
    b = create_request_context("op")
    assert a.request_id != b.request_id
    assert a.as_log_dict()["operation"] == "op"

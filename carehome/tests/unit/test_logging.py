"""Unit tests for logging helpers."""

import logging

import pytest

from carehome.api.middleware.request_id import choose_request_id
from carehome.core.logging import (
    ContextFilter,
    CustomJsonFormatter,
    clear_actor_context,
    get_request_id,
    sanitize_error,
    set_actor_context,
    set_request_id,
)
from carehome.models import Role


def test_sanitize_error_redacts_credentials():
    msg = sanitize_error(Exception("login failed password=hunter2 with Bearer abc.def"))
    assert "hunter2" not in msg
    assert "abc.def" not in msg


def test_sanitize_error_shortens_paths():
    msg = sanitize_error(OSError("cannot open /srv/storage/resident-files/abc/notes.txt"))
    assert "/srv/storage" not in msg
    assert "notes.txt" in msg


def test_sanitize_error_truncates():
    msg = sanitize_error(Exception("x" * 1000), max_length=10)
    assert msg == "x" * 10 + "...[truncated]"


def test_request_id_context_filter():
    set_request_id("req-1")
    try:
        record = logging.LogRecord("carehome", logging.INFO, __file__, 1, "hello", None, None)
        ContextFilter().filter(record)
        assert record.request_id == "req-1"
        assert get_request_id() == "req-1"
    finally:
        set_request_id(None)


def test_json_formatter_adds_fields():
    record = logging.LogRecord("carehome.policy", logging.WARNING, __file__, 1, "denied", None, None)
    record.request_id = "req-2"
    output = CustomJsonFormatter("%(message)s").format(record)
    assert '"component": "carehome.policy"' in output
    assert '"request_id": "req-2"' in output
    assert '"level": "WARNING"' in output


def test_sanitize_error_masks_emails():
    msg = sanitize_error(Exception("duplicate key (email)=(fay@carehome.example.com)"))
    assert "fay@" not in msg
    assert "[EMAIL]" in msg


def test_actor_context_on_records():
    set_actor_context("0f7c1b2e-aaaa-bbbb-cccc-000000000000", Role.STAFF)
    try:
        record = logging.LogRecord("carehome", logging.INFO, __file__, 1, "hello", None, None)
        ContextFilter().filter(record)
        assert record.actor_role == "STAFF"
        assert record.actor_label == "[STAFF 0f7c1b2e] "
    finally:
        clear_actor_context()

    record = logging.LogRecord("carehome", logging.INFO, __file__, 1, "hello", None, None)
    ContextFilter().filter(record)
    assert record.actor_id is None
    assert record.actor_label == ""


@pytest.mark.parametrize(
    ("incoming", "reused"),
    [("abc123", True), ("trace.id-42_x", True), (None, False), ("bad id!", False), ("x" * 65, False)],
)
def test_choose_request_id(incoming, reused):
    chosen = choose_request_id(incoming)
    assert (chosen == incoming) is reused
    if not reused:
        assert len(chosen) == 8

"""
Name: Context Carrier Tests

Responsibilities:
  - Validate per-thread isolation of the actor identity
  - Validate guaranteed release via actor_scope / clear_context
"""

import threading

import pytest

from audit_relay.context import (
    actor_scope,
    clear_context,
    current_actor,
    get_actor_field,
    get_context_dict,
    set_actor_field,
    set_request_context,
)

pytestmark = pytest.mark.unit


def test_unset_fields_read_as_none():
    actor = current_actor()
    assert actor.username is None
    assert actor.source_ip is None


def test_set_and_get_field():
    set_actor_field("username", "alice")
    set_actor_field("user_id", "")

    assert get_actor_field("username") == "alice"
    assert get_actor_field("user_id") is None
    assert current_actor().username == "alice"


def test_unknown_field_raises_key_error():
    with pytest.raises(KeyError):
        set_actor_field("password", "x")


def test_actor_scope_restores_previous_values_on_error():
    set_actor_field("username", "outer")

    with pytest.raises(RuntimeError):
        with actor_scope(username="inner", source_ip="10.0.0.1") as actor:
            assert actor.username == "inner"
            raise RuntimeError("boom")

    assert get_actor_field("username") == "outer"
    assert get_actor_field("source_ip") is None


def test_values_do_not_leak_across_threads():
    set_actor_field("username", "main-thread")
    seen: list[str | None] = []

    worker = threading.Thread(target=lambda: seen.append(get_actor_field("username")))
    worker.start()
    worker.join()

    assert seen == [None]


def test_clear_context_resets_everything():
    set_request_context(request_id="req-1", method="GET", path="/users")
    set_actor_field("username", "alice")
    assert get_context_dict() == {
        "request_id": "req-1",
        "method": "GET",
        "path": "/users",
        "username": "alice",
    }

    clear_context()

    assert get_context_dict() == {}
    assert current_actor().username is None

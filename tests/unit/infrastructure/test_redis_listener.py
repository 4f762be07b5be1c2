"""
Name: Redis Stream Listener Tests

Responsibilities:
  - Validate ack-only-on-success (XACK after the handler returns)
  - Validate pending replay ("0") after a failed delivery and at startup
  - Validate poison entries are acked and skipped
  - Validate consumer group creation is idempotent
  - Validate a rejected delivery waits backoff_seconds before the replay

Notes:
  - Redis is a MagicMock returning RESP2-shaped XREADGROUP responses
"""

import threading
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from audit_relay.infrastructure.messaging.codec import (
    decode_audit_event,
    encode_audit_event,
)
from audit_relay.infrastructure.messaging.redis_listener import RedisStreamListener

pytestmark = pytest.mark.unit

STREAM = "audit-events:0"


def _response(*entries):
    return [[STREAM, list(entries)]]


def _entry(entry_id, event):
    return (entry_id, {"key": event.partition_key, "payload": encode_audit_event(event)})


@pytest.fixture
def redis():
    return MagicMock()


@pytest.fixture
def handler():
    return MagicMock()


@pytest.fixture
def listener(redis, handler):
    return RedisStreamListener(
        redis=redis,
        stream=STREAM,
        group="audit-consumer-group",
        consumer="worker-1",
        handler=handler,
        decoder=decode_audit_event,
        block_ms=100,
    )


def _read_ids(redis):
    return [call.args[2][STREAM] for call in redis.xreadgroup.call_args_list]


def test_startup_replays_pending_then_reads_new(listener, redis, make_audit_event):
    redis.xreadgroup.side_effect = [
        [],
        _response(_entry("1-0", make_audit_event())),
    ]

    assert listener.poll_once() == 0
    assert listener.poll_once() == 1
    assert _read_ids(redis) == ["0", ">"]
    assert redis.xreadgroup.call_args_list[0].kwargs["block"] is None
    assert redis.xreadgroup.call_args_list[1].kwargs["block"] == 100


def test_acks_only_after_handler_success(listener, redis, handler, make_audit_event):
    events = [make_audit_event(entity_id=str(i)) for i in range(3)]
    redis.xreadgroup.side_effect = [
        [],
        _response(*[_entry(f"{i}-0", e) for i, e in enumerate(events)]),
    ]

    listener.poll_once()
    acked = listener.poll_once()

    assert acked == 3
    handler.assert_called_once_with(events)
    redis.xack.assert_called_once_with(
        STREAM, "audit-consumer-group", "0-0", "1-0", "2-0"
    )


def test_failed_delivery_is_not_acked_and_replayed(
    listener, redis, handler, make_audit_event
):
    entry = _entry("5-0", make_audit_event())
    redis.xreadgroup.side_effect = [[], _response(entry), _response(entry)]
    handler.side_effect = [RuntimeError("commit failed"), None]

    listener.poll_once()
    assert listener.poll_once() == 0
    redis.xack.assert_not_called()

    assert listener.poll_once() == 1
    assert _read_ids(redis) == ["0", ">", "0"]
    redis.xack.assert_called_once_with(STREAM, "audit-consumer-group", "5-0")


def test_poison_entries_are_acked_and_skipped(
    listener, redis, handler, make_audit_event
):
    good = make_audit_event()
    redis.xreadgroup.side_effect = [
        [],
        _response(("1-0", {"payload": "garbage"}), ("2-0", {}), _entry("3-0", good)),
    ]

    listener.poll_once()
    listener.poll_once()

    handler.assert_called_once_with([good])
    assert redis.xack.call_args_list[0].args == (
        STREAM,
        "audit-consumer-group",
        "1-0",
        "2-0",
    )
    assert redis.xack.call_args_list[1].args == (STREAM, "audit-consumer-group", "3-0")


def test_ensure_group_tolerates_existing_group(listener, redis):
    redis.xgroup_create.side_effect = ResponseError(
        "BUSYGROUP Consumer Group name already exists"
    )

    listener.ensure_group()

    redis.xgroup_create.assert_called_once_with(
        STREAM, "audit-consumer-group", id="0", mkstream=True
    )


def test_ensure_group_propagates_other_errors(listener, redis):
    redis.xgroup_create.side_effect = ResponseError("WRONGTYPE")

    with pytest.raises(ResponseError):
        listener.ensure_group()


def test_run_backs_off_on_redis_errors_and_stops(redis, handler):
    stop = threading.Event()
    listener = RedisStreamListener(
        redis=redis,
        stream=STREAM,
        group="g",
        consumer="c",
        handler=handler,
        decoder=decode_audit_event,
        backoff_seconds=0.01,
    )

    def _read(*_args, **_kwargs):
        if redis.xreadgroup.call_count >= 3:
            stop.set()
        raise RedisConnectionError("down")

    redis.xreadgroup.side_effect = _read

    listener.run(stop)

    assert redis.xreadgroup.call_count == 3
    handler.assert_not_called()


def test_run_backs_off_after_rejected_delivery(redis, handler, make_audit_event):
    """R: A sink that keeps failing is retried once per backoff, not in a hot loop."""
    stop = threading.Event()
    redis.xreadgroup.return_value = _response(_entry("5-0", make_audit_event()))
    handler.side_effect = RuntimeError("commit failed")
    listener = RedisStreamListener(
        redis=redis,
        stream=STREAM,
        group="g",
        consumer="c",
        handler=handler,
        decoder=decode_audit_event,
        backoff_seconds=1.0,
    )
    timer = threading.Timer(0.5, stop.set)
    timer.start()
    try:
        listener.run(stop)
    finally:
        timer.cancel()

    assert handler.call_count == 1
    redis.xack.assert_not_called()

"""
Name: Consumer Runner + Worker Health Tests

Responsibilities:
  - Validate listener threads start / stop cooperatively
  - Validate drain on stop (remainder written once)
  - Validate drain failure surfaces as CommitError after trying every consumer
  - Validate the health payload includes runner status
"""

import threading
from unittest.mock import MagicMock

import pytest

from audit_relay.application.batch_consumer import BatchingConsumer
from audit_relay.crosscutting.exceptions import CommitError
from audit_relay.infrastructure.repositories import (
    InMemoryAuditLogRepository,
    InMemoryExceptionLogRepository,
)
from audit_relay.worker.runner import ConsumerRunner
from audit_relay.worker.worker_health import health_payload

pytestmark = pytest.mark.unit


class FakeListener:
    def __init__(self, stream):
        self.stream = stream
        self.group_ensured = False
        self.started = threading.Event()

    def ensure_group(self):
        self.group_ensured = True

    def run(self, stop_event):
        self.started.set()
        stop_event.wait()


@pytest.fixture
def audit_sink():
    return InMemoryAuditLogRepository()


@pytest.fixture
def audit_consumer(audit_sink):
    return BatchingConsumer(audit_sink, batch_size=10, stream="audit-events")


@pytest.fixture
def exception_consumer():
    return BatchingConsumer(
        InMemoryExceptionLogRepository(), batch_size=10, stream="exception-events"
    )


def test_start_and_stop_drains_remainders(
    audit_consumer, exception_consumer, audit_sink, make_audit_event
):
    listeners = [FakeListener("audit-events:0"), FakeListener("audit-events:1")]
    runner = ConsumerRunner(listeners, [audit_consumer, exception_consumer])
    audit_consumer.on_delivery([make_audit_event(entity_id=str(i)) for i in range(4)])

    runner.start()
    for listener in listeners:
        assert listener.started.wait(timeout=5)
    assert all(listener.group_ensured for listener in listeners)
    assert runner.status()["listeners_alive"] == 2

    flushed = runner.stop()

    assert flushed == {"audit-events": 4, "exception-events": 0}
    assert audit_sink.batch_sizes == [4]
    assert not runner.running
    assert runner.drain() == {}


def test_start_twice_is_rejected(audit_consumer):
    runner = ConsumerRunner([FakeListener("audit-events:0")], [audit_consumer])
    runner.start()
    try:
        with pytest.raises(RuntimeError):
            runner.start()
    finally:
        runner.stop()


def test_drain_failure_tries_every_consumer(
    audit_consumer, audit_sink, make_audit_event
):
    audit_consumer.on_delivery([make_audit_event()])
    audit_sink.fail_on_call(1)
    other = MagicMock()
    other.stream = "exception-events"
    other.drain.return_value = 0
    runner = ConsumerRunner([], [audit_consumer, other])

    with pytest.raises(CommitError):
        runner.drain()

    other.drain.assert_called_once()
    assert audit_consumer.pending_count == 1
    assert runner.drain() == {"audit-events": 1, "exception-events": 0}


def test_idle_flush_thread_writes_remainder(audit_sink, make_audit_event):
    consumer = BatchingConsumer(audit_sink, batch_size=10, stream="audit-events")
    runner = ConsumerRunner([], [consumer], flush_interval_seconds=0.05)
    consumer.on_delivery([make_audit_event()])

    runner.start()
    try:
        for _ in range(100):
            if audit_sink.count():
                break
            threading.Event().wait(0.05)
    finally:
        runner.stop()

    assert audit_sink.batch_sizes == [1]


def test_health_payload_includes_runner_status(audit_consumer):
    runner = ConsumerRunner([], [audit_consumer])

    payload = health_payload(runner.status)

    assert payload["ok"] is True
    assert payload["buffered"] == {"audit-events": 0}
    assert payload["listeners_alive"] == 0

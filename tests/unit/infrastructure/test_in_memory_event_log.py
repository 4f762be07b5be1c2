"""
Name: In-Memory Event Log Tests

Responsibilities:
  - Validate partitioned append + per-partition committed offsets
  - Validate that a failing handler leaves the offset unchanged
"""

import pytest

from audit_relay.infrastructure.messaging import InMemoryEventLog, partition_for

pytestmark = pytest.mark.unit


@pytest.fixture
def log():
    return InMemoryEventLog(topic="audit-events", partitions=3)


def test_publish_appends_to_key_partition(log, make_audit_event):
    event = make_audit_event(entity_id="42")
    partition = partition_for(event.partition_key, 3)

    future = log.publish(event)

    assert future.result() == f"audit-events:{partition}@0"
    assert log.events(partition) == [event]
    assert log.lag() == 1


def test_dispatch_commits_on_success(log, make_audit_event):
    for i in range(4):
        log.publish(make_audit_event(entity_id=str(i)))
    received = []

    acked = log.dispatch(received.extend)

    assert acked == 4
    assert len(received) == 4
    assert log.lag() == 0
    assert log.dispatch(received.extend) == 0


def test_failed_dispatch_is_redelivered(log, make_audit_event):
    event = make_audit_event(entity_id="1")
    partition = partition_for(event.partition_key, 3)
    log.publish(event)

    def failing(_records):
        raise RuntimeError("commit failed")

    with pytest.raises(RuntimeError):
        log.dispatch(failing, partition=partition)

    assert log.committed_offset(partition) == 0
    received = []
    assert log.dispatch(received.extend, partition=partition) == 1
    assert received == [event]


def test_closed_log_drops_events(log, make_audit_event):
    log.close()

    assert log.publish(make_audit_event()) is None
    assert log.events() == []

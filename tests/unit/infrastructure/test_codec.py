"""
Name: Event Envelope Codec Tests

Responsibilities:
  - Validate the JSON envelope field names on the wire
  - Validate decode of audit / exception envelopes
  - Validate poison-message detection (MessageDecodeError)
"""

import json

import pytest

from audit_relay.crosscutting.exceptions import MessageDecodeError
from audit_relay.domain.audit import AuditAction
from audit_relay.infrastructure.messaging.codec import (
    decode_audit_event,
    decode_exception_event,
    encode_audit_event,
    encode_event,
    encode_exception_event,
)

pytestmark = pytest.mark.unit


def test_audit_envelope_uses_wire_field_names(make_audit_event):
    event = make_audit_event(action=AuditAction.UPDATE)

    payload = json.loads(encode_audit_event(event))

    assert payload["event_id"] == str(event.event_id)
    assert payload["action"] == "UPDATE"
    assert payload["ip_address"] == "10.0.0.7"
    assert payload["old_value"] == event.old_snapshot
    assert payload["new_value"] == event.new_snapshot


def test_audit_envelope_decodes_to_equal_event(make_audit_event):
    event = make_audit_event(action=AuditAction.DELETE)

    assert decode_audit_event(encode_audit_event(event)) == event


def test_exception_envelope_decodes_to_equal_event(sample_exception_event):
    payload = encode_exception_event(sample_exception_event)

    assert decode_exception_event(payload) == sample_exception_event


def test_encode_event_dispatches_by_type(make_audit_event, sample_exception_event):
    assert '"entity_name"' in encode_event(make_audit_event())
    assert '"exception_type"' in encode_event(sample_exception_event)

    with pytest.raises(TypeError):
        encode_event({"not": "an event"})


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        "{}",
        json.dumps(
            {
                "event_id": "not-a-uuid",
                "timestamp": "2024-05-01T12:00:00Z",
                "entity_name": "User",
                "action": "CREATE",
                "new_value": "{}",
            }
        ),
        json.dumps(
            {
                "event_id": "3b241101-e2bb-4255-8caf-4136c566a962",
                "timestamp": "2024-05-01T12:00:00Z",
                "entity_name": "User",
                "action": "CREATE",
            }
        ),
    ],
)
def test_invalid_audit_envelopes_are_poison(payload):
    with pytest.raises(MessageDecodeError):
        decode_audit_event(payload)


def test_invalid_exception_envelope_is_poison():
    with pytest.raises(MessageDecodeError):
        decode_exception_event('{"event_id": "3b241101-e2bb-4255-8caf-4136c566a962"}')

"""
Name: Audit Event Domain Tests

Responsibilities:
  - Validate snapshot rules per action (CREATE / UPDATE / DELETE)
  - Validate partition keys used for per-entity ordering
  - Validate the sample entities' identity and document contract
"""

from dataclasses import FrozenInstanceError

import pytest

from audit_relay.domain.audit import Actor, AuditAction, AuditEvent, ExceptionEvent
from audit_relay.domain.entities import Identifiable, Invoice, Persistable, User

pytestmark = pytest.mark.unit


def _event(action, old=None, new=None, entity_id="42"):
    return AuditEvent(
        actor=Actor(username="alice"),
        entity_name="User",
        entity_id=entity_id,
        action=action,
        timestamp=None,
        old_snapshot=old,
        new_snapshot=new,
    )


class TestAuditEventInvariants:
    def test_create_requires_new_and_no_old(self):
        event = _event(AuditAction.CREATE, new="{}")
        assert event.old_snapshot is None

        with pytest.raises(ValueError):
            _event(AuditAction.CREATE, old="{}", new="{}")
        with pytest.raises(ValueError):
            _event(AuditAction.CREATE)

    def test_delete_requires_old_and_no_new(self):
        event = _event(AuditAction.DELETE, old="{}")
        assert event.new_snapshot is None

        with pytest.raises(ValueError):
            _event(AuditAction.DELETE, old="{}", new="{}")
        with pytest.raises(ValueError):
            _event(AuditAction.DELETE)

    def test_update_allows_missing_old_snapshot(self):
        """R: Old snapshot is best-effort; UPDATE only needs the new one."""
        event = _event(AuditAction.UPDATE, new='{"a":1}')
        assert event.old_snapshot is None

        with pytest.raises(ValueError):
            _event(AuditAction.UPDATE, old="{}")

    def test_events_are_immutable(self):
        event = _event(AuditAction.CREATE, new="{}")
        with pytest.raises(FrozenInstanceError):
            event.entity_name = "Other"  # type: ignore[misc]

    def test_each_event_gets_its_own_id(self):
        assert _event(AuditAction.CREATE, new="{}").event_id != _event(
            AuditAction.CREATE, new="{}"
        ).event_id


class TestPartitionKeys:
    def test_audit_partition_key_is_entity_name_and_id(self):
        assert _event(AuditAction.CREATE, new="{}").partition_key == "User-42"

    def test_exception_partition_key_uses_unknown_without_class(self):
        event = ExceptionEvent(
            exception_type="KeyError",
            exception_message=None,
            stack_trace=None,
            timestamp=None,
        )
        assert event.partition_key == "KeyError-unknown"


class TestSampleEntities:
    def test_new_entity_has_no_identity(self):
        user = User(username="bob")
        assert isinstance(user, Identifiable)
        assert isinstance(user, Persistable)
        assert user.entity_id() is None

    def test_empty_string_id_counts_as_unset(self):
        assert User(id="").entity_id() is None

    def test_document_roundtrip(self):
        invoice = Invoice(invoice_number="INV-9", amount=10.0, items=["a"], id="i1")
        document = invoice.to_document()

        assert document["status"] == "DRAFT"
        assert Invoice.from_document(document) == invoice

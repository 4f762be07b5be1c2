"""
Name: Lifecycle Hooks + In-Memory Store Tests

Responsibilities:
  - Validate token hand-off from before_write to after_write
  - Validate listener failures never break the mutation
  - Validate the in-memory primary store contract (ids, copies, delete)
  - Validate in-memory audit / exception store filters
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from audit_relay.domain.audit import Actor, AuditAction
from audit_relay.domain.entities import User
from audit_relay.infrastructure.repositories import (
    InMemoryAuditLogRepository,
    InMemoryEntityStore,
    InMemoryExceptionLogRepository,
    LifecycleHooks,
)

pytestmark = pytest.mark.unit


class TestLifecycleHooks:
    def test_token_reaches_after_write_of_same_mutation(self):
        listener = MagicMock()
        listener.before_write.return_value = "token-1"
        hooks = LifecycleHooks([listener])
        user = User(username="a")

        tokens = hooks.before_write("users", user)
        hooks.after_write("users", user, tokens)

        listener.after_write.assert_called_once_with("users", user, "token-1")

    def test_failing_listener_does_not_block_others(self):
        broken, healthy = MagicMock(), MagicMock()
        broken.before_write.side_effect = RuntimeError("boom")
        broken.after_delete.side_effect = RuntimeError("boom")
        healthy.before_write.return_value = "ok"
        hooks = LifecycleHooks([broken, healthy])

        tokens = hooks.before_write("users", User())
        hooks.after_delete("users", {"id": "1"})

        assert tokens == [None, "ok"]
        healthy.after_delete.assert_called_once_with("users", {"id": "1"})


class TestInMemoryEntityStore:
    def test_save_assigns_hex_id(self, sample_user):
        store = InMemoryEntityStore()

        saved = store.save(sample_user)

        assert len(saved.id) == 32
        assert store.get(User, saved.id) == saved

    def test_documents_are_copies(self, sample_invoice):
        store = InMemoryEntityStore()
        store.save(sample_invoice)

        sample_invoice.items.append("mutated")

        assert store.find_document("invoices", sample_invoice.id)["items"] == [
            "widget",
            "gadget",
        ]

    def test_failing_hook_does_not_roll_back(self, sample_user):
        listener = MagicMock()
        listener.after_write.side_effect = RuntimeError("audit broken")
        store = InMemoryEntityStore(hooks=LifecycleHooks([listener]))

        saved = store.save(sample_user)

        assert store.find_document("users", saved.id) is not None

    def test_list_documents_paginates(self):
        store = InMemoryEntityStore()
        for i in range(5):
            store.save(User(username=f"u{i}"))

        assert len(store.list_documents("users", limit=2, offset=4)) == 1
        assert store.list_documents("users", limit=0) == []


class TestInMemoryAuditLogRepository:
    def test_filters_and_orders_newest_first(self, make_audit_event, fixed_now):
        repo = InMemoryAuditLogRepository()
        older = make_audit_event(entity_id="1", timestamp=fixed_now)
        newer = make_audit_event(
            entity_id="2",
            action=AuditAction.UPDATE,
            timestamp=fixed_now + timedelta(minutes=1),
        )
        other = make_audit_event(
            entity_id="3",
            actor=Actor(username="bob"),
            timestamp=fixed_now + timedelta(minutes=2),
        )
        repo.bulk_insert([older, newer, other])

        assert repo.list_events(username="alice") == [newer, older]
        assert repo.list_events(action=AuditAction.UPDATE) == [newer]
        assert repo.list_events(start_at=fixed_now + timedelta(seconds=30)) == [
            other,
            newer,
        ]
        assert repo.list_events(limit=1, offset=1) == [newer]

    def test_failing_call_stores_nothing(self, make_audit_event):
        repo = InMemoryAuditLogRepository()
        repo.fail_on_call(1)

        with pytest.raises(Exception):
            repo.bulk_insert([make_audit_event()])

        assert repo.count() == 0
        repo.bulk_insert([make_audit_event()])
        assert repo.batch_sizes == [1]


def test_exception_repository_filters(sample_exception_event):
    repo = InMemoryExceptionLogRepository()
    repo.bulk_insert([sample_exception_event])

    assert repo.list_events(exception_type="ValueError") == [sample_exception_event]
    assert repo.list_events(http_status=404) == []
    assert repo.list_events(organization_id="org-1") == [sample_exception_event]
    assert repo.count() == 1

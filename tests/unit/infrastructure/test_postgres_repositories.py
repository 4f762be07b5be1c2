"""
Name: PostgreSQL Repository Tests

Responsibilities:
  - Validate SQL parameters for bulk inserts and filtered listings
  - Validate error wrapping into DatabaseError
  - Validate the entity store upsert / delete + hook emission

Notes:
  - The pool is a MagicMock; no real database is used
"""

from unittest.mock import MagicMock

import pytest

from audit_relay.crosscutting.exceptions import DatabaseError
from audit_relay.domain.audit import AuditAction
from audit_relay.domain.entities import User
from audit_relay.infrastructure.repositories import (
    LifecycleHooks,
    PostgresAuditLogRepository,
    PostgresEntityStore,
    PostgresExceptionLogRepository,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def conn():
    return MagicMock()


@pytest.fixture
def pool(conn):
    pool = MagicMock()
    pool.connection.return_value.__enter__.return_value = conn
    return pool


class TestPostgresAuditLogRepository:
    def test_bulk_insert_uses_one_executemany(self, pool, conn, make_audit_event):
        repo = PostgresAuditLogRepository(pool=pool)
        events = [make_audit_event(entity_id=str(i)) for i in range(3)]

        repo.bulk_insert(events)

        cursor = conn.cursor.return_value.__enter__.return_value
        sql, rows = cursor.executemany.call_args.args
        assert "INSERT INTO audit_logs" in sql
        assert len(rows) == 3
        assert rows[0][0] == events[0].event_id
        assert rows[0][5] == "10.0.0.7"
        assert rows[0][8] == "CREATE"

    def test_empty_batch_skips_the_database(self, pool):
        PostgresAuditLogRepository(pool=pool).bulk_insert([])
        pool.connection.assert_not_called()

    def test_bulk_insert_failure_raises_database_error(
        self, pool, conn, make_audit_event
    ):
        conn.cursor.return_value.__enter__.return_value.executemany.side_effect = (
            RuntimeError("connection lost")
        )

        with pytest.raises(DatabaseError):
            PostgresAuditLogRepository(pool=pool).bulk_insert([make_audit_event()])

    def test_list_events_builds_filtered_query(self, pool, conn, make_audit_event):
        event = make_audit_event()
        conn.execute.return_value.fetchall.return_value = [
            (
                event.event_id,
                "alice",
                "u-1",
                "org-1",
                "api.example.com",
                "10.0.0.7",
                "User",
                "abc",
                "CREATE",
                None,
                '{"id":"abc"}',
                event.description,
                event.timestamp,
            )
        ]

        result = PostgresAuditLogRepository(pool=pool).list_events(
            username="alice", action=AuditAction.CREATE, limit=10, offset=20
        )

        query, params = conn.execute.call_args.args
        assert "username = %s" in query
        assert "action = %s" in query
        assert "ORDER BY occurred_at DESC, id DESC" in query
        assert params == ("alice", "CREATE", 10, 20)
        assert result == [event]

    def test_list_events_with_zero_limit(self, pool):
        assert PostgresAuditLogRepository(pool=pool).list_events(limit=0) == []
        pool.connection.assert_not_called()

    def test_count(self, pool, conn):
        conn.execute.return_value.fetchall.return_value = [(7,)]
        assert PostgresAuditLogRepository(pool=pool).count() == 7


def test_exception_bulk_insert(pool, conn, sample_exception_event):
    PostgresExceptionLogRepository(pool=pool).bulk_insert([sample_exception_event])

    cursor = conn.cursor.return_value.__enter__.return_value
    sql, rows = cursor.executemany.call_args.args
    assert "INSERT INTO exception_logs" in sql
    assert rows[0][1] == "ValueError"
    assert len(rows[0]) == 17


class TestPostgresEntityStore:
    def test_save_assigns_id_and_runs_hooks(self, pool, conn):
        listener = MagicMock()
        listener.before_write.return_value = "pending"
        store = PostgresEntityStore(pool=pool, hooks=LifecycleHooks([listener]))
        user = User(username="alice")

        store.save(user)

        assert user.id
        query, params = conn.execute.call_args.args
        assert "ON CONFLICT (collection, id)" in query
        assert params[:2] == ("users", user.id)
        listener.after_write.assert_called_once_with("users", user, "pending")

    def test_failed_save_emits_no_after_write(self, pool, conn):
        conn.execute.side_effect = RuntimeError("constraint")
        listener = MagicMock()
        store = PostgresEntityStore(pool=pool, hooks=LifecycleHooks([listener]))

        with pytest.raises(DatabaseError):
            store.save(User(username="alice"))

        listener.after_write.assert_not_called()

    def test_delete_passes_deleted_document_to_hooks(self, pool, conn):
        conn.execute.return_value.fetchone.return_value = ({"id": "u1"},)
        listener = MagicMock()
        store = PostgresEntityStore(pool=pool, hooks=LifecycleHooks([listener]))

        assert store.delete("users", "u1") is True
        listener.after_delete.assert_called_once_with("users", {"id": "u1"})

    def test_delete_missing_row(self, pool, conn):
        conn.execute.return_value.fetchone.return_value = None
        listener = MagicMock()
        store = PostgresEntityStore(pool=pool, hooks=LifecycleHooks([listener]))

        assert store.delete("users", "nope") is False
        listener.after_delete.assert_not_called()

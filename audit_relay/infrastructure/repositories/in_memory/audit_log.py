# =============================================================================
# FILE: infrastructure/repositories/in_memory/audit_log.py
# =============================================================================
"""
In-Memory Audit Log Repository for testing and development.

NOT FOR PRODUCTION USE - data is lost on restart.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import List, Optional, Sequence

from ....crosscutting.exceptions import DatabaseError
from ....domain.audit import AuditAction, AuditEvent


class InMemoryAuditLogRepository:
    """
    In-memory implementation of AuditLogRepository.

    Useful for:
      - Unit testing
      - Local development without database
      - Integration tests

    `fail_on_call` makes the N-th bulk_insert call (1-based) raise, to exercise
    commit failure paths.
    """

    def __init__(self) -> None:
        self._records: List[AuditEvent] = []
        self._batches: List[int] = []
        self._calls = 0
        self._fail_on: set[int] = set()
        self._lock = threading.Lock()

    def bulk_insert(self, records: Sequence[AuditEvent]) -> None:
        """All-or-nothing: a failing call stores nothing."""
        with self._lock:
            self._calls += 1
            if self._calls in self._fail_on:
                raise DatabaseError(f"Simulated bulk insert failure #{self._calls}")
            self._records.extend(records)
            self._batches.append(len(records))

    def list_events(
        self,
        *,
        username: Optional[str] = None,
        user_id: Optional[str] = None,
        entity_name: Optional[str] = None,
        entity_id: Optional[str] = None,
        action: Optional[AuditAction] = None,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AuditEvent]:
        """List audit events with filters, newest first."""
        with self._lock:
            results = list(self._records)

        if username is not None:
            results = [r for r in results if r.actor.username == username]
        if user_id is not None:
            results = [r for r in results if r.actor.user_id == user_id]
        if entity_name is not None:
            results = [r for r in results if r.entity_name == entity_name]
        if entity_id is not None:
            results = [r for r in results if r.entity_id == entity_id]
        if action is not None:
            results = [r for r in results if r.action == AuditAction(action)]
        if start_at is not None:
            results = [r for r in results if r.timestamp >= start_at]
        if end_at is not None:
            results = [r for r in results if r.timestamp <= end_at]

        results.sort(key=lambda r: r.timestamp, reverse=True)

        if limit <= 0:
            return []
        return results[max(offset, 0) : max(offset, 0) + limit]

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    # -------------------------------------------------------------------------
    # Testing helpers
    # -------------------------------------------------------------------------
    def fail_on_call(self, *calls: int) -> None:
        with self._lock:
            self._fail_on.update(calls)

    @property
    def batch_sizes(self) -> List[int]:
        with self._lock:
            return list(self._batches)

    def get_all(self) -> List[AuditEvent]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._batches.clear()
            self._calls = 0
            self._fail_on.clear()

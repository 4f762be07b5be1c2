# =============================================================================
# FILE: infrastructure/repositories/in_memory/exception_log.py
# =============================================================================
"""
In-Memory Exception Log Repository for testing and development.

NOT FOR PRODUCTION USE - data is lost on restart.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import List, Optional, Sequence

from ....domain.audit import ExceptionEvent


class InMemoryExceptionLogRepository:
    def __init__(self) -> None:
        self._records: List[ExceptionEvent] = []
        self._lock = threading.Lock()

    def bulk_insert(self, records: Sequence[ExceptionEvent]) -> None:
        with self._lock:
            self._records.extend(records)

    def list_events(
        self,
        *,
        exception_type: Optional[str] = None,
        username: Optional[str] = None,
        user_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        class_name: Optional[str] = None,
        http_status: Optional[int] = None,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ExceptionEvent]:
        with self._lock:
            results = list(self._records)

        if exception_type is not None:
            results = [r for r in results if r.exception_type == exception_type]
        if username is not None:
            results = [r for r in results if r.actor.username == username]
        if user_id is not None:
            results = [r for r in results if r.actor.user_id == user_id]
        if organization_id is not None:
            results = [
                r for r in results if r.actor.organization_id == organization_id
            ]
        if class_name is not None:
            results = [r for r in results if r.class_name == class_name]
        if http_status is not None:
            results = [r for r in results if r.http_status == http_status]
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

    def get_all(self) -> List[ExceptionEvent]:
        """Get all records (for testing)."""
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

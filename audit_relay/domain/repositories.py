"""
CRC — domain/repositories.py

Name
- Domain Repository Interfaces (Protocols)

Responsibilities
- Define persistence contracts for the pipeline (ports).
- Keep application code independent from PostgreSQL / in-memory adapters.
- Define the primary-store lifecycle hook contract the interceptor subscribes to.

Collaborators
- domain.audit: AuditEvent, ExceptionEvent, AuditAction
- domain.entities: Persistable
- infrastructure.repositories: postgres_*, in_memory_* implementations

Constraints
- Pure interfaces only: no side effects, no infrastructure imports, no SQL.
- bulk_insert is all-or-nothing per call and raises on failure.

Notes
- We use typing.Protocol for structural subtyping ("duck typing").
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol, TypeVar

from .audit import AuditAction, AuditEvent, ExceptionEvent
from .entities import Persistable

T_contra = TypeVar("T_contra", contravariant=True)


class BulkSink(Protocol[T_contra]):
    """R: Durable sink consumed by the batch consumer."""

    def bulk_insert(self, records: Sequence[T_contra]) -> None:
        """R: Persist all records in one all-or-nothing call."""
        ...


class AuditLogRepository(Protocol):
    """R: Audit store (append-only) + reporting queries."""

    def bulk_insert(self, records: Sequence[AuditEvent]) -> None: ...

    def list_events(
        self,
        *,
        username: str | None = None,
        user_id: str | None = None,
        entity_name: str | None = None,
        entity_id: str | None = None,
        action: AuditAction | None = None,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditEvent]:
        """R: Fetch audit events, newest first."""
        ...

    def count(self) -> int: ...


class ExceptionLogRepository(Protocol):
    """R: Exception store (append-only) + reporting queries."""

    def bulk_insert(self, records: Sequence[ExceptionEvent]) -> None: ...

    def list_events(
        self,
        *,
        exception_type: str | None = None,
        username: str | None = None,
        user_id: str | None = None,
        organization_id: str | None = None,
        class_name: str | None = None,
        http_status: int | None = None,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ExceptionEvent]: ...

    def count(self) -> int: ...


class EntityLookup(Protocol):
    """R: Point lookup of the stored representation (used for old snapshots)."""

    def find_document(
        self, collection: str, entity_id: str
    ) -> Mapping[str, Any] | None: ...


class StoreListener(Protocol):
    """
    R: Primary-store lifecycle hooks.

    before_write returns an opaque token that the store hands back to
    after_write for the same mutation.
    """

    def before_write(self, collection: str, entity: Persistable) -> Any: ...

    def after_write(self, collection: str, entity: Persistable, token: Any) -> Any: ...

    def after_delete(self, collection: str, document: Mapping[str, Any]) -> Any: ...

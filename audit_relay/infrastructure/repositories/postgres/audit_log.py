"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/audit_log.py
============================================================
Class: PostgresAuditLogRepository

Responsibilities:
  - Persistir lotes de AuditEvent en `audit_logs` (una transacción por lote).
  - Listar eventos con filtros opcionales para reporting.
  - Mantener respuestas determinísticas (orden estable).

Collaborators:
  - domain.audit.AuditEvent / Actor / AuditAction
  - psycopg_pool.ConnectionPool
  - crosscutting.logger.logger
  - crosscutting.exceptions.DatabaseError

Constraints / Notes:
  - Append-only: no se edita ni se borra.
  - bulk_insert es todo-o-nada: executemany dentro de la transacción del
    `with pool.connection()` (commit al salir, rollback si levanta).
  - event_id NO es único: redeliveries pueden duplicar (at-least-once).
  - Queries SIEMPRE parametrizadas.
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.audit import Actor, AuditAction, AuditEvent

_COLUMNS = (
    "event_id, username, user_id, organization_id, url_domain, ip_address, "
    "entity_name, entity_id, action, old_value, new_value, description, occurred_at"
)

_INSERT_SQL = f"""
    INSERT INTO audit_logs ({_COLUMNS})
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""

_ORDER_BY = "occurred_at DESC, id DESC"


def _event_to_row(event: AuditEvent) -> tuple:
    actor = event.actor
    return (
        event.event_id,
        actor.username,
        actor.user_id,
        actor.organization_id,
        actor.url_domain,
        actor.source_ip,
        event.entity_name,
        event.entity_id,
        event.action.value,
        event.old_snapshot,
        event.new_snapshot,
        event.description,
        event.timestamp,
    )


def _row_to_event(row: tuple) -> AuditEvent:
    (
        event_id,
        username,
        user_id,
        organization_id,
        url_domain,
        ip_address,
        entity_name,
        entity_id,
        action,
        old_value,
        new_value,
        description,
        occurred_at,
    ) = row
    try:
        parsed_action = AuditAction(action)
    except ValueError as exc:
        raise DatabaseError(f"Invalid audit action in database: {action}") from exc

    return AuditEvent(
        actor=Actor(
            username=username,
            user_id=user_id,
            organization_id=organization_id,
            url_domain=url_domain,
            source_ip=ip_address,
        ),
        entity_name=entity_name,
        entity_id=entity_id,
        action=parsed_action,
        timestamp=occurred_at,
        old_snapshot=old_value,
        new_snapshot=new_value,
        description=description or "",
        event_id=event_id,
    )


class PostgresAuditLogRepository:
    """Repositorio PostgreSQL del audit store (audit_logs)."""

    def __init__(self, pool: ConnectionPool | None = None):
        # Pool inyectable: tests pasan un mock; prod usa el pool global.
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def _fetchall(
        self,
        *,
        query: str,
        params: Iterable[object],
        error_message: str,
        extra: dict[str, object],
    ) -> list[tuple]:
        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                return conn.execute(query, tuple(params)).fetchall()
        except Exception as exc:
            logger.exception(error_message, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{error_message}: {exc}") from exc

    # ------------------------------------------------------------
    # Escritura (append-only, por lotes)
    # ------------------------------------------------------------
    def bulk_insert(self, records: Sequence[AuditEvent]) -> None:
        """Inserta el lote completo en una única transacción."""
        if not records:
            return

        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.executemany(_INSERT_SQL, [_event_to_row(e) for e in records])
        except Exception as exc:
            logger.exception(
                "PostgresAuditLogRepository: Failed to bulk insert audit events",
                extra={"batch_size": len(records), "error": str(exc)},
            )
            raise DatabaseError(
                f"Failed to bulk insert audit events: {exc}", original_error=exc
            ) from exc

    # ------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------
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
        """
        Lista eventos con filtros opcionales (AND).

        - start_at / end_at: rango inclusivo sobre occurred_at.
        - Orden: occurred_at DESC, id DESC.
        """
        if limit <= 0:
            return []
        if offset < 0:
            offset = 0

        conditions: list[str] = []
        params: list[object] = []

        for column, value in (
            ("username", username),
            ("user_id", user_id),
            ("entity_name", entity_name),
            ("entity_id", entity_id),
        ):
            if value:
                conditions.append(f"{column} = %s")
                params.append(value)

        if action is not None:
            conditions.append("action = %s")
            params.append(AuditAction(action).value)

        if start_at is not None:
            conditions.append("occurred_at >= %s")
            params.append(start_at)

        if end_at is not None:
            conditions.append("occurred_at <= %s")
            params.append(end_at)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT {_COLUMNS}
            FROM audit_logs
            {where_clause}
            ORDER BY {_ORDER_BY}
            LIMIT %s OFFSET %s
        """

        rows = self._fetchall(
            query=query,
            params=[*params, limit, offset],
            error_message="PostgresAuditLogRepository: Failed to list audit events",
            extra={
                "username": username,
                "entity_name": entity_name,
                "entity_id": entity_id,
                "action": AuditAction(action).value if action else None,
                "limit": limit,
                "offset": offset,
            },
        )
        return [_row_to_event(row) for row in rows]

    def count(self) -> int:
        rows = self._fetchall(
            query="SELECT COUNT(*) FROM audit_logs",
            params=(),
            error_message="PostgresAuditLogRepository: Failed to count audit events",
            extra={},
        )
        return int(rows[0][0]) if rows else 0

"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/exception_log.py
============================================================
Class: PostgresExceptionLogRepository

Responsibilities:
  - Persistir lotes de ExceptionEvent en `exception_logs`.
  - Listar excepciones con filtros opcionales (tipo, actor, clase, status, fechas).

Collaborators:
  - domain.audit.ExceptionEvent / Actor
  - psycopg_pool.ConnectionPool
  - crosscutting.exceptions.DatabaseError

Constraints / Notes:
  - Mismo contrato que audit_logs: append-only, bulk todo-o-nada, sin dedup.
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.audit import Actor, ExceptionEvent

_COLUMNS = (
    "event_id, exception_type, exception_message, stack_trace, class_name, "
    "method_name, request_url, request_method, request_parameters, username, "
    "user_id, organization_id, url_domain, ip_address, http_status, description, "
    "occurred_at"
)

_INSERT_SQL = f"""
    INSERT INTO exception_logs ({_COLUMNS})
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""


def _event_to_row(event: ExceptionEvent) -> tuple:
    actor = event.actor
    return (
        event.event_id,
        event.exception_type,
        event.exception_message,
        event.stack_trace,
        event.class_name,
        event.method_name,
        event.request_url,
        event.request_method,
        event.request_parameters,
        actor.username,
        actor.user_id,
        actor.organization_id,
        actor.url_domain,
        actor.source_ip,
        event.http_status,
        event.description,
        event.timestamp,
    )


def _row_to_event(row: tuple) -> ExceptionEvent:
    return ExceptionEvent(
        event_id=row[0],
        exception_type=row[1],
        exception_message=row[2],
        stack_trace=row[3],
        class_name=row[4],
        method_name=row[5],
        request_url=row[6],
        request_method=row[7],
        request_parameters=row[8],
        actor=Actor(
            username=row[9],
            user_id=row[10],
            organization_id=row[11],
            url_domain=row[12],
            source_ip=row[13],
        ),
        http_status=row[14],
        description=row[15] or "",
        timestamp=row[16],
    )


class PostgresExceptionLogRepository:
    """Repositorio PostgreSQL de exception_logs."""

    def __init__(self, pool: ConnectionPool | None = None):
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

    def bulk_insert(self, records: Sequence[ExceptionEvent]) -> None:
        if not records:
            return

        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.executemany(_INSERT_SQL, [_event_to_row(e) for e in records])
        except Exception as exc:
            logger.exception(
                "PostgresExceptionLogRepository: Failed to bulk insert exception events",
                extra={"batch_size": len(records), "error": str(exc)},
            )
            raise DatabaseError(
                f"Failed to bulk insert exception events: {exc}", original_error=exc
            ) from exc

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
    ) -> list[ExceptionEvent]:
        if limit <= 0:
            return []
        if offset < 0:
            offset = 0

        conditions: list[str] = []
        params: list[object] = []

        for column, value in (
            ("exception_type", exception_type),
            ("username", username),
            ("user_id", user_id),
            ("organization_id", organization_id),
            ("class_name", class_name),
        ):
            if value:
                conditions.append(f"{column} = %s")
                params.append(value)

        if http_status is not None:
            conditions.append("http_status = %s")
            params.append(http_status)

        if start_at is not None:
            conditions.append("occurred_at >= %s")
            params.append(start_at)

        if end_at is not None:
            conditions.append("occurred_at <= %s")
            params.append(end_at)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT {_COLUMNS}
            FROM exception_logs
            {where_clause}
            ORDER BY occurred_at DESC, id DESC
            LIMIT %s OFFSET %s
        """

        rows = self._fetchall(
            query=query,
            params=[*params, limit, offset],
            error_message="PostgresExceptionLogRepository: Failed to list exception events",
            extra={
                "exception_type": exception_type,
                "class_name": class_name,
                "http_status": http_status,
                "limit": limit,
                "offset": offset,
            },
        )
        return [_row_to_event(row) for row in rows]

    def count(self) -> int:
        rows = self._fetchall(
            query="SELECT COUNT(*) FROM exception_logs",
            params=(),
            error_message="PostgresExceptionLogRepository: Failed to count exception events",
            extra={},
        )
        return int(rows[0][0]) if rows else 0

"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/audit.py
===============================================================================

Name:
    Reporting Router (auditoría + excepciones)

Responsibilities:
    - Consultas de sólo lectura sobre audit_logs y exception_logs.
    - Validaciones de borde (rango de fechas, paginado).

Collaborators:
    - domain.repositories.AuditLogRepository / ExceptionLogRepository
    - container.get_audit_log_repository / get_exception_log_repository
    - schemas.audit
===============================================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from .....container import get_audit_log_repository, get_exception_log_repository
from .....domain.audit import AuditAction
from .....domain.repositories import AuditLogRepository, ExceptionLogRepository
from ..schemas.audit import (
    AuditLogsRes,
    ExceptionLogsRes,
    to_audit_log_res,
    to_exception_log_res,
)

router = APIRouter()


def _check_range(start_at: datetime | None, end_at: datetime | None) -> None:
    if start_at and end_at and start_at > end_at:
        raise HTTPException(
            status_code=422, detail="start_at debe ser anterior a end_at"
        )


@router.get("/audit-logs", response_model=AuditLogsRes, tags=["audit"])
def list_audit_logs(
    username: str | None = Query(None),
    user_id: str | None = Query(None),
    entity_name: str | None = Query(None),
    entity_id: str | None = Query(None),
    action: AuditAction | None = Query(None),
    start_at: datetime | None = Query(None),
    end_at: datetime | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    repo: AuditLogRepository = Depends(get_audit_log_repository),
):
    _check_range(start_at, end_at)

    events = repo.list_events(
        username=username,
        user_id=user_id,
        entity_name=entity_name,
        entity_id=entity_id,
        action=action,
        start_at=start_at,
        end_at=end_at,
        limit=limit,
        offset=offset,
    )

    next_offset = offset + limit if len(events) == limit else None
    return AuditLogsRes(
        events=[to_audit_log_res(e) for e in events],
        next_offset=next_offset,
    )


@router.get("/exception-logs", response_model=ExceptionLogsRes, tags=["audit"])
def list_exception_logs(
    exception_type: str | None = Query(None),
    username: str | None = Query(None),
    user_id: str | None = Query(None),
    organization_id: str | None = Query(None),
    class_name: str | None = Query(None),
    http_status: int | None = Query(None, ge=100, le=599),
    start_at: datetime | None = Query(None),
    end_at: datetime | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    repo: ExceptionLogRepository = Depends(get_exception_log_repository),
):
    _check_range(start_at, end_at)

    events = repo.list_events(
        exception_type=exception_type,
        username=username,
        user_id=user_id,
        organization_id=organization_id,
        class_name=class_name,
        http_status=http_status,
        start_at=start_at,
        end_at=end_at,
        limit=limit,
        offset=offset,
    )

    next_offset = offset + limit if len(events) == limit else None
    return ExceptionLogsRes(
        events=[to_exception_log_res(e) for e in events],
        next_offset=next_offset,
    )

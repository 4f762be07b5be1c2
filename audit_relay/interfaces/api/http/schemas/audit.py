"""
===============================================================================
TARJETA CRC — schemas/audit.py
===============================================================================

Módulo:
    Schemas HTTP para reporting de auditoría y excepciones

Responsabilidades:
    - DTOs de response para GET /audit-logs y GET /exception-logs.
    - Adaptar eventos de dominio a contratos HTTP estables.

Colaboradores:
    - domain.audit.AuditEvent / ExceptionEvent
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from .....domain.audit import AuditEvent, ExceptionEvent


class AuditLogRes(BaseModel):
    event_id: UUID
    username: str | None = None
    user_id: str | None = None
    organization_id: str | None = None
    url_domain: str | None = None
    ip_address: str | None = None
    entity_name: str
    entity_id: str | None = None
    action: str
    old_value: str | None = None
    new_value: str | None = None
    description: str = ""
    timestamp: datetime


class AuditLogsRes(BaseModel):
    """Listado paginado simple (offset-based)."""

    events: list[AuditLogRes]
    next_offset: int | None = None


class ExceptionLogRes(BaseModel):
    event_id: UUID
    exception_type: str
    exception_message: str | None = None
    stack_trace: str | None = None
    class_name: str | None = None
    method_name: str | None = None
    request_url: str | None = None
    request_method: str | None = None
    request_parameters: str | None = None
    username: str | None = None
    user_id: str | None = None
    organization_id: str | None = None
    ip_address: str | None = None
    http_status: int | None = None
    description: str = ""
    timestamp: datetime


class ExceptionLogsRes(BaseModel):
    events: list[ExceptionLogRes]
    next_offset: int | None = None


def to_audit_log_res(event: AuditEvent) -> AuditLogRes:
    return AuditLogRes(
        event_id=event.event_id,
        username=event.actor.username,
        user_id=event.actor.user_id,
        organization_id=event.actor.organization_id,
        url_domain=event.actor.url_domain,
        ip_address=event.actor.source_ip,
        entity_name=event.entity_name,
        entity_id=event.entity_id,
        action=event.action.value,
        old_value=event.old_snapshot,
        new_value=event.new_snapshot,
        description=event.description,
        timestamp=event.timestamp,
    )


def to_exception_log_res(event: ExceptionEvent) -> ExceptionLogRes:
    return ExceptionLogRes(
        event_id=event.event_id,
        exception_type=event.exception_type,
        exception_message=event.exception_message,
        stack_trace=event.stack_trace,
        class_name=event.class_name,
        method_name=event.method_name,
        request_url=event.request_url,
        request_method=event.request_method,
        request_parameters=event.request_parameters,
        username=event.actor.username,
        user_id=event.actor.user_id,
        organization_id=event.actor.organization_id,
        ip_address=event.actor.source_ip,
        http_status=event.http_status,
        description=event.description,
        timestamp=event.timestamp,
    )

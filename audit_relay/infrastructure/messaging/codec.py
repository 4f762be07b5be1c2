"""
===============================================================================
ARCHIVO: infrastructure/messaging/codec.py
===============================================================================

CRC CARD (Módulo)
-------------------------------------------------------------------------------
Nombre:
    Envelope JSON de eventos (audit / exception)

Responsabilidades:
    - Definir el contrato del mensaje que viaja por el log (pydantic).
    - Mapear dominio <-> envelope sin perder información.
    - Rechazar envelopes inválidos con MessageDecodeError (poison messages).

Colaboradores:
    - domain.audit (AuditEvent / ExceptionEvent / Actor)
    - redis_publisher / redis_listener / in_memory

Notas:
    - timestamp viaja en ISO-8601; action como código (CREATE/UPDATE/DELETE).
    - old_value / new_value son los snapshots serializados (str o null).
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, ValidationError

from ...crosscutting.exceptions import MessageDecodeError
from ...domain.audit import Actor, AuditAction, AuditEvent, ExceptionEvent


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    event_id: UUID
    timestamp: datetime
    username: str | None = None
    user_id: str | None = None
    organization_id: str | None = None
    url_domain: str | None = None
    ip_address: str | None = None
    description: str = ""


class AuditEventMessage(_Envelope):
    entity_name: str
    entity_id: str | None = None
    action: AuditAction
    old_value: str | None = None
    new_value: str | None = None


class ExceptionEventMessage(_Envelope):
    exception_type: str
    exception_message: str | None = None
    stack_trace: str | None = None
    class_name: str | None = None
    method_name: str | None = None
    request_url: str | None = None
    request_method: str | None = None
    request_parameters: str | None = None
    http_status: int | None = None


def _actor_fields(actor: Actor) -> dict:
    return {
        "username": actor.username,
        "user_id": actor.user_id,
        "organization_id": actor.organization_id,
        "url_domain": actor.url_domain,
        "ip_address": actor.source_ip,
    }


def _actor_from(message: _Envelope) -> Actor:
    return Actor(
        username=message.username,
        user_id=message.user_id,
        organization_id=message.organization_id,
        url_domain=message.url_domain,
        source_ip=message.ip_address,
    )


# -----------------------------------------------------------------------------
# Audit
# -----------------------------------------------------------------------------
def encode_audit_event(event: AuditEvent) -> str:
    message = AuditEventMessage(
        event_id=event.event_id,
        timestamp=event.timestamp,
        description=event.description,
        entity_name=event.entity_name,
        entity_id=event.entity_id,
        action=event.action,
        old_value=event.old_snapshot,
        new_value=event.new_snapshot,
        **_actor_fields(event.actor),
    )
    return message.model_dump_json()


def decode_audit_event(payload: str | bytes) -> AuditEvent:
    try:
        message = AuditEventMessage.model_validate_json(payload)
        return AuditEvent(
            actor=_actor_from(message),
            entity_name=message.entity_name,
            entity_id=message.entity_id,
            action=message.action,
            timestamp=message.timestamp,
            old_snapshot=message.old_value,
            new_snapshot=message.new_value,
            description=message.description,
            event_id=message.event_id,
        )
    except (ValidationError, ValueError) as exc:
        raise MessageDecodeError(
            f"Invalid audit event envelope: {exc}", original_error=exc
        ) from exc


# -----------------------------------------------------------------------------
# Exception
# -----------------------------------------------------------------------------
def encode_exception_event(event: ExceptionEvent) -> str:
    message = ExceptionEventMessage(
        event_id=event.event_id,
        timestamp=event.timestamp,
        description=event.description,
        exception_type=event.exception_type,
        exception_message=event.exception_message,
        stack_trace=event.stack_trace,
        class_name=event.class_name,
        method_name=event.method_name,
        request_url=event.request_url,
        request_method=event.request_method,
        request_parameters=event.request_parameters,
        http_status=event.http_status,
        **_actor_fields(event.actor),
    )
    return message.model_dump_json()


def decode_exception_event(payload: str | bytes) -> ExceptionEvent:
    try:
        message = ExceptionEventMessage.model_validate_json(payload)
    except ValidationError as exc:
        raise MessageDecodeError(
            f"Invalid exception event envelope: {exc}", original_error=exc
        ) from exc

    return ExceptionEvent(
        exception_type=message.exception_type,
        exception_message=message.exception_message,
        stack_trace=message.stack_trace,
        timestamp=message.timestamp,
        class_name=message.class_name,
        method_name=message.method_name,
        request_url=message.request_url,
        request_method=message.request_method,
        request_parameters=message.request_parameters,
        actor=_actor_from(message),
        http_status=message.http_status,
        description=message.description,
        event_id=message.event_id,
    )


def encode_event(event: AuditEvent | ExceptionEvent) -> str:
    """Despacha por tipo de evento."""
    if isinstance(event, AuditEvent):
        return encode_audit_event(event)
    if isinstance(event, ExceptionEvent):
        return encode_exception_event(event)
    raise TypeError(f"Tipo de evento no soportado: {type(event).__name__}")

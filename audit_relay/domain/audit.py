"""
===============================================================================
TARJETA CRC — domain/audit.py
===============================================================================

Módulo:
    Modelos de Auditoría (Dominio)

Responsabilidades:
    - Definir los eventos que viajan por el pipeline (AuditEvent, ExceptionEvent).
    - Validar las invariantes de snapshots según la acción (CREATE/UPDATE/DELETE).
    - Exponer la clave de partición que garantiza orden por entidad.

Colaboradores:
    - application.mutation_interceptor: construye AuditEvent.
    - application.exception_capture: construye ExceptionEvent.
    - infrastructure.messaging.codec: serializa hacia/desde el envelope JSON.
    - infra repos: persisten en audit_logs / exception_logs.

Notas:
    - Los eventos son inmutables (frozen) y append-only: nunca se editan ni borran.
    - event_id NO es clave de deduplicación (at-least-once acepta duplicados).
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4


class AuditAction(str, Enum):
    """Tipo de mutación sobre el store primario."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True, slots=True)
class Actor:
    """Identidad de quien origina la mutación (todos los campos opcionales)."""

    username: str | None = None
    user_id: str | None = None
    organization_id: str | None = None
    url_domain: str | None = None
    source_ip: str | None = None


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """Registro de una mutación: quién, qué, cuándo y desde dónde."""

    actor: Actor
    entity_name: str
    entity_id: str | None
    action: AuditAction
    timestamp: datetime
    old_snapshot: str | None = None
    new_snapshot: str | None = None
    description: str = ""
    event_id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if self.action is AuditAction.CREATE:
            if self.new_snapshot is None or self.old_snapshot is not None:
                raise ValueError("CREATE requiere new_snapshot y old_snapshot nulo")
        elif self.action is AuditAction.DELETE:
            if self.old_snapshot is None or self.new_snapshot is not None:
                raise ValueError("DELETE requiere old_snapshot y new_snapshot nulo")
        elif self.action is AuditAction.UPDATE:
            if self.new_snapshot is None:
                raise ValueError("UPDATE requiere new_snapshot")
        else:
            raise ValueError(f"Acción de auditoría desconocida: {self.action!r}")

    @property
    def partition_key(self) -> str:
        """Todos los eventos de una entidad caen en la misma partición."""
        return f"{self.entity_name}-{self.entity_id}"


@dataclass(frozen=True, slots=True)
class ExceptionEvent:
    """Excepción no manejada capturada en el borde HTTP (stream independiente)."""

    exception_type: str
    exception_message: str | None
    stack_trace: str | None
    timestamp: datetime
    class_name: str | None = None
    method_name: str | None = None
    request_url: str | None = None
    request_method: str | None = None
    request_parameters: str | None = None
    actor: Actor = field(default_factory=Actor)
    http_status: int | None = None
    description: str = ""
    event_id: UUID = field(default_factory=uuid4)

    @property
    def partition_key(self) -> str:
        return f"{self.exception_type}-{self.class_name or 'unknown'}"

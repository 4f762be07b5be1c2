"""
===============================================================================
TARJETA CRC — domain/__init__.py
===============================================================================

Módulo:
    Exportaciones de la Capa de Dominio

Responsabilidades:
    - Centralizar exports (eventos, entidades, puertos).

Reglas:
    - No importar infraestructura aquí.
===============================================================================
"""

from .audit import Actor, AuditAction, AuditEvent, ExceptionEvent
from .entities import EntityMixin, Identifiable, Invoice, Persistable, User
from .repositories import (
    AuditLogRepository,
    BulkSink,
    EntityLookup,
    ExceptionLogRepository,
    StoreListener,
)
from .services import EventPublisher

__all__ = [
    "Actor",
    "AuditAction",
    "AuditEvent",
    "ExceptionEvent",
    "EntityMixin",
    "Identifiable",
    "Invoice",
    "Persistable",
    "User",
    "AuditLogRepository",
    "BulkSink",
    "EntityLookup",
    "ExceptionLogRepository",
    "StoreListener",
    "EventPublisher",
]

# infrastructure/repositories/__init__.py
"""
============================================================
TARJETA CRC — infrastructure/repositories/__init__.py
============================================================
Module: infrastructure.repositories (Public Export Surface)

Responsibilities:
  - Exponer una API pública y estable de repositorios de infraestructura.
  - Mantener un orden lógico (Postgres primero, luego InMemory).

Policy:
  - Solo re-exporta símbolos; no debe tener side effects.
============================================================
"""

from .in_memory import (
    InMemoryAuditLogRepository,
    InMemoryEntityStore,
    InMemoryExceptionLogRepository,
)
from .lifecycle import LifecycleHooks
from .postgres import (
    PostgresAuditLogRepository,
    PostgresEntityStore,
    PostgresExceptionLogRepository,
)

__all__ = [
    "PostgresAuditLogRepository",
    "PostgresExceptionLogRepository",
    "PostgresEntityStore",
    "InMemoryAuditLogRepository",
    "InMemoryExceptionLogRepository",
    "InMemoryEntityStore",
    "LifecycleHooks",
]

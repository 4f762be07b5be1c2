"""
===============================================================================
TARJETA CRC — domain/entities.py
===============================================================================

Módulo:
    Capacidades de persistencia + entidades de ejemplo

Responsabilidades:
    - Definir Identifiable: el único modo en que el interceptor obtiene identidad.
    - Definir Persistable: lo mínimo que el store primario necesita para guardar.
    - Proveer EntityMixin para dataclasses y las entidades User / Invoice.

Colaboradores:
    - infrastructure.repositories.*_entity_store: persisten Persistable.
    - application.mutation_interceptor: lee entity_id() y to_document().

Reglas:
    - Sin reflexión: cada tipo persistido declara collection / entity_name.
    - to_document() devuelve sólo tipos JSON (str, int, float, bool, None, dict, list).
===============================================================================
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, Protocol, runtime_checkable


@runtime_checkable
class Identifiable(Protocol):
    """Capacidad uniforme de identidad."""

    def entity_id(self) -> str | None:
        """Identidad del registro, None/"" si todavía no fue persistido."""
        ...


@runtime_checkable
class Persistable(Identifiable, Protocol):
    """Entidad que el store primario sabe guardar."""

    collection: ClassVar[str]
    entity_name: ClassVar[str]

    def assign_id(self, value: str) -> None:
        """El store asigna identidad a entidades nuevas."""
        ...

    def to_document(self) -> dict[str, Any]:
        """Representación almacenada (JSON-compatible)."""
        ...


class EntityMixin:
    """Implementación de Persistable para dataclasses con campo `id`."""

    collection: ClassVar[str] = ""
    entity_name: ClassVar[str] = ""

    id: str | None

    def entity_id(self) -> str | None:
        return self.id or None

    def assign_id(self, value: str) -> None:
        self.id = value

    def to_document(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]

    @classmethod
    def from_document(cls, document: dict[str, Any]):
        return cls(**document)


@dataclass
class User(EntityMixin):
    collection: ClassVar[str] = "users"
    entity_name: ClassVar[str] = "User"

    username: str = ""
    email: str = ""
    full_name: str = ""
    role: str = "user"
    id: str | None = None


@dataclass
class Invoice(EntityMixin):
    collection: ClassVar[str] = "invoices"
    entity_name: ClassVar[str] = "Invoice"

    invoice_number: str = ""
    customer_name: str = ""
    amount: float = 0.0
    status: str = "DRAFT"
    items: list[str] = field(default_factory=list)
    rejection_reason: str | None = None
    id: str | None = None

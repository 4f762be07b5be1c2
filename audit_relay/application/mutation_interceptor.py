"""
===============================================================================
TARJETA CRC — application/mutation_interceptor.py (Captura de mutaciones)
===============================================================================

Responsabilidades:
  - Engancharse a los hooks del store primario (before_write / after_write /
    after_delete) y convertir cada mutación exitosa en un AuditEvent.
  - Clasificar CREATE vs UPDATE antes de persistir y capturar el snapshot previo.
  - Leer la identidad del actor desde el Context Carrier.
  - Publicar el evento en el message log (fire-and-forget).
  - “Best-effort”: cualquier error se loguea; NUNCA se propaga al store.

Colaboradores:
  - domain.repositories.EntityLookup (snapshot previo)
  - domain.services.EventPublisher
  - audit_relay.context.current_actor
  - application.snapshots

Patrones aplicados:
  - Observer (StoreListener)
  - Token por mutación (PendingCapture): el estado PreWrite viaja con la
    mutación, no en un atributo compartido.

Reglas:
  - Colecciones excluidas (audit_logs, exception_logs) no generan eventos.
  - Sin actor → username = default_actor ("system").
===============================================================================
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from ..context import current_actor
from ..crosscutting.logger import logger
from ..crosscutting.metrics import record_capture_error
from ..domain.audit import Actor, AuditAction, AuditEvent
from ..domain.entities import Persistable
from ..domain.repositories import EntityLookup
from ..domain.services import EventPublisher
from .snapshots import snapshot_document, snapshot_entity

DEFAULT_EXCLUDED_COLLECTIONS: frozenset[str] = frozenset(
    {"audit_logs", "exception_logs"}
)


@dataclass(frozen=True, slots=True)
class PendingCapture:
    """Resultado de PreWrite, devuelto por el store en PostWrite."""

    collection: str
    action: AuditAction
    old_snapshot: str | None = None


def entity_name_from_collection(collection: str) -> str:
    """
    "users" -> "User", "invoices" -> "Invoice", "" -> "Unknown".

    Sólo se usa en DELETE (el documento borrado no trae su tipo).
    """
    if not collection:
        return "Unknown"
    name = collection[0].upper() + collection[1:]
    if name.endswith("s") and len(name) > 1:
        name = name[:-1]
    return name


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MutationInterceptor:
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      MutationInterceptor

    Responsabilidades:
      - Implementar StoreListener para el store primario.
      - Construir AuditEvent y entregarlo al publisher.

    Colaboradores:
      - EntityLookup, EventPublisher, Context Carrier
    ----------------------------------------------------------------------------
    """

    def __init__(
        self,
        *,
        lookup: EntityLookup,
        publisher: EventPublisher,
        excluded_collections: Iterable[str] = DEFAULT_EXCLUDED_COLLECTIONS,
        default_actor: str = "system",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._lookup = lookup
        self._publisher = publisher
        self._excluded = frozenset(excluded_collections)
        self._default_actor = default_actor
        self._clock = clock

    def is_excluded(self, collection: str) -> bool:
        return collection in self._excluded

    # ------------------------------------------------------------------
    # PreWrite
    # ------------------------------------------------------------------
    def before_write(
        self, collection: str, entity: Persistable
    ) -> PendingCapture | None:
        if self.is_excluded(collection):
            return None

        try:
            entity_id = entity.entity_id()
        except Exception as exc:
            record_capture_error("before_write")
            logger.warning(
                "Interceptor: no se pudo leer la identidad, se asume UPDATE",
                extra={"collection": collection, "error": str(exc)},
            )
            return PendingCapture(collection=collection, action=AuditAction.UPDATE)

        if not entity_id:
            return PendingCapture(collection=collection, action=AuditAction.CREATE)

        return PendingCapture(
            collection=collection,
            action=AuditAction.UPDATE,
            old_snapshot=self._fetch_old_snapshot(collection, str(entity_id)),
        )

    def _fetch_old_snapshot(self, collection: str, entity_id: str) -> str | None:
        try:
            document = self._lookup.find_document(collection, entity_id)
        except Exception as exc:
            record_capture_error("before_write")
            logger.warning(
                "Interceptor: falló la lectura del snapshot previo",
                extra={
                    "collection": collection,
                    "entity_id": entity_id,
                    "error": str(exc),
                },
            )
            return None

        if document is None:
            logger.debug(
                "Interceptor: snapshot previo no encontrado",
                extra={"collection": collection, "entity_id": entity_id},
            )
            return None

        return snapshot_document(document)

    # ------------------------------------------------------------------
    # PostWrite
    # ------------------------------------------------------------------
    def after_write(
        self,
        collection: str,
        entity: Persistable,
        pending: PendingCapture | None,
    ) -> AuditEvent | None:
        if self.is_excluded(collection):
            return None

        if pending is None:
            pending = PendingCapture(collection=collection, action=AuditAction.UPDATE)

        try:
            entity_id = entity.entity_id()
            entity_name = getattr(entity, "entity_name", "") or type(entity).__name__
            event = AuditEvent(
                actor=self._actor(),
                entity_name=entity_name,
                entity_id=str(entity_id) if entity_id else None,
                action=pending.action,
                timestamp=self._clock(),
                old_snapshot=pending.old_snapshot,
                new_snapshot=snapshot_entity(entity),
                description=_describe(pending.action, entity_name),
            )
        except Exception as exc:
            record_capture_error("after_write")
            logger.exception(
                "Interceptor: no se pudo construir el evento",
                extra={"collection": collection, "error": str(exc)},
            )
            return None

        return self._publish(event, stage="after_write")

    # ------------------------------------------------------------------
    # Delete path
    # ------------------------------------------------------------------
    def after_delete(
        self, collection: str, document: Mapping[str, Any]
    ) -> AuditEvent | None:
        if self.is_excluded(collection):
            return None

        try:
            raw_id = document.get("id") if document else None
            entity_name = entity_name_from_collection(collection)
            event = AuditEvent(
                actor=self._actor(),
                entity_name=entity_name,
                entity_id=str(raw_id) if raw_id else None,
                action=AuditAction.DELETE,
                timestamp=self._clock(),
                old_snapshot=snapshot_document(document or {}),
                new_snapshot=None,
                description=_describe(AuditAction.DELETE, entity_name),
            )
        except Exception as exc:
            record_capture_error("after_delete")
            logger.exception(
                "Interceptor: no se pudo construir el evento de borrado",
                extra={"collection": collection, "error": str(exc)},
            )
            return None

        return self._publish(event, stage="after_delete")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _actor(self) -> Actor:
        actor = current_actor()
        if not actor.username:
            actor = replace(actor, username=self._default_actor)
        return actor

    def _publish(self, event: AuditEvent, *, stage: str) -> AuditEvent:
        try:
            self._publisher.publish(event)
        except Exception as exc:
            record_capture_error(stage)
            logger.warning(
                "Interceptor: falló la publicación, evento descartado",
                extra={
                    "entity_name": event.entity_name,
                    "entity_id": event.entity_id,
                    "action": event.action.value,
                    "error": str(exc),
                },
            )
        return event


def _describe(action: AuditAction, entity_name: str) -> str:
    return f"Database {action.value} operation on {entity_name}"

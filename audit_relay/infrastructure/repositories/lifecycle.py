"""
============================================================
TARJETA CRC — infrastructure/repositories/lifecycle.py
============================================================
Class: LifecycleHooks

Responsibilities:
  - Invocar los StoreListener registrados alrededor de cada escritura/borrado.
  - Transportar el token de before_write hasta after_write de la MISMA mutación.
  - Aislar al store de fallas de los listeners (se loguean, nunca se propagan).

Collaborators:
  - domain.repositories.StoreListener
  - PostgresEntityStore / InMemoryEntityStore
============================================================
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ...crosscutting.logger import logger
from ...domain.entities import Persistable
from ...domain.repositories import StoreListener


class LifecycleHooks:
    def __init__(self, listeners: Iterable[StoreListener] = ()) -> None:
        self._listeners: list[StoreListener] = list(listeners)

    def register(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    @property
    def listeners(self) -> tuple[StoreListener, ...]:
        return tuple(self._listeners)

    def before_write(self, collection: str, entity: Persistable) -> list[Any]:
        """Un token por listener (None si el listener falló)."""
        tokens: list[Any] = []
        for listener in self._listeners:
            try:
                tokens.append(listener.before_write(collection, entity))
            except Exception:
                logger.exception(
                    "Store hook before_write falló",
                    extra={"collection": collection, "listener": _name(listener)},
                )
                tokens.append(None)
        return tokens

    def after_write(
        self, collection: str, entity: Persistable, tokens: list[Any]
    ) -> None:
        for listener, token in zip(self._listeners, tokens):
            try:
                listener.after_write(collection, entity, token)
            except Exception:
                logger.exception(
                    "Store hook after_write falló",
                    extra={"collection": collection, "listener": _name(listener)},
                )

    def after_delete(self, collection: str, document: Mapping[str, Any]) -> None:
        for listener in self._listeners:
            try:
                listener.after_delete(collection, document)
            except Exception:
                logger.exception(
                    "Store hook after_delete falló",
                    extra={"collection": collection, "listener": _name(listener)},
                )


def _name(listener: object) -> str:
    return type(listener).__name__

"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/entity_store.py
============================================================
Class: PostgresEntityStore

Responsibilities:
  - Store primario de documentos: tabla `entities(collection, id, document)`.
  - Asignar identidad (uuid4 hex) a entidades nuevas.
  - Emitir los hooks de ciclo de vida (before_write / after_write / after_delete)
    alrededor de cada mutación exitosa.
  - Resolver lookups puntuales del documento almacenado (snapshot previo).

Collaborators:
  - infrastructure.repositories.lifecycle.LifecycleHooks
  - psycopg.types.json.Jsonb / psycopg_pool.ConnectionPool
  - crosscutting.exceptions.DatabaseError

Constraints / Notes:
  - Los hooks corren FUERA del try de la DB: un fallo de auditoría jamás hace
    rollback de la mutación, y un fallo de DB jamás emite after_*.
============================================================
"""

from __future__ import annotations

from typing import Any, Iterable, TypeVar
from uuid import uuid4

from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.entities import Persistable
from ..lifecycle import LifecycleHooks

E = TypeVar("E", bound=Persistable)


class PostgresEntityStore:
    def __init__(
        self,
        pool: ConnectionPool | None = None,
        *,
        hooks: LifecycleHooks | None = None,
    ):
        self._pool = pool
        self._hooks = hooks or LifecycleHooks()

    @property
    def hooks(self) -> LifecycleHooks:
        return self._hooks

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def _execute(
        self,
        *,
        query: str,
        params: Iterable[object],
        error_message: str,
        extra: dict[str, object],
        fetch: str | None = None,
    ) -> Any:
        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                cursor = conn.execute(query, tuple(params))
                if fetch == "one":
                    return cursor.fetchone()
                if fetch == "all":
                    return cursor.fetchall()
                return None
        except Exception as exc:
            logger.exception(error_message, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{error_message}: {exc}", original_error=exc) from exc

    # ------------------------------------------------------------
    # Escritura
    # ------------------------------------------------------------
    def save(self, entity: E) -> E:
        collection = entity.collection
        tokens = self._hooks.before_write(collection, entity)

        if not entity.entity_id():
            entity.assign_id(uuid4().hex)
        entity_id = entity.entity_id()

        self._execute(
            query="""
                INSERT INTO entities (collection, id, document, updated_at)
                VALUES (%s, %s, %s, now())
                ON CONFLICT (collection, id)
                DO UPDATE SET document = EXCLUDED.document, updated_at = now()
            """,
            params=(collection, entity_id, Jsonb(entity.to_document())),
            error_message="PostgresEntityStore: Failed to save entity",
            extra={"collection": collection, "entity_id": entity_id},
        )

        self._hooks.after_write(collection, entity, tokens)
        return entity

    def delete(self, collection: str, entity_id: str) -> bool:
        """Borra y emite after_delete con el documento borrado. False si no existía."""
        row = self._execute(
            query="""
                DELETE FROM entities
                WHERE collection = %s AND id = %s
                RETURNING document
            """,
            params=(collection, entity_id),
            error_message="PostgresEntityStore: Failed to delete entity",
            extra={"collection": collection, "entity_id": entity_id},
            fetch="one",
        )
        if row is None:
            return False

        self._hooks.after_delete(collection, row[0] or {})
        return True

    # ------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------
    def find_document(self, collection: str, entity_id: str) -> dict[str, Any] | None:
        row = self._execute(
            query="SELECT document FROM entities WHERE collection = %s AND id = %s",
            params=(collection, entity_id),
            error_message="PostgresEntityStore: Failed to load document",
            extra={"collection": collection, "entity_id": entity_id},
            fetch="one",
        )
        return dict(row[0]) if row else None

    def get(self, entity_type: type[E], entity_id: str) -> E | None:
        document = self.find_document(entity_type.collection, entity_id)
        if document is None:
            return None
        return entity_type.from_document(document)  # type: ignore[attr-defined]

    def list_documents(
        self, collection: str, *, limit: int = 50, offset: int = 0
    ) -> list[dict[str, Any]]:
        if limit <= 0:
            return []
        rows = self._execute(
            query="""
                SELECT document FROM entities
                WHERE collection = %s
                ORDER BY updated_at DESC, id DESC
                LIMIT %s OFFSET %s
            """,
            params=(collection, limit, max(offset, 0)),
            error_message="PostgresEntityStore: Failed to list documents",
            extra={"collection": collection, "limit": limit, "offset": offset},
            fetch="all",
        )
        return [dict(row[0]) for row in rows]

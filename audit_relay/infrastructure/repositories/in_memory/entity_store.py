# =============================================================================
# FILE: infrastructure/repositories/in_memory/entity_store.py
# =============================================================================
"""
In-Memory primary store for testing and development.

NOT FOR PRODUCTION USE - data is lost on restart.

Same contract as PostgresEntityStore: assigns uuid4 hex ids, stores deep copies
of to_document(), and emits lifecycle hooks around successful mutations.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Dict, List, Optional, TypeVar
from uuid import uuid4

from ....domain.entities import Persistable
from ..lifecycle import LifecycleHooks

E = TypeVar("E", bound=Persistable)


class InMemoryEntityStore:
    def __init__(self, *, hooks: Optional[LifecycleHooks] = None) -> None:
        self._documents: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._hooks = hooks or LifecycleHooks()
        self._lock = threading.Lock()

    @property
    def hooks(self) -> LifecycleHooks:
        return self._hooks

    def save(self, entity: E) -> E:
        collection = entity.collection
        tokens = self._hooks.before_write(collection, entity)

        if not entity.entity_id():
            entity.assign_id(uuid4().hex)

        document = copy.deepcopy(entity.to_document())
        with self._lock:
            self._documents.setdefault(collection, {})[str(entity.entity_id())] = (
                document
            )

        self._hooks.after_write(collection, entity, tokens)
        return entity

    def delete(self, collection: str, entity_id: str) -> bool:
        with self._lock:
            document = self._documents.get(collection, {}).pop(entity_id, None)
        if document is None:
            return False

        self._hooks.after_delete(collection, document)
        return True

    def find_document(
        self, collection: str, entity_id: str
    ) -> Optional[Dict[str, Any]]:
        with self._lock:
            document = self._documents.get(collection, {}).get(entity_id)
            return copy.deepcopy(document) if document is not None else None

    def get(self, entity_type: type[E], entity_id: str) -> Optional[E]:
        document = self.find_document(entity_type.collection, entity_id)
        if document is None:
            return None
        return entity_type.from_document(document)  # type: ignore[attr-defined]

    def list_documents(
        self, collection: str, *, limit: int = 50, offset: int = 0
    ) -> List[Dict[str, Any]]:
        with self._lock:
            documents = [
                copy.deepcopy(d) for d in self._documents.get(collection, {}).values()
            ]
        if limit <= 0:
            return []
        return documents[max(offset, 0) : max(offset, 0) + limit]

    def clear(self) -> None:
        """Clear all data (for testing). Does not emit hooks."""
        with self._lock:
            self._documents.clear()

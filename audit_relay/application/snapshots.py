"""
===============================================================================
TARJETA CRC — application/snapshots.py
===============================================================================

Responsabilidades:
  - Serializar entidades y documentos almacenados a JSON canónico.
  - Degradar a str(...) cuando la serialización falla (nunca levantar).

Colaboradores:
  - application.mutation_interceptor

Notas:
  - Canónico = claves ordenadas + separadores compactos. Así el new_snapshot de
    un CREATE y el old_snapshot del UPDATE siguiente coinciden byte a byte.
===============================================================================
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from ..crosscutting.logger import logger
from ..domain.entities import Persistable


def canonical_json(document: Mapping[str, Any]) -> str:
    """Levanta TypeError/ValueError si el documento no es JSON puro."""
    return json.dumps(
        dict(document), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def snapshot_document(document: Mapping[str, Any]) -> str:
    try:
        return canonical_json(document)
    except (TypeError, ValueError) as exc:
        logger.warning(
            "Snapshot: documento no serializable, usando str()",
            extra={"error": str(exc)},
        )
        return str(document)


def snapshot_entity(entity: Persistable) -> str:
    """JSON canónico de to_document(); si falla, str(entity)."""
    try:
        return canonical_json(entity.to_document())
    except (TypeError, ValueError) as exc:
        logger.warning(
            "Snapshot: entidad no serializable, usando str()",
            extra={"entity_type": type(entity).__name__, "error": str(exc)},
        )
        return str(entity)

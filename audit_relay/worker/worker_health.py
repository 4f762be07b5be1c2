"""
===============================================================================
TARJETA CRC — worker/worker_health.py (Health & Readiness del Worker)
===============================================================================

Responsabilidades:
  - /healthz: proceso vivo, listeners, registros en buffer y uso del pool.
  - /readyz: el message log (Redis) y el audit store (Postgres) responden.

Colaboradores:
  - infrastructure.db.pool (get_pool / pool_stats), reusa el pool del worker
  - container.get_redis
===============================================================================
"""

from __future__ import annotations

import time
from typing import Any, Callable

from ..container import get_redis
from ..crosscutting.logger import logger
from ..infrastructure.db import PoolNotInitializedError, get_pool, pool_stats

_STARTED_AT = time.monotonic()

StatusProvider = Callable[[], dict[str, Any]]


def _probe(name: str, check: Callable[[], object]) -> bool:
    try:
        return bool(check())
    except PoolNotInitializedError:
        return False
    except Exception as exc:
        logger.warning(
            "Readiness worker: dependencia caída",
            extra={"dependency": name, "error": str(exc)},
        )
        return False


def _select_one() -> bool:
    with get_pool().connection(timeout=2) as conn:
        conn.execute("SELECT 1")
    return True


def readiness_payload() -> dict[str, Any]:
    checks = {
        "db": _probe("db", _select_one),
        "redis": _probe("redis", lambda: get_redis().ping()),
    }
    payload: dict[str, Any] = {"ok": all(checks.values())}
    for name, up in checks.items():
        payload[name] = "connected" if up else "disconnected"
    return payload


def health_payload(status_provider: StatusProvider | None = None) -> dict[str, Any]:
    """No toca dependencias externas: sólo estado en proceso."""
    payload: dict[str, Any] = {
        "ok": True,
        "uptime_seconds": int(time.monotonic() - _STARTED_AT),
        "db_pool": pool_stats(),
    }
    if status_provider is not None:
        payload.update(status_provider())
    return payload

"""
===============================================================================
CRC CARD — infrastructure/db/pool.py
===============================================================================

Componente:
  Pool de conexiones PostgreSQL compartido por el proceso (API o worker)

Responsabilidades:
  - Abrir un único ConnectionPool por proceso, nombrado por rol
    ("audit-relay-api" / "audit-relay-worker") para identificarlo en
    pg_stat_activity.
  - Aplicar statement_timeout a cada conexión nueva.
  - Exponer estadísticas del pool para /healthz del worker.

Colaboradores:
  - psycopg_pool.ConnectionPool
  - api.main (lifespan) / worker.consumer (main)
  - worker.worker_health (pool_stats)

Reglas:
  - Doble apertura → PoolAlreadyInitializedError.
  - Uso antes de abrir → PoolNotInitializedError.
===============================================================================
"""

from __future__ import annotations

import threading
from typing import Any

from psycopg_pool import ConnectionPool

from ...crosscutting.logger import logger
from .errors import PoolAlreadyInitializedError, PoolNotInitializedError


def _apply_session_settings(conn) -> None:
    from ...crosscutting.config import get_settings

    timeout_ms = int(get_settings().db_statement_timeout_ms)
    if timeout_ms > 0:
        conn.execute(f"SET statement_timeout = {timeout_ms}")
        conn.commit()


class _PoolRegistry:
    """Dueño del pool del proceso; todas las transiciones bajo un lock."""

    def __init__(self) -> None:
        self._pool: ConnectionPool | None = None
        self._lock = threading.Lock()

    def open(
        self, database_url: str, *, min_size: int, max_size: int, role: str
    ) -> ConnectionPool:
        with self._lock:
            if self._pool is not None:
                raise PoolAlreadyInitializedError(
                    f"Pool '{self._pool.name}' ya abierto en este proceso."
                )
            name = f"audit-relay-{role}"
            self._pool = ConnectionPool(
                conninfo=database_url,
                min_size=min_size,
                max_size=max_size,
                name=name,
                kwargs={"application_name": name},
                configure=_apply_session_settings,
                open=True,
            )
            logger.info(
                "Pool DB abierto",
                extra={"pool": name, "min_size": min_size, "max_size": max_size},
            )
            return self._pool

    def current(self) -> ConnectionPool:
        pool = self._pool
        if pool is None:
            raise PoolNotInitializedError(
                "Pool no inicializado. Llamar init_pool() primero."
            )
        return pool

    def stats(self) -> dict[str, Any]:
        pool = self._pool
        if pool is None:
            return {}
        raw = pool.get_stats()
        return {
            key: raw.get(key, 0)
            for key in ("pool_size", "pool_available", "requests_waiting")
        }

    def close(self, *, tolerate_errors: bool = False) -> None:
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is None:
            return
        try:
            pool.close()
        except Exception as exc:
            if not tolerate_errors:
                raise
            logger.warning(
                "Pool DB: close falló, se descarta igual",
                extra={"pool": pool.name, "error": str(exc)},
            )
            return
        logger.info("Pool DB cerrado", extra={"pool": pool.name})


_registry = _PoolRegistry()


def init_pool(
    database_url: str, min_size: int, max_size: int, *, role: str = "api"
) -> ConnectionPool:
    return _registry.open(
        database_url, min_size=min_size, max_size=max_size, role=role
    )


def get_pool() -> ConnectionPool:
    return _registry.current()


def pool_stats() -> dict[str, Any]:
    """pool_size / pool_available / requests_waiting; {} si no hay pool."""
    return _registry.stats()


def close_pool() -> None:
    """Idempotente. El singleton se libera aunque close() falle."""
    _registry.close()


def reset_pool() -> None:
    """Tests: descarta el pool ignorando errores de cierre."""
    _registry.close(tolerate_errors=True)

"""
===============================================================================
TARJETA CRC — worker/consumer.py (Entrypoint del consumer worker)
===============================================================================

Responsabilidades:
  - Levantar los listeners de audit-events y exception-events (uno por partición).
  - Inicializar dependencias del proceso: Redis + pool de BD.
  - Exponer HTTP liviano de health/ready/metrics para orquestadores.
  - SIGTERM/SIGINT → stop cooperativo → drain de los buffers → cierre del pool.

Patrones aplicados:
  - Process Bootstrap: inicializa recursos del proceso antes de trabajar.
  - Fail-fast: si Redis/BD no están disponibles al inicio, no arrancar “a medias”.
  - Best-effort health server: si el puerto está ocupado, log y continuar.

Colaboradores:
  - crosscutting.config.get_settings
  - infrastructure.db.pool.init_pool / close_pool
  - container (listeners, consumers, redis)
  - worker.runner.ConsumerRunner
  - worker_server.start_worker_http_server
===============================================================================
"""

from __future__ import annotations

import signal
import threading

from ..container import (
    build_listeners,
    get_audit_consumer,
    get_consumer_name,
    get_exception_consumer,
    get_redis,
)
from ..crosscutting.config import get_settings
from ..crosscutting.exceptions import CommitError
from ..crosscutting.logger import logger
from ..infrastructure.db.pool import close_pool, init_pool
from .runner import ConsumerRunner
from .worker_server import start_worker_http_server


def _install_signal_handlers(shutdown: threading.Event) -> None:
    def _handle(signum, _frame) -> None:
        logger.info("Señal recibida, deteniendo worker", extra={"signal": signum})
        shutdown.set()

    signal.signal(signal.SIGTERM, _handle)
    signal.signal(signal.SIGINT, _handle)


def main() -> None:
    settings = get_settings()

    if not settings.redis_url.strip():
        raise SystemExit("REDIS_URL es requerido para ejecutar el worker.")

    # R: Redis (fail-fast si no responde).
    redis_conn = get_redis()
    try:
        redis_conn.ping()
    except Exception as exc:
        logger.error("Redis no disponible para worker", extra={"error": str(exc)})
        raise SystemExit("Redis no disponible.") from exc

    # R: Pool DB (fail-fast si no inicializa).
    init_pool(
        database_url=settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        role="worker",
    )

    shutdown = threading.Event()
    _install_signal_handlers(shutdown)

    runner = ConsumerRunner(
        build_listeners(),
        [get_audit_consumer(), get_exception_consumer()],
        flush_interval_seconds=settings.consumer_flush_interval_seconds,
    )

    server = None
    exit_code = 0
    try:
        server = start_worker_http_server(
            settings.worker_http_port, status_provider=runner.status
        )

        logger.info(
            "Worker arrancando",
            extra={
                "consumer": get_consumer_name(),
                "group": settings.consumer_group,
                "partitions": settings.stream_partitions,
                "batch_size": settings.consumer_batch_size,
                "http_port": settings.worker_http_port,
            },
        )

        runner.start()
        while not shutdown.wait(1.0):
            pass

    finally:
        try:
            runner.stop()
        except CommitError:
            logger.error("Worker apagado con registros sin persistir")
            exit_code = 1

        if server is not None:
            server.shutdown()
            server.server_close()

        close_pool()
        logger.info("Worker apagado")

    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()

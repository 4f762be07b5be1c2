"""
===============================================================================
TARJETA CRC — worker/runner.py (Orquestación de listeners + consumers)
===============================================================================

Responsabilidades:
  - Levantar un thread por listener (uno por partición por stream).
  - Opcionalmente, un thread de idle flush para remanentes < K.
  - Apagado cooperativo: stop_event → join de threads → drain de cada consumer.

Colaboradores:
  - infrastructure.messaging.redis_listener.RedisStreamListener
  - application.batch_consumer.BatchingConsumer
  - worker.consumer (main)

Notas:
  - drain() corre una sola vez por consumer y DESPUÉS de que los listeners
    pararon, así no compite con entregas en curso.
===============================================================================
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import Any, Protocol

from ..application.batch_consumer import BatchingConsumer
from ..crosscutting.exceptions import CommitError
from ..crosscutting.logger import logger


class Listener(Protocol):
    @property
    def stream(self) -> str: ...

    def ensure_group(self) -> None: ...

    def run(self, stop_event: threading.Event) -> None: ...


class ConsumerRunner:
    def __init__(
        self,
        listeners: Sequence[Listener],
        consumers: Sequence[BatchingConsumer[Any]],
        *,
        flush_interval_seconds: float = 0.0,
        join_timeout_seconds: float = 10.0,
    ) -> None:
        self._listeners = list(listeners)
        self._consumers = list(consumers)
        self._flush_interval = flush_interval_seconds
        self._join_timeout = join_timeout_seconds
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._drained = False

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        if self._threads:
            raise RuntimeError("ConsumerRunner ya fue iniciado")

        for listener in self._listeners:
            listener.ensure_group()

        for listener in self._listeners:
            thread = threading.Thread(
                target=listener.run,
                args=(self._stop_event,),
                name=f"listener-{listener.stream}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

        if self._flush_interval > 0:
            thread = threading.Thread(
                target=self._idle_flush_loop, name="idle-flush", daemon=True
            )
            thread.start()
            self._threads.append(thread)

        logger.info(
            "ConsumerRunner iniciado",
            extra={
                "listeners": len(self._listeners),
                "consumers": len(self._consumers),
                "flush_interval_seconds": self._flush_interval,
            },
        )

    def _idle_flush_loop(self) -> None:
        tick = max(min(self._flush_interval / 2, 1.0), 0.05)
        while not self._stop_event.wait(tick):
            for consumer in self._consumers:
                try:
                    consumer.flush_if_idle(self._flush_interval)
                except CommitError as exc:
                    # El buffer queda intacto; se reintenta en el próximo tick.
                    logger.warning(
                        "Idle flush falló",
                        extra={"stream": consumer.stream, "error": exc.message},
                    )

    def stop(self) -> dict[str, int]:
        """Detiene listeners y vacía los buffers. Levanta CommitError si un drain falló."""
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout=self._join_timeout)
            if thread.is_alive():
                logger.warning(
                    "Thread no terminó a tiempo", extra={"thread_name": thread.name}
                )
        return self.drain()

    def drain(self) -> dict[str, int]:
        """Drain de cada consumer (una vez). Intenta todos antes de levantar."""
        if self._drained:
            return {}

        flushed: dict[str, int] = {}
        failure: CommitError | None = None
        for consumer in self._consumers:
            try:
                flushed[consumer.stream] = consumer.drain()
            except CommitError as exc:
                logger.error(
                    "Drain falló: registros pendientes sin persistir",
                    extra={
                        "stream": consumer.stream,
                        "pending": consumer.pending_count,
                        "error_id": exc.error_id,
                    },
                )
                failure = failure or exc

        if failure is not None:
            raise failure

        self._drained = True
        logger.info("ConsumerRunner drenado", extra={"flushed": flushed})
        return flushed

    def status(self) -> dict[str, Any]:
        return {
            "listeners_alive": sum(
                1
                for t in self._threads
                if t.is_alive() and t.name.startswith("listener-")
            ),
            "buffered": {c.stream: c.pending_count for c in self._consumers},
        }

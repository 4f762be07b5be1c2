"""
===============================================================================
TARJETA CRC — application/batch_consumer.py (Consumidor por lotes)
===============================================================================

Responsabilidades:
  - Acumular entregas concurrentes (un listener por partición) en un buffer.
  - Escribir lotes de exactamente K registros en el sink durable.
  - Indicar al caller si puede confirmar (ack) la entrega: sólo si retornó OK.
  - Vaciar el remanente (< K) en shutdown (drain) o por antigüedad (idle flush).

Colaboradores:
  - domain.repositories.BulkSink (audit_logs / exception_logs)
  - infrastructure.messaging.redis_listener / in_memory (llaman on_delivery)
  - worker.runner (drain + flush_if_idle)

Invariantes:
  - Toda mutación del buffer ocurre bajo un único threading.Lock.
  - Un lote se quita del buffer recién después de un bulk_insert exitoso.
  - Si falla un bulk_insert → CommitError; la entrega no se confirma y se
    redeliverá completa. Los registros de entregas previas (ya confirmadas)
    que no llegaron a escribirse se conservan; los de la entrega actual se
    descartan del buffer (vuelven por redelivery).

Garantía:
  - At-least-once. Sin deduplicación (event_id no es único).
===============================================================================
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from typing import Generic, TypeVar

from ..crosscutting.exceptions import CommitError
from ..crosscutting.logger import logger
from ..crosscutting.metrics import (
    record_batch_committed,
    record_commit_failure,
    set_buffered_records,
)
from ..domain.repositories import BulkSink

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 10


class BatchingConsumer(Generic[T]):
    """Buffer compartido + commits de tamaño fijo K."""

    def __init__(
        self,
        sink: BulkSink[T],
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        stream: str = "audit-events",
        clock: Callable[[], float] = time.monotonic,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be greater than 0")
        self._sink = sink
        self._batch_size = batch_size
        self._stream = stream
        self._clock = clock
        self._buffer: list[T] = []
        self._oldest_at: float | None = None
        self._lock = threading.Lock()

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def stream(self) -> str:
        return self._stream

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._buffer)

    # ------------------------------------------------------------------
    # Entregas
    # ------------------------------------------------------------------
    def on_delivery(self, records: Sequence[T]) -> None:
        """
        Procesa una entrega. Si retorna normalmente, el caller confirma.

        Raises:
            CommitError: falló un bulk_insert; NO confirmar la entrega.
        """
        if not records:
            logger.warning(
                "BatchingConsumer: entrega vacía, se confirma sin escribir",
                extra={"stream": self._stream},
            )
            return

        with self._lock:
            carried = len(self._buffer)
            if carried == 0:
                self._oldest_at = self._clock()
            self._buffer.extend(records)
            committed = 0

            try:
                while len(self._buffer) >= self._batch_size:
                    batch = self._buffer[: self._batch_size]
                    self._sink.bulk_insert(batch)
                    del self._buffer[: self._batch_size]
                    committed += len(batch)
                    record_batch_committed(self._stream, len(batch))
            except Exception as exc:
                keep = max(carried - committed, 0)
                dropped = len(self._buffer) - keep
                del self._buffer[keep:]
                if not self._buffer:
                    self._oldest_at = None
                set_buffered_records(self._stream, len(self._buffer))
                record_commit_failure(self._stream)
                logger.exception(
                    "BatchingConsumer: falló el bulk insert, la entrega no se confirma",
                    extra={
                        "stream": self._stream,
                        "delivery_size": len(records),
                        "committed": committed,
                        "kept": keep,
                        "dropped_for_redelivery": dropped,
                    },
                )
                raise CommitError(
                    f"Bulk insert failed on {self._stream}: {exc}",
                    original_error=exc,
                ) from exc

            if not self._buffer:
                self._oldest_at = None
            elif committed:
                # El remanente es lo más nuevo de esta entrega.
                self._oldest_at = self._clock()
            set_buffered_records(self._stream, len(self._buffer))

        logger.debug(
            "BatchingConsumer: entrega procesada",
            extra={
                "stream": self._stream,
                "delivery_size": len(records),
                "committed": committed,
            },
        )

    # ------------------------------------------------------------------
    # Remanente
    # ------------------------------------------------------------------
    def drain(self) -> int:
        """
        Escribe el remanente (aunque sea < K) como un único lote.

        Returns:
            Cantidad de registros escritos.
        Raises:
            CommitError: el buffer queda intacto.
        """
        with self._lock:
            return self._flush_locked(reason="drain")

    def flush_if_idle(self, max_age_seconds: float) -> int:
        """Vacía el remanente si el registro más viejo esperó >= max_age_seconds."""
        if max_age_seconds <= 0:
            return 0
        with self._lock:
            if not self._buffer or self._oldest_at is None:
                return 0
            if self._clock() - self._oldest_at < max_age_seconds:
                return 0
            return self._flush_locked(reason="idle")

    def _flush_locked(self, *, reason: str) -> int:
        if not self._buffer:
            return 0

        batch = list(self._buffer)
        try:
            self._sink.bulk_insert(batch)
        except Exception as exc:
            record_commit_failure(self._stream)
            logger.exception(
                "BatchingConsumer: falló el flush del remanente",
                extra={"stream": self._stream, "reason": reason, "size": len(batch)},
            )
            raise CommitError(
                f"Flush ({reason}) failed on {self._stream}: {exc}",
                original_error=exc,
            ) from exc

        self._buffer.clear()
        self._oldest_at = None
        record_batch_committed(self._stream, len(batch))
        set_buffered_records(self._stream, 0)
        logger.info(
            "BatchingConsumer: remanente escrito",
            extra={"stream": self._stream, "reason": reason, "size": len(batch)},
        )
        return len(batch)

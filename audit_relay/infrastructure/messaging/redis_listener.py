"""
===============================================================================
ARCHIVO: infrastructure/messaging/redis_listener.py
===============================================================================

CRC CARD (Class)
-------------------------------------------------------------------------------
Clase:
    RedisStreamListener

Responsabilidades:
    - Leer entregas de UNA partición (stream) con XREADGROUP.
    - Decodificar entradas; las ilegibles (poison) se loguean y se confirman.
    - Entregar el lote al handler (BatchingConsumer.on_delivery).
    - Confirmar (XACK) sólo si el handler retornó normalmente.
    - Tras un fallo, releer las entradas pendientes propias (id "0") para que
      la entrega completa se redelivere.

Colaboradores:
    - redis.Redis (decode_responses=True)
    - codec.decode_* (decoder inyectado)
    - crosscutting.metrics.record_delivery

Notas:
    - Un listener por partición: el orden dentro de la partición se respeta
      porque cada listener procesa sus entregas de forma secuencial.
===============================================================================
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from redis.exceptions import RedisError, ResponseError

from ...crosscutting.exceptions import MessageDecodeError
from ...crosscutting.logger import logger
from ...crosscutting.metrics import record_delivery

T = TypeVar("T")

PAYLOAD_FIELD = "payload"


class RedisStreamListener(Generic[T]):
    def __init__(
        self,
        *,
        redis: Any,
        stream: str,
        group: str,
        consumer: str,
        handler: Callable[[Sequence[T]], None],
        decoder: Callable[[str], T],
        max_records: int = 500,
        block_ms: int = 500,
        backoff_seconds: float = 1.0,
    ) -> None:
        self._redis = redis
        self._stream = stream
        self._group = group
        self._consumer = consumer
        self._handler = handler
        self._decoder = decoder
        self._max_records = max_records
        self._block_ms = block_ms
        self._backoff_seconds = backoff_seconds
        # Al arrancar puede haber entregas sin confirmar de una corrida previa.
        self._read_pending = True
        self._last_delivery_failed = False

    @property
    def stream(self) -> str:
        return self._stream

    def ensure_group(self) -> None:
        """Crea el consumer group (y el stream) si no existe."""
        try:
            self._redis.xgroup_create(self._stream, self._group, id="0", mkstream=True)
            logger.info(
                "Consumer group creado",
                extra={"stream": self._stream, "group": self._group},
            )
        except ResponseError as exc:
            if "BUSYGROUP" not in str(exc):
                raise

    def poll_once(self) -> int:
        """
        Lee y procesa una entrega.

        Returns:
            Cantidad de entradas confirmadas (0 si no hubo o si falló el handler).
        """
        self._last_delivery_failed = False
        read_pending = self._read_pending
        response = self._redis.xreadgroup(
            self._group,
            self._consumer,
            {self._stream: "0" if read_pending else ">"},
            count=self._max_records,
            block=None if read_pending or self._block_ms <= 0 else self._block_ms,
        )
        entries = _entries_of(response)

        if not entries:
            if read_pending:
                self._read_pending = False
            return 0

        records, entry_ids = self._decode(entries)
        if not records:
            return 0

        try:
            self._handler(records)
        except Exception as exc:
            self._read_pending = True
            self._last_delivery_failed = True
            record_delivery(self._stream, "redelivery")
            logger.warning(
                "Listener: entrega NO confirmada, se redeliverá",
                extra={
                    "stream": self._stream,
                    "entries": len(entry_ids),
                    "error": str(exc),
                },
            )
            return 0

        self._redis.xack(self._stream, self._group, *entry_ids)
        record_delivery(self._stream, "acked")
        logger.debug(
            "Listener: entrega confirmada",
            extra={
                "stream": self._stream,
                "entries": len(entry_ids),
                "first_id": entry_ids[0],
                "last_id": entry_ids[-1],
                "pending_replay": read_pending,
            },
        )
        return len(entry_ids)

    def _decode(self, entries: list[tuple[str, dict]]) -> tuple[list[T], list[str]]:
        records: list[T] = []
        entry_ids: list[str] = []
        poison: list[str] = []

        for entry_id, fields in entries:
            # Entradas ya recortadas del stream llegan con fields vacíos.
            payload = (fields or {}).get(PAYLOAD_FIELD)
            try:
                if payload is None:
                    raise MessageDecodeError("Entry without payload")
                records.append(self._decoder(payload))
                entry_ids.append(entry_id)
            except MessageDecodeError as exc:
                poison.append(entry_id)
                logger.error(
                    "Listener: mensaje inválido, se descarta",
                    extra={
                        "stream": self._stream,
                        "entry_id": entry_id,
                        "error": exc.message,
                    },
                )

        if poison:
            self._redis.xack(self._stream, self._group, *poison)
            record_delivery(self._stream, "poison")

        return records, entry_ids

    def run(self, stop_event: threading.Event) -> None:
        """Loop hasta stop_event; error de Redis o entrega rechazada → backoff."""
        logger.info(
            "Listener iniciado",
            extra={"stream": self._stream, "consumer": self._consumer},
        )
        while not stop_event.is_set():
            try:
                self.poll_once()
            except RedisError as exc:
                logger.warning(
                    "Listener: error de Redis, reintentando",
                    extra={"stream": self._stream, "error": str(exc)},
                )
                stop_event.wait(self._backoff_seconds)
                continue
            if self._last_delivery_failed:
                stop_event.wait(self._backoff_seconds)
        logger.info("Listener detenido", extra={"stream": self._stream})


def _entries_of(response: Any) -> list[tuple[str, dict]]:
    """[[stream, [(id, fields), ...]], ...] -> [(id, fields), ...]"""
    if not response:
        return []

    entries: list[tuple[str, dict]] = []
    for _stream, batch in response:
        entries.extend((entry_id, fields) for entry_id, fields in batch)
    return entries

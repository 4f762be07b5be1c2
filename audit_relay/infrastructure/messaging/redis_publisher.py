"""
===============================================================================
ARCHIVO: infrastructure/messaging/redis_publisher.py
===============================================================================

CRC CARD (Class)
-------------------------------------------------------------------------------
Clase:
    RedisStreamPublisher (Adapter)

Responsabilidades:
    - Implementar el puerto EventPublisher sobre Redis Streams (XADD).
    - Elegir la partición con la clave del evento (orden por entidad).
    - Enviar de forma asíncrona y loguear el resultado en un callback de
      completado. Un ThreadPoolExecutor de un solo thread por partición:
      los XADD de una partición salen en el orden de publish().
    - Nunca levantar hacia el caller: un fallo de envío descarta el evento.

Colaboradores:
    - redis.Redis (inyectado desde el contenedor)
    - codec.encode_event
    - partitioning.partition_for / stream_name
    - crosscutting.metrics.record_event_published

Notas:
    - Sin reintentos: la durabilidad es responsabilidad del broker (AOF / réplica).
===============================================================================
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable

from ...crosscutting.exceptions import PublishError
from ...crosscutting.logger import logger
from ...crosscutting.metrics import record_event_published
from .codec import encode_event
from .partitioning import partition_for, stream_name


@dataclass(frozen=True)
class StreamConfig:
    """Topic lógico y cantidad de particiones.

    maxlen:
        Recorte aproximado de cada stream (None = sin recorte).
    """

    topic: str
    partitions: int = 3
    maxlen: int | None = None


class RedisStreamPublisher:
    """Publica eventos en "{topic}:{p}" con XADD asíncrono."""

    def __init__(
        self,
        *,
        redis: Any,
        config: StreamConfig,
        encoder: Callable[[Any], str] = encode_event,
    ) -> None:
        self._redis = redis
        self._config = _validate_config(config)
        self._encoder = encoder
        self._senders = [
            ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix=f"publisher-{self._config.topic}-{p}",
            )
            for p in range(self._config.partitions)
        ]

        logger.info(
            "RedisStreamPublisher inicializado",
            extra={
                "topic": self._config.topic,
                "partitions": self._config.partitions,
            },
        )

    @property
    def topic(self) -> str:
        return self._config.topic

    def publish(self, event: Any) -> Future | None:
        """Encola el envío; devuelve el Future o None si el evento se descartó."""
        key = getattr(event, "partition_key", "")
        try:
            payload = self._encoder(event)
            partition = partition_for(key, self._config.partitions)
            stream = stream_name(self._config.topic, partition)
            future = self._senders[partition].submit(self._send, stream, key, payload)
        except Exception as exc:
            record_event_published(self._config.topic, "dropped")
            logger.warning(
                "Publisher: evento descartado antes del envío",
                extra={"topic": self._config.topic, "key": key, "error": str(exc)},
            )
            return None

        future.add_done_callback(
            partial(self._on_complete, stream=stream, partition=partition, key=key)
        )
        return future

    def _send(self, stream: str, key: str, payload: str) -> str:
        try:
            kwargs: dict[str, Any] = {}
            if self._config.maxlen:
                kwargs = {"maxlen": self._config.maxlen, "approximate": True}
            return self._redis.xadd(stream, {"key": key, "payload": payload}, **kwargs)
        except Exception as exc:
            raise PublishError(
                f"XADD failed on {stream}: {exc}", original_error=exc
            ) from exc

    def _on_complete(
        self, future: Future, *, stream: str, partition: int, key: str
    ) -> None:
        if future.cancelled():
            record_event_published(self._config.topic, "dropped")
            logger.warning(
                "Publisher: envío cancelado", extra={"stream": stream, "key": key}
            )
            return

        exc = future.exception()
        if exc is not None:
            record_event_published(self._config.topic, "failed")
            logger.warning(
                "Publisher: falló el envío, evento descartado",
                extra={"stream": stream, "key": key, "error": str(exc)},
            )
            return

        record_event_published(self._config.topic, "sent")
        logger.debug(
            "Publisher: evento enviado",
            extra={
                "stream": stream,
                "partition": partition,
                "entry_id": future.result(),
                "key": key,
            },
        )

    def close(self) -> None:
        """Espera los envíos en vuelo y libera los threads."""
        for sender in self._senders:
            sender.shutdown(wait=True)
        logger.info("RedisStreamPublisher cerrado", extra={"topic": self._config.topic})


def _validate_config(config: StreamConfig) -> StreamConfig:
    topic = (config.topic or "").strip()
    if not topic:
        raise ValueError("topic no puede ser vacío")
    if int(config.partitions) <= 0:
        raise ValueError("partitions debe ser > 0")
    return StreamConfig(
        topic=topic, partitions=int(config.partitions), maxlen=config.maxlen
    )

"""
In-Memory Event Log for testing and local development.

NOT FOR PRODUCTION USE - data is lost on restart.

Mimics the Redis Streams adapter: partitioned append-only logs, a committed
offset per partition, and dispatch() that only advances the offset when the
handler returns normally (so a failed delivery is redelivered in full).
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future
from typing import Any

from ...crosscutting.logger import logger
from ...crosscutting.metrics import record_delivery, record_event_published
from .partitioning import partition_for, stream_name


class InMemoryEventLog:
    """
    In-memory implementation of EventPublisher plus a delivery source.

    Useful for:
      - Unit testing
      - Local development without Redis
      - End-to-end pipeline tests
    """

    def __init__(self, *, topic: str, partitions: int = 3) -> None:
        if partitions <= 0:
            raise ValueError("partitions must be greater than 0")
        self._topic = topic
        self._partitions = partitions
        self._logs: list[list[Any]] = [[] for _ in range(partitions)]
        self._committed: list[int] = [0] * partitions
        self._lock = threading.Lock()
        self._closed = False

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def partitions(self) -> int:
        return self._partitions

    def publish(self, event: Any) -> Future | None:
        if self._closed:
            record_event_published(self._topic, "dropped")
            logger.warning("InMemoryEventLog cerrado, evento descartado")
            return None

        partition = partition_for(getattr(event, "partition_key", ""), self._partitions)
        with self._lock:
            self._logs[partition].append(event)
            offset = len(self._logs[partition]) - 1

        record_event_published(self._topic, "sent")
        future: Future = Future()
        future.set_result(f"{stream_name(self._topic, partition)}@{offset}")
        return future

    def dispatch(
        self,
        handler: Callable[[Sequence[Any]], None],
        *,
        partition: int | None = None,
        max_records: int = 500,
    ) -> int:
        """
        Entrega lo no confirmado de cada partición al handler.

        Returns:
            Cantidad de registros confirmados. Si el handler levanta, la
            excepción se propaga y el offset no avanza.
        """
        targets = range(self._partitions) if partition is None else [partition]
        acked = 0
        for p in targets:
            with self._lock:
                start = self._committed[p]
                records = list(self._logs[p][start : start + max_records])
            if not records:
                continue

            try:
                handler(records)
            except Exception:
                record_delivery(stream_name(self._topic, p), "redelivery")
                raise

            with self._lock:
                self._committed[p] = start + len(records)
            record_delivery(stream_name(self._topic, p), "acked")
            acked += len(records)
        return acked

    # -------------------------------------------------------------------------
    # Testing helpers
    # -------------------------------------------------------------------------
    def events(self, partition: int | None = None) -> list[Any]:
        with self._lock:
            if partition is not None:
                return list(self._logs[partition])
            return [event for log in self._logs for event in log]

    def committed_offset(self, partition: int) -> int:
        with self._lock:
            return self._committed[partition]

    def lag(self) -> int:
        with self._lock:
            return sum(
                len(log) - committed
                for log, committed in zip(self._logs, self._committed)
            )

    def close(self) -> None:
        self._closed = True

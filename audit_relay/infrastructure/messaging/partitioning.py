"""
Particionado de topics en streams de Redis.

Un topic lógico se reparte en N streams "{topic}:{p}". La partición se deriva
de la clave del evento con crc32, así todos los eventos de una misma entidad
caen siempre en el mismo stream (orden por entidad, no global).
"""

from __future__ import annotations

import zlib


def partition_for(key: str, partitions: int) -> int:
    if partitions <= 0:
        raise ValueError("partitions must be greater than 0")
    return zlib.crc32(key.encode("utf-8")) % partitions


def stream_name(topic: str, partition: int) -> str:
    return f"{topic}:{partition}"


def stream_names(topic: str, partitions: int) -> list[str]:
    return [stream_name(topic, p) for p in range(partitions)]

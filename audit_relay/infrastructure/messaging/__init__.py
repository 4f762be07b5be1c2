"""
===============================================================================
SUBSISTEMA: Infraestructura / Messaging
===============================================================================

CRC CARD (Package)
-------------------------------------------------------------------------------
Responsabilidades:
    - Exponer el message log durable (Redis Streams) y su doble en memoria.
    - Exponer el codec del envelope JSON.

Colaboradores:
    - redis_publisher.RedisStreamPublisher
    - redis_listener.RedisStreamListener
    - in_memory.InMemoryEventLog
    - codec
===============================================================================
"""

from .codec import (
    AuditEventMessage,
    ExceptionEventMessage,
    decode_audit_event,
    decode_exception_event,
    encode_audit_event,
    encode_event,
    encode_exception_event,
)
from .in_memory import InMemoryEventLog
from .partitioning import partition_for, stream_name, stream_names
from .redis_listener import RedisStreamListener
from .redis_publisher import RedisStreamPublisher, StreamConfig

__all__ = [
    "AuditEventMessage",
    "ExceptionEventMessage",
    "decode_audit_event",
    "decode_exception_event",
    "encode_audit_event",
    "encode_exception_event",
    "encode_event",
    "InMemoryEventLog",
    "partition_for",
    "stream_name",
    "stream_names",
    "RedisStreamListener",
    "RedisStreamPublisher",
    "StreamConfig",
]

"""
===============================================================================
TARJETA CRC — audit_relay/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer el pipeline: store primario → interceptor → publisher → log →
    listeners → batch consumers → audit store.
  - Registrar el interceptor en los hooks del store (en vez de registro estático).
  - Mantener singletons con caching (lru_cache) para recursos pesados.
  - Elegir adapters según Settings: in-memory en test, Redis/Postgres en runtime.

Colaboradores:
  - crosscutting.config.get_settings
  - application.* (interceptor, consumer, reporter)
  - infrastructure.* (Redis Streams, Postgres, in-memory)

Patrones aplicados:
  - Composition Root
  - Lazy singletons con lru_cache

Notas:
  - Este archivo NO contiene lógica de negocio.
  - Este archivo NO depende de FastAPI (solo expone factories).
===============================================================================
"""

from __future__ import annotations

import os
import socket
from functools import lru_cache
from typing import Any

from redis import Redis

from .application import BatchingConsumer, ExceptionReporter, MutationInterceptor
from .crosscutting.config import get_settings
from .domain.audit import AuditEvent, ExceptionEvent
from .domain.repositories import (
    AuditLogRepository,
    EntityLookup,
    ExceptionLogRepository,
)
from .domain.services import EventPublisher
from .infrastructure.messaging import (
    InMemoryEventLog,
    RedisStreamListener,
    RedisStreamPublisher,
    StreamConfig,
    decode_audit_event,
    decode_exception_event,
    stream_names,
)
from .infrastructure.repositories import (
    InMemoryAuditLogRepository,
    InMemoryEntityStore,
    InMemoryExceptionLogRepository,
    PostgresAuditLogRepository,
    PostgresEntityStore,
    PostgresExceptionLogRepository,
)

# =============================================================================
# Helpers internos
# =============================================================================


def _is_test_env() -> bool:
    """app_env ∈ {"test", "testing", "ci"} => in-memory adapters."""
    return get_settings().is_test()


def _use_redis() -> bool:
    return not _is_test_env() and bool(get_settings().redis_url.strip())


def get_consumer_name() -> str:
    """Nombre dentro del consumer group (hostname-pid si no se configuró)."""
    configured = get_settings().consumer_name.strip()
    return configured or f"{socket.gethostname()}-{os.getpid()}"


# =============================================================================
# Redis
# =============================================================================


@lru_cache(maxsize=1)
def get_redis() -> Redis:
    settings = get_settings()
    # socket_timeout debe superar el block de XREADGROUP.
    read_timeout = max(5.0, settings.consumer_block_ms / 1000 + 5.0)
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=read_timeout,
        health_check_interval=30,
    )


# =============================================================================
# Publishers (singletons)
# =============================================================================


def _build_publisher(topic: str) -> EventPublisher:
    settings = get_settings()
    if not _use_redis():
        return InMemoryEventLog(topic=topic, partitions=settings.stream_partitions)
    return RedisStreamPublisher(
        redis=get_redis(),
        config=StreamConfig(topic=topic, partitions=settings.stream_partitions),
    )


@lru_cache(maxsize=1)
def get_audit_publisher() -> EventPublisher:
    return _build_publisher(get_settings().audit_topic)


@lru_cache(maxsize=1)
def get_exception_publisher() -> EventPublisher:
    return _build_publisher(get_settings().exception_topic)


def close_publishers() -> None:
    """Cierra sólo los publishers ya construidos (espera envíos en vuelo)."""
    for factory in (get_audit_publisher, get_exception_publisher):
        if factory.cache_info().currsize:
            factory().close()


# =============================================================================
# Repositorios (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_audit_log_repository() -> AuditLogRepository:
    if _is_test_env():
        return InMemoryAuditLogRepository()
    return PostgresAuditLogRepository()


@lru_cache(maxsize=1)
def get_exception_log_repository() -> ExceptionLogRepository:
    if _is_test_env():
        return InMemoryExceptionLogRepository()
    return PostgresExceptionLogRepository()


def build_mutation_interceptor(lookup: EntityLookup) -> MutationInterceptor:
    settings = get_settings()
    return MutationInterceptor(
        lookup=lookup,
        publisher=get_audit_publisher(),
        excluded_collections=settings.get_excluded_collections(),
        default_actor=settings.default_actor,
    )


@lru_cache(maxsize=1)
def get_entity_store() -> InMemoryEntityStore | PostgresEntityStore:
    """Store primario con el interceptor ya enganchado a sus hooks."""
    store: Any = InMemoryEntityStore() if _is_test_env() else PostgresEntityStore()
    store.hooks.register(build_mutation_interceptor(store))
    return store


# =============================================================================
# Captura de excepciones
# =============================================================================


@lru_cache(maxsize=1)
def get_exception_reporter() -> ExceptionReporter:
    return ExceptionReporter(get_exception_publisher())


# =============================================================================
# Consumo (worker)
# =============================================================================


@lru_cache(maxsize=1)
def get_audit_consumer() -> BatchingConsumer[AuditEvent]:
    settings = get_settings()
    return BatchingConsumer(
        get_audit_log_repository(),
        batch_size=settings.consumer_batch_size,
        stream=settings.audit_topic,
    )


@lru_cache(maxsize=1)
def get_exception_consumer() -> BatchingConsumer[ExceptionEvent]:
    settings = get_settings()
    return BatchingConsumer(
        get_exception_log_repository(),
        batch_size=settings.consumer_batch_size,
        stream=settings.exception_topic,
    )


def build_listeners() -> list[RedisStreamListener]:
    """Un listener por partición por stream (audit + exception)."""
    settings = get_settings()
    redis = get_redis()
    consumer = get_consumer_name()

    wiring = (
        (settings.audit_topic, get_audit_consumer(), decode_audit_event),
        (settings.exception_topic, get_exception_consumer(), decode_exception_event),
    )

    listeners: list[RedisStreamListener] = []
    for topic, batch_consumer, decoder in wiring:
        for stream in stream_names(topic, settings.stream_partitions):
            listeners.append(
                RedisStreamListener(
                    redis=redis,
                    stream=stream,
                    group=settings.consumer_group,
                    consumer=consumer,
                    handler=batch_consumer.on_delivery,
                    decoder=decoder,
                    max_records=settings.consumer_max_poll_records,
                    block_ms=settings.consumer_block_ms,
                )
            )
    return listeners


def reset_container() -> None:
    """Limpia los singletons (tests)."""
    for factory in (
        get_redis,
        get_audit_publisher,
        get_exception_publisher,
        get_audit_log_repository,
        get_exception_log_repository,
        get_entity_store,
        get_exception_reporter,
        get_audit_consumer,
        get_exception_consumer,
    ):
        factory.cache_clear()

"""
===============================================================================
ARCHIVO: crosscutting/metrics.py
===============================================================================

CRC CARD (Módulo)
-------------------------------------------------------------------------------
Nombre:
    Métricas (Prometheus) del pipeline de auditoría

Responsabilidades:
    - Definir métricas del relay: publicación, captura, commits, buffer, acks.
    - Proveer funciones pequeñas y estables para registrar eventos.
    - Cuidar cardinalidad (labels: stream / outcome / stage; NUNCA entity_id).
    - Exponer helpers para generar la respuesta /metrics.

Colaboradores:
    - application.mutation_interceptor: errores de captura.
    - infrastructure.messaging: publicaciones, acks y redeliveries.
    - application.batch_consumer: commits, fallos y tamaño del buffer.
    - crosscutting.middleware: latencia y conteo HTTP.
    - worker.worker_server / api.main: endpoint /metrics.

Decisiones:
    - Registry propio (no el global) para que tests e imports repetidos no choquen.
===============================================================================
"""

from __future__ import annotations

import re

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

_registry = CollectorRegistry()

# -----------------------------------------------------------------------------
# Captura + publicación
# -----------------------------------------------------------------------------
_events_published_total = Counter(
    "audit_events_published_total",
    "Eventos enviados al message log",
    ["stream", "outcome"],
    registry=_registry,
)

_capture_errors_total = Counter(
    "audit_capture_errors_total",
    "Errores tolerados durante la captura de mutaciones",
    ["stage"],
    registry=_registry,
)

# -----------------------------------------------------------------------------
# Consumo
# -----------------------------------------------------------------------------
_batches_committed_total = Counter(
    "audit_batches_committed_total",
    "Lotes escritos en el audit store",
    ["stream"],
    registry=_registry,
)

_records_committed_total = Counter(
    "audit_records_committed_total",
    "Registros escritos en el audit store",
    ["stream"],
    registry=_registry,
)

_commit_failures_total = Counter(
    "audit_commit_failures_total",
    "Bulk inserts fallidos",
    ["stream"],
    registry=_registry,
)

_buffered_records = Gauge(
    "audit_buffered_records",
    "Registros en buffer esperando completar un lote",
    ["stream"],
    registry=_registry,
)

_deliveries_total = Counter(
    "audit_deliveries_total",
    "Entregas procesadas por los listeners",
    ["stream", "outcome"],
    registry=_registry,
)

# -----------------------------------------------------------------------------
# HTTP
# -----------------------------------------------------------------------------
_requests_total = Counter(
    "audit_http_requests_total",
    "Total de requests HTTP",
    ["endpoint", "method", "status"],
    registry=_registry,
)

_request_latency = Histogram(
    "audit_http_request_latency_seconds",
    "Latencia de requests HTTP (segundos)",
    ["endpoint", "method"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=_registry,
)


def record_event_published(stream: str, outcome: str) -> None:
    """outcome: sent | failed | dropped."""
    _events_published_total.labels(stream=stream, outcome=outcome).inc()


def record_capture_error(stage: str) -> None:
    """stage: before_write | after_write | after_delete | exception."""
    _capture_errors_total.labels(stage=stage).inc()


def record_batch_committed(stream: str, size: int) -> None:
    _batches_committed_total.labels(stream=stream).inc()
    _records_committed_total.labels(stream=stream).inc(size)


def record_commit_failure(stream: str) -> None:
    _commit_failures_total.labels(stream=stream).inc()


def set_buffered_records(stream: str, count: int) -> None:
    _buffered_records.labels(stream=stream).set(count)


def record_delivery(stream: str, outcome: str) -> None:
    """outcome: acked | redelivery | poison."""
    _deliveries_total.labels(stream=stream, outcome=outcome).inc()


def record_request_metrics(
    endpoint: str,
    method: str,
    status_code: int,
    latency_seconds: float,
) -> None:
    """Registra métricas HTTP.

    - endpoint se normaliza para no explotar cardinalidad.
    - status se agrupa por 2xx/4xx/5xx.
    """
    normalized = _normalize_endpoint(endpoint)
    _requests_total.labels(
        endpoint=normalized, method=method, status=_status_bucket(status_code)
    ).inc()
    _request_latency.labels(endpoint=normalized, method=method).observe(
        latency_seconds
    )


_UUID_RE = re.compile(
    r"[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}"
)
_NUM_RE = re.compile(r"/\d+(?=/|$)")


def _normalize_endpoint(path: str) -> str:
    path = _UUID_RE.sub("{id}", path)
    return _NUM_RE.sub("/{n}", path)


def _status_bucket(code: int) -> str:
    if 200 <= code < 300:
        return "2xx"
    if 300 <= code < 400:
        return "3xx"
    if 400 <= code < 500:
        return "4xx"
    if code >= 500:
        return "5xx"
    return "other"


def get_metrics_response() -> tuple[bytes, str]:
    """Genera el body y content-type para /metrics."""
    return generate_latest(_registry), CONTENT_TYPE_LATEST

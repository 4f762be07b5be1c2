"""
===============================================================================
TARJETA CRC — worker/worker_server.py (HTTP operativo del consumer worker)
===============================================================================

Rutas:
  GET /healthz  → health_payload (listeners vivos, buffers, pool)
  GET /readyz   → readiness_payload (503 si Redis o DB no responden)
  GET /metrics  → exposición Prometheus

Notas:
  - http.server en un thread daemon; si el puerto está ocupado el worker
    sigue corriendo sin endpoints.
===============================================================================
"""

from __future__ import annotations

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable
from urllib.parse import urlparse

from ..crosscutting.logger import logger
from ..crosscutting.metrics import get_metrics_response
from .worker_health import StatusProvider, health_payload, readiness_payload

Response = tuple[int, str, bytes]


def _json(status: int, payload: dict) -> Response:
    return status, "application/json", json.dumps(payload).encode("utf-8")


def build_routes(
    status_provider: StatusProvider | None = None,
) -> dict[str, Callable[[], Response]]:
    def healthz() -> Response:
        return _json(200, health_payload(status_provider))

    def readyz() -> Response:
        payload = readiness_payload()
        return _json(200 if payload["ok"] else 503, payload)

    def metrics() -> Response:
        body, content_type = get_metrics_response()
        return 200, content_type, body

    return {"/healthz": healthz, "/readyz": readyz, "/metrics": metrics}


def _handler_for(routes: dict[str, Callable[[], Response]]):
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            route = routes.get(urlparse(self.path).path)
            status, content_type, body = (
                route() if route else (404, "text/plain", b"not found")
            )
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args) -> None:
            logger.debug("Worker HTTP request", extra={"path": self.path})

    return Handler


def start_worker_http_server(
    port: int, status_provider: StatusProvider | None = None
) -> ThreadingHTTPServer | None:
    """Devuelve el server corriendo, o None si no pudo hacer bind."""
    handler = _handler_for(build_routes(status_provider))
    try:
        server = ThreadingHTTPServer(("0.0.0.0", port), handler)
    except OSError as exc:
        logger.warning(
            "Worker HTTP server no pudo iniciar", extra={"port": port, "error": str(exc)}
        )
        return None

    threading.Thread(
        target=server.serve_forever, name="worker-http", daemon=True
    ).start()
    logger.info("Worker HTTP server iniciado", extra={"port": port})
    return server


__all__ = ["build_routes", "start_worker_http_server"]

# audit_relay/crosscutting/middleware.py
"""
===============================================================================
MÓDULO: Middlewares HTTP (contexto del actor + captura de excepciones)
===============================================================================

Objetivo
--------
1) AuditContextMiddleware:
   - Generar/propagar request_id
   - Setear el Context Carrier (actor + correlación) al inicio del request
   - Limpiarlo SIEMPRE al final (evita filtrar identidad entre requests)
   - Log y métricas por request

2) ExceptionCaptureMiddleware:
   - Reportar excepciones no manejadas al stream de excepciones
   - Re-lanzar siempre: el reporte nunca enmascara el error original

Orden de registro
-----------------
  app.add_middleware(ExceptionCaptureMiddleware)
  app.add_middleware(AuditContextMiddleware)   # último = más externo

Así la captura corre con el contexto del actor todavía seteado.

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Colaboradores:
  - audit_relay/context.py
  - application/exception_capture.py
  - crosscutting/metrics.py
===============================================================================
"""

from __future__ import annotations

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..application.exception_capture import ExceptionReporter
from ..context import clear_context, set_actor_field, set_request_context
from .logger import logger
from .metrics import record_request_metrics


def resolve_client_ip(request: Request) -> str | None:
    """X-Forwarded-For (primer hop) → X-Real-IP → peer."""
    forwarded = (request.headers.get("x-forwarded-for") or "").strip()
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    return request.client.host if request.client else None


class AuditContextMiddleware(BaseHTTPMiddleware):
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      AuditContextMiddleware

    Responsabilidades:
      - Generar/aceptar X-Request-Id
      - Setear identidad: X-Username (default "anonymous"), X-User-Id,
        X-Organization-Id, dominio (Host) e IP de origen
      - Emitir logs y métricas por request
      - Garantizar clear_context() en toda salida
    ----------------------------------------------------------------------------
    """

    _QUIET_PATHS = {"/healthz", "/metrics"}

    def __init__(self, app, anonymous_actor: str | None = None):
        super().__init__(app)
        if anonymous_actor is None:
            from .config import get_settings

            anonymous_actor = get_settings().anonymous_actor
        self._anonymous_actor = anonymous_actor

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = (request.headers.get("x-request-id") or "").strip()
        request_id = (
            incoming if self._is_valid_request_id(incoming) else str(uuid.uuid4())
        )

        set_request_context(
            request_id=request_id, method=request.method, path=request.url.path
        )
        set_actor_field(
            "username",
            (request.headers.get("x-username") or "").strip()
            or self._anonymous_actor,
        )
        set_actor_field("user_id", request.headers.get("x-user-id"))
        set_actor_field("organization_id", request.headers.get("x-organization-id"))
        set_actor_field("url_domain", request.url.hostname)
        set_actor_field("source_ip", resolve_client_ip(request))

        request.state.request_id = request_id

        start = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-Id"] = request_id
            return response
        except Exception:
            latency = time.perf_counter() - start
            logger.exception(
                "request falló",
                extra={"status_code": 500, "latency_ms": round(latency * 1000, 2)},
            )
            raise
        finally:
            latency = time.perf_counter() - start
            record_request_metrics(
                endpoint=request.url.path,
                method=request.method,
                status_code=status_code,
                latency_seconds=latency,
            )

            if request.url.path not in self._QUIET_PATHS:
                logger.info(
                    "request completado",
                    extra={
                        "status_code": status_code,
                        "latency_ms": round(latency * 1000, 2),
                    },
                )

            clear_context()

    @staticmethod
    def _is_valid_request_id(value: str) -> bool:
        return bool(value) and len(value) <= 128


def _default_reporter() -> ExceptionReporter:
    from ..container import get_exception_reporter

    return get_exception_reporter()


class ExceptionCaptureMiddleware(BaseHTTPMiddleware):
    """Reporta la excepción no manejada y la re-lanza."""

    def __init__(
        self,
        app,
        reporter_factory: Callable[[], ExceptionReporter] | None = None,
    ):
        super().__init__(app)
        self._reporter_factory = reporter_factory or _default_reporter

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            self._report(request, exc)
            raise

    def _report(self, request: Request, exc: Exception) -> None:
        try:
            reporter = self._reporter_factory()
        except Exception as factory_exc:
            logger.warning(
                "ExceptionCapture: reporter no disponible",
                extra={"error": str(factory_exc)},
            )
            return

        reporter.report(
            exc,
            request_url=str(request.url),
            request_method=request.method,
            request_parameters=str(request.query_params) or None,
        )

"""
===============================================================================
TARJETA CRC — application/exception_capture.py (Captura de excepciones)
===============================================================================

Responsabilidades:
  - Convertir una excepción no manejada en un ExceptionEvent.
  - Ubicar el origen (clase / método) en el frame más interno del traceback.
  - Adjuntar datos del request y la identidad del actor actual.
  - Publicar al stream de excepciones sin enmascarar el error original.

Colaboradores:
  - crosscutting.middleware.ExceptionCaptureMiddleware
  - domain.services.EventPublisher
  - audit_relay.context.current_actor

Notas:
  - class_name = "<módulo>.<Clase>" cuando el frame es un método; si es una
    función de módulo queda "<módulo>".
===============================================================================
"""

from __future__ import annotations

import traceback
from collections.abc import Callable
from datetime import datetime, timezone
from types import TracebackType

from ..context import current_actor
from ..crosscutting.logger import logger
from ..crosscutting.metrics import record_capture_error
from ..domain.audit import ExceptionEvent
from ..domain.services import EventPublisher


def _innermost_frame(tb: TracebackType | None) -> TracebackType | None:
    while tb is not None and tb.tb_next is not None:
        tb = tb.tb_next
    return tb


def exception_origin(exc: BaseException) -> tuple[str | None, str | None]:
    """(class_name, method_name) del frame donde se levantó la excepción."""
    tb = _innermost_frame(exc.__traceback__)
    if tb is None:
        return None, None

    frame = tb.tb_frame
    code = frame.f_code
    module = frame.f_globals.get("__name__")
    qualname = getattr(code, "co_qualname", code.co_name)

    owner, _, method = qualname.rpartition(".")
    owner = owner.replace(".<locals>", "")
    if owner:
        class_name = f"{module}.{owner}" if module else owner
    else:
        class_name = module
    return class_name, method or code.co_name


def build_exception_event(
    exc: BaseException,
    *,
    request_url: str | None = None,
    request_method: str | None = None,
    request_parameters: str | None = None,
    http_status: int | None = 500,
    description: str = "Unhandled exception",
    timestamp: datetime | None = None,
) -> ExceptionEvent:
    class_name, method_name = exception_origin(exc)
    return ExceptionEvent(
        exception_type=type(exc).__name__,
        exception_message=str(exc) or None,
        stack_trace="".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        ),
        timestamp=timestamp or datetime.now(timezone.utc),
        class_name=class_name,
        method_name=method_name,
        request_url=request_url,
        request_method=request_method,
        request_parameters=request_parameters or None,
        actor=current_actor(),
        http_status=http_status,
        description=description,
    )


class ExceptionReporter:
    """Publica ExceptionEvent; nunca levanta."""

    def __init__(
        self,
        publisher: EventPublisher,
        *,
        builder: Callable[..., ExceptionEvent] = build_exception_event,
    ):
        self._publisher = publisher
        self._builder = builder

    def report(self, exc: BaseException, **request_info) -> ExceptionEvent | None:
        try:
            event = self._builder(exc, **request_info)
        except Exception as build_exc:
            record_capture_error("exception")
            logger.warning(
                "ExceptionReporter: no se pudo construir el evento",
                extra={"exception_type": type(exc).__name__, "error": str(build_exc)},
            )
            return None

        try:
            self._publisher.publish(event)
        except Exception as pub_exc:
            record_capture_error("exception")
            logger.warning(
                "ExceptionReporter: falló la publicación, evento descartado",
                extra={"exception_type": event.exception_type, "error": str(pub_exc)},
            )
        return event

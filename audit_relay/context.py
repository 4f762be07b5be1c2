"""
===============================================================================
TARJETA CRC — audit_relay/context.py (Contexto por request / job)
===============================================================================

Responsabilidades:
  - Transportar la identidad del actor (username, user_id, organization_id,
    url_domain, source_ip) desde el borde de la operación hasta el interceptor.
  - Mantener contexto de correlación para logs (request_id, method, path).
  - Garantizar liberación en toda salida vía actor_scope() / clear_context().

Colaboradores:
  - crosscutting.middleware: setea contexto al inicio del request y lo limpia.
  - crosscutting.logger: enriquece logs leyendo get_context_dict().
  - application.mutation_interceptor / exception_capture: leen current_actor().
  - worker.consumer: usa actor_scope() para tareas de fondo.

Patrones aplicados:
  - Ambient Context (controlado y explícito).
  - Async-safe “thread-local” (ContextVar): cada thread / task ve su propia copia.

Restricciones:
  - Valores de actor: str o None (None == “no seteado”).
  - Correlación: defaults vacíos ("") para simplificar JSON.
===============================================================================
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Final

from .domain.audit import Actor

# =============================================================================
# Correlación (logs)
# =============================================================================

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
http_method_var: ContextVar[str] = ContextVar("http_method", default="")
http_path_var: ContextVar[str] = ContextVar("http_path", default="")

# =============================================================================
# Identidad del actor
# =============================================================================

username_var: ContextVar[str | None] = ContextVar("username", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
organization_id_var: ContextVar[str | None] = ContextVar(
    "organization_id", default=None
)
url_domain_var: ContextVar[str | None] = ContextVar("url_domain", default=None)
source_ip_var: ContextVar[str | None] = ContextVar("source_ip", default=None)

_ACTOR_VARS: Final[dict[str, ContextVar[str | None]]] = {
    "username": username_var,
    "user_id": user_id_var,
    "organization_id": organization_id_var,
    "url_domain": url_domain_var,
    "source_ip": source_ip_var,
}

ACTOR_FIELDS: Final[tuple[str, ...]] = tuple(_ACTOR_VARS)


def _actor_var(field: str) -> ContextVar[str | None]:
    try:
        return _ACTOR_VARS[field]
    except KeyError:
        raise KeyError(f"Campo de actor desconocido: {field!r}") from None


# =============================================================================
# API pública
# =============================================================================


def set_request_context(
    *, request_id: str = "", method: str = "", path: str = ""
) -> None:
    """
    Setea el contexto mínimo del request.

    Regla:
      - Strings vacíos significan “no disponible”.
    """
    request_id_var.set(request_id or "")
    http_method_var.set(method or "")
    http_path_var.set(path or "")


def set_actor_field(field: str, value: str | None) -> None:
    """Setea un campo del actor para la unidad de ejecución actual."""
    _actor_var(field).set(value or None)


def get_actor_field(field: str) -> str | None:
    """Valor actual del campo, o None si no fue seteado."""
    return _actor_var(field).get()


def current_actor() -> Actor:
    """Snapshot inmutable de la identidad actual."""
    return Actor(**{name: var.get() for name, var in _ACTOR_VARS.items()})


def clear_actor_context() -> None:
    """Resetea todos los campos del actor."""
    for var in _ACTOR_VARS.values():
        var.set(None)


@contextmanager
def actor_scope(**fields: str | None) -> Iterator[Actor]:
    """
    Adquisición con liberación garantizada.

    Al salir (éxito o excepción) cada campo vuelve a su valor previo, así un
    thread reutilizado de un pool nunca hereda la identidad de otra operación.
    """
    tokens: list[tuple[ContextVar[str | None], Token]] = []
    try:
        for name, value in fields.items():
            var = _actor_var(name)
            tokens.append((var, var.set(value or None)))
        yield current_actor()
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def get_context_dict() -> dict[str, str]:
    """
    Devuelve el contexto actual como dict, omitiendo claves vacías.

    Uso típico:
      - Enriquecimiento de logs estructurados.
    """
    ctx: dict[str, str] = {}

    if val := request_id_var.get():
        ctx["request_id"] = val
    if val := http_method_var.get():
        ctx["method"] = val
    if val := http_path_var.get():
        ctx["path"] = val
    if val := username_var.get():
        ctx["username"] = val
    if val := source_ip_var.get():
        ctx["source_ip"] = val

    return ctx


def clear_context() -> None:
    """
    Limpia todo el contexto al final del request/job.

    Importante:
      - Evita “filtración de identidad” entre operaciones en workers reutilizados.
    """
    request_id_var.set("")
    http_method_var.set("")
    http_path_var.set("")
    clear_actor_context()

"""
===============================================================================
MÓDULO: Logger estructurado (JSON) del pipeline de auditoría
===============================================================================

Cada línea es un objeto JSON con:
  - campos base (timestamp, level, logger, message, ubicación, thread, pid)
  - contexto de request/actor (request_id, username, source_ip, ...)
  - los `extra=` del call site, saneados
  - el bloque "exception" si el record trae exc_info

Los snapshots old_value / new_value pueden ser documentos enteros: se recortan
con un límite propio, más bajo que el del resto de strings. Credenciales
(passwords, tokens, URLs de conexión) nunca llegan al stream.
===============================================================================
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

_RESERVED: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

_SNAPSHOT_FIELDS = frozenset({"old_value", "new_value", "document"})


class _LogSanitizer:
    """Redacta credenciales y acota tamaño/profundidad de los extra."""

    SECRET_KEYS = frozenset(
        {
            "password",
            "password_hash",
            "secret",
            "token",
            "authorization",
            "api_key",
            "database_url",
            "redis_url",
        }
    )

    def __init__(
        self, *, text_limit: int = 4_000, snapshot_limit: int = 1_000, depth: int = 4
    ):
        self.text_limit = text_limit
        self.snapshot_limit = snapshot_limit
        self.depth = depth

    def field(self, key: str, value: Any) -> Any:
        if key in _SNAPSHOT_FIELDS:
            if not isinstance(value, str):
                value = json.dumps(
                    self._walk(value, key, 0), default=str, sort_keys=True
                )
            return self._clip(value, self.snapshot_limit)
        return self._walk(value, key, 0)

    def _walk(self, value: Any, key: str, level: int) -> Any:
        if key.lower() in self.SECRET_KEYS:
            return "***REDACTADO***"
        if level > self.depth:
            return "***TRUNCADO***"
        if value is None or isinstance(value, (bool, int, float)):
            return value
        if isinstance(value, str):
            return self._clip(value, self.text_limit)
        if isinstance(value, (bytes, bytearray)):
            return f"<bytes {len(value)}B>"
        if isinstance(value, dict):
            return {str(k): self._walk(v, str(k), level + 1) for k, v in value.items()}
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self._walk(v, key, level + 1) for v in value]
        return str(value)

    @staticmethod
    def _clip(text: str, limit: int) -> str:
        return text if len(text) <= limit else f"{text[:limit]}…(+{len(text) - limit})"


def _base_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
        "module": record.module,
        "function": record.funcName,
        "line": record.lineno,
        "thread": record.threadName,
        "pid": os.getpid(),
    }


def _extra_fields(record: logging.LogRecord, sanitizer: _LogSanitizer) -> dict:
    return {
        key: sanitizer.field(key, value)
        for key, value in record.__dict__.items()
        if key not in _RESERVED
    }


def _exception_fields(record: logging.LogRecord) -> dict[str, Any]:
    exc_type, exc_value, _ = record.exc_info
    return {
        "type": getattr(exc_type, "__name__", None),
        "message": str(exc_value) if exc_value is not None else None,
        "stacktrace": traceback.format_exception(*record.exc_info),
    }


class JSONFormatter(logging.Formatter):
    def __init__(self, sanitizer: _LogSanitizer | None = None):
        super().__init__()
        self.sanitizer = sanitizer or _LogSanitizer()

    def format(self, record: logging.LogRecord) -> str:
        from ..context import get_context_dict

        payload = _base_fields(record)
        payload.update(get_context_dict())
        payload.update(_extra_fields(record, self.sanitizer))
        if record.exc_info:
            payload["exception"] = _exception_fields(record)
        return json.dumps(
            payload, ensure_ascii=False, default=str, separators=(",", ":")
        )


def setup_logger(name: str = "audit-relay") -> logging.Logger:
    """Logger del proceso; idempotente ante reimports (un solo handler)."""
    from .config import get_settings

    settings = get_settings()
    log = logging.getLogger(name)
    level = (settings.log_level or "INFO").upper()
    log.setLevel(getattr(logging, level, logging.INFO))

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        if settings.log_json:
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(
                logging.Formatter("%(levelname)s [%(threadName)s] %(message)s")
            )
        log.addHandler(handler)

    return log


logger = setup_logger()

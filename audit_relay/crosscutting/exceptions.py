# audit_relay/crosscutting/exceptions.py
"""
===============================================================================
MÓDULO: Excepciones tipadas del pipeline de auditoría
===============================================================================

Objetivo
--------
Tener excepciones internas coherentes, con:
- error_code estable
- error_id para correlación con logs
- original_error encadenado

Semántica por tipo
------------------
- CaptureError: falla al tomar snapshot/serializar → se loguea, la captura degrada.
- PublishError: falla al enviar al log → se loguea, el evento se descarta.
- CommitError: falla el bulk insert → la entrega NO se confirma (redelivery).
- DatabaseError: errores de repositorios (conexión, query, timeout).
- MessageDecodeError: envelope inválido en el stream (poison message).

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  AuditRelayError + subclases

Colaboradores:
  - application.* (lanzan / capturan)
  - crosscutting/logger.py
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True)
class ErrorResponse:
    """Estructura mínima para reportar errores de forma consistente."""

    error_code: str
    message: str
    error_id: str

    def to_dict(self) -> dict:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "error_id": self.error_id,
        }


class AuditRelayError(Exception):
    """Base para errores internos del pipeline."""

    error_code: str = "AUDIT_RELAY_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error_code=self.error_code, message=self.message, error_id=self.error_id
        )


class CaptureError(AuditRelayError):
    """Snapshot o serialización fallida durante la captura."""

    error_code: str = "CAPTURE_ERROR"


class PublishError(AuditRelayError):
    """Envío al message log fallido."""

    error_code: str = "PUBLISH_ERROR"


class CommitError(AuditRelayError):
    """Bulk insert fallido durante el flush de un lote."""

    error_code: str = "COMMIT_ERROR"


class DatabaseError(AuditRelayError):
    """Errores de DB (conexión, query, timeout, pool)."""

    error_code: str = "DATABASE_ERROR"


class MessageDecodeError(AuditRelayError):
    """Envelope ilegible o inválido."""

    error_code: str = "MESSAGE_DECODE_ERROR"

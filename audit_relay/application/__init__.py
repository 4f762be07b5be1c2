"""
===============================================================================
APPLICATION LAYER (Public API / Exports)
===============================================================================

Expone los puntos de entrada estables de la capa de aplicación:
  - MutationInterceptor: captura de mutaciones del store primario
  - BatchingConsumer: buffer + commits de K registros
  - ExceptionReporter: captura de excepciones no manejadas
  - snapshots: JSON canónico para old/new snapshots
===============================================================================
"""

from .batch_consumer import DEFAULT_BATCH_SIZE, BatchingConsumer
from .exception_capture import (
    ExceptionReporter,
    build_exception_event,
    exception_origin,
)
from .mutation_interceptor import (
    DEFAULT_EXCLUDED_COLLECTIONS,
    MutationInterceptor,
    PendingCapture,
    entity_name_from_collection,
)
from .snapshots import canonical_json, snapshot_document, snapshot_entity

__all__ = [
    # Batch consumer
    "BatchingConsumer",
    "DEFAULT_BATCH_SIZE",
    # Exception capture
    "ExceptionReporter",
    "build_exception_event",
    "exception_origin",
    # Mutation interceptor
    "MutationInterceptor",
    "PendingCapture",
    "DEFAULT_EXCLUDED_COLLECTIONS",
    "entity_name_from_collection",
    # Snapshots
    "canonical_json",
    "snapshot_document",
    "snapshot_entity",
]

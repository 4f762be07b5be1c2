"""
In-Memory Repository Implementations.

For testing and local development. NOT FOR PRODUCTION.
Data is lost on process restart.
"""

from .audit_log import InMemoryAuditLogRepository
from .entity_store import InMemoryEntityStore
from .exception_log import InMemoryExceptionLogRepository

__all__ = [
    "InMemoryAuditLogRepository",
    "InMemoryExceptionLogRepository",
    "InMemoryEntityStore",
]

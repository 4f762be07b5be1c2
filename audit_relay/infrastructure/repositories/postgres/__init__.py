"""
PostgreSQL Repository Implementations.

Production implementations on psycopg + psycopg_pool.
"""

from .audit_log import PostgresAuditLogRepository
from .entity_store import PostgresEntityStore
from .exception_log import PostgresExceptionLogRepository

__all__ = [
    "PostgresAuditLogRepository",
    "PostgresExceptionLogRepository",
    "PostgresEntityStore",
]

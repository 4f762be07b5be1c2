"""Errores del ciclo de vida del pool; cuelgan de DatabaseError."""

from ...crosscutting.exceptions import DatabaseError


class DatabasePoolError(DatabaseError):
    error_code: str = "DATABASE_POOL_ERROR"


class PoolAlreadyInitializedError(DatabasePoolError):
    error_code: str = "POOL_ALREADY_OPEN"


class PoolNotInitializedError(DatabasePoolError):
    error_code: str = "POOL_NOT_OPEN"

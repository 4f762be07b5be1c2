"""Infra DB: pool por proceso + errores tipados."""

from .errors import (
    DatabasePoolError,
    PoolAlreadyInitializedError,
    PoolNotInitializedError,
)
from .pool import close_pool, get_pool, init_pool, pool_stats, reset_pool

__all__ = [
    "init_pool",
    "get_pool",
    "pool_stats",
    "close_pool",
    "reset_pool",
    "DatabasePoolError",
    "PoolAlreadyInitializedError",
    "PoolNotInitializedError",
]

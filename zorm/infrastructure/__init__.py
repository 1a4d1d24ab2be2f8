"""
Infrastructure package for zorm.

Centralizes database connectivity: the DB-API adapter sessions talk to, and
the connection factory (URLs, pooling, retries). Keep this layer focused on
I/O and resource management, decoupled from mapping logic.
"""

from zorm.infrastructure.db_factory import (
    PoolManager,
    connect,
    connect_from_pool,
    get_sync_pool,
)
from zorm.infrastructure.sql_client import (
    ResultCursor,
    ResultMetadata,
    SqlConnection,
    SqlStatement,
)

__all__ = [
    "PoolManager",
    "connect",
    "connect_from_pool",
    "get_sync_pool",
    "ResultCursor",
    "ResultMetadata",
    "SqlConnection",
    "SqlStatement",
]

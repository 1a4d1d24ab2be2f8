"""
Database connection factory for zorm sessions.

Opens DB-API connections from a URL (``sqlite3`` or ``psycopg``) or takes them
from a pooled data source, and wraps them as ``SqlConnection``. The
PoolManager singleton owns the lazily created PostgreSQL pool and closes it
on application exit.

Opening a connection is retried with tenacity for transient failures.
"""

from __future__ import annotations

import atexit
import sqlite3
import threading
from typing import Any, Optional

import psycopg
from psycopg_pool import ConnectionPool
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from zorm.config import get_settings
from zorm.exceptions import IllegalStateError, SqlError, ZormError
from zorm.infrastructure.sql_client import SqlConnection
from zorm.utils.logging import get_logger

logger = get_logger(__name__)

_TRANSIENT_ERRORS = (
    sqlite3.OperationalError,
    psycopg.OperationalError,
    psycopg.InterfaceError,
)


class PoolManager:
    """
    Thread-safe singleton for managing the PostgreSQL connection pool.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._sync_pool = None
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_sync_pool(
        self,
        conninfo: Optional[str] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ) -> ConnectionPool:
        """
        Get or create the synchronous connection pool.

        Parameters
        ----------
        conninfo : str, optional
            PostgreSQL URL; defaults to ``ZORM_DATABASE_URL``.
        min_size : int, optional
            Minimum number of idle connections to keep.
        max_size : int, optional
            Maximum total connections in the pool.

        Returns
        -------
        ConnectionPool
            The managed sync pool instance.
        """
        with self._lock:
            if self._sync_pool is None:
                settings = get_settings()
                url = conninfo or settings.database_url
                if driver_for_url(url) != "psycopg":
                    raise IllegalStateError(f"Pooling is only supported for PostgreSQL URLs: {url}")
                self._sync_pool = ConnectionPool(
                    conninfo=url,
                    min_size=min_size or settings.pool_min_size,
                    max_size=max_size or settings.pool_max_size,
                )
                logger.debug("Created connection pool", extra={"max_size": self._sync_pool.max_size})
            return self._sync_pool

    def close_all(self) -> None:
        """
        Close the managed pool and release resources.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            pool, self._sync_pool = self._sync_pool, None
        if pool is not None:
            pool.close()


def driver_for_url(url: str) -> str:
    """Return ``"sqlite3"`` or ``"psycopg"`` for a database URL."""
    if url.startswith(("postgresql://", "postgres://")):
        return "psycopg"
    if url.startswith("sqlite:") or "://" not in url:
        return "sqlite3"
    raise IllegalStateError(f"Unsupported database URL: {url}")


def _sqlite_path(url: str) -> str:
    if url.startswith("sqlite:///"):
        return url[len("sqlite:///"):]
    if url.startswith("sqlite://"):
        return url[len("sqlite://"):] or ":memory:"
    if url.startswith("sqlite:"):
        return url[len("sqlite:"):]
    return url


def _open_raw(url: str) -> Any:
    if driver_for_url(url) == "psycopg":
        return psycopg.connect(url)
    return sqlite3.connect(_sqlite_path(url))


def connect(url: str, retries: Optional[int] = None) -> SqlConnection:
    """
    Open a dedicated connection for ``url`` with automatic retry.

    Retries with exponential backoff for transient connection errors
    (``ZORM_CONNECT_RETRIES`` attempts by default).

    Raises
    ------
    SqlError
        If the connection fails after all retry attempts, or with a
        non-transient driver error (not retried).
    IllegalStateError
        If the URL names an unsupported database.
    """
    attempts = retries or get_settings().connect_retries
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        reraise=True,
    )
    try:
        raw = retrying(_open_raw, url)
    except ZormError:
        raise
    except Exception as exc:
        raise SqlError(None, f"Error opening a connection to {url}: {exc}") from exc
    logger.debug("Opened SQL connection", extra={"driver": driver_for_url(url)})
    return SqlConnection(raw)


def connect_from_pool(pool: Any) -> SqlConnection:
    """
    Take a connection from a pooled data source.

    ``pool`` is a ``psycopg_pool.ConnectionPool`` or any object offering
    ``getconn()``/``putconn(conn)``; closing the returned connection hands it
    back to the pool.
    """
    try:
        raw = pool.getconn()
    except Exception as exc:
        raise SqlError(None, f"Error taking a connection from the pool: {exc}") from exc
    return SqlConnection(raw, release=pool.putconn)


def get_sync_pool(
    conninfo: Optional[str] = None,
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
) -> ConnectionPool:
    """Get or create the synchronous connection pool via PoolManager."""
    manager = PoolManager()
    return manager.get_sync_pool(conninfo=conninfo, min_size=min_size, max_size=max_size)


__all__ = [
    "PoolManager",
    "connect",
    "connect_from_pool",
    "driver_for_url",
    "get_sync_pool",
]

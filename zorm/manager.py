"""
Process-wide defaults and session factory.

``Manager`` holds the connection source (a pooled data source or a database
URL), the default for lazy fetching on read, the ``"zorm"`` logger and the
session id counter. ``ThreadLocalManager`` keeps one current session per
thread.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import TYPE_CHECKING, Any, Optional

from zorm.config import get_settings
from zorm.exceptions import IllegalStateError
from zorm.infrastructure.db_factory import connect, connect_from_pool
from zorm.infrastructure.sql_client import SqlConnection

if TYPE_CHECKING:
    from zorm.session import Session


class Manager:
    """Class-level configuration shared by every session of the process."""

    _data_source: Any = None
    _database_url: Optional[str] = None
    _auto_fetching_fields_on_read: Optional[bool] = None
    _logger = logging.getLogger("zorm")
    _session_ids = itertools.count(1)
    _lock = threading.Lock()

    @classmethod
    def get_data_source(cls) -> Any:
        return cls._data_source

    @classmethod
    def set_data_source(cls, data_source: Any) -> None:
        """Use a pool (``getconn``/``putconn``) for new connections; it takes precedence over the URL."""
        cls._data_source = data_source

    @classmethod
    def get_database_url(cls) -> Optional[str]:
        return cls._database_url

    @classmethod
    def set_database_url(cls, url: Optional[str]) -> None:
        cls._database_url = url

    @classmethod
    def is_auto_fetching_fields_on_read(cls) -> bool:
        if cls._auto_fetching_fields_on_read is None:
            return get_settings().auto_fetching_fields_on_read
        return cls._auto_fetching_fields_on_read

    @classmethod
    def set_auto_fetching_fields_on_read(cls, value: bool) -> None:
        cls._auto_fetching_fields_on_read = value

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return cls._logger

    @classmethod
    def next_session_id(cls) -> int:
        with cls._lock:
            return next(cls._session_ids)

    @classmethod
    def get_new_session(cls, connection: Any = None) -> "Session":
        from zorm.session import Session

        return Session(connection)

    @classmethod
    def get_new_sql_connection(cls) -> SqlConnection:
        """
        Open a connection from the data source, else from the database URL.

        Raises
        ------
        IllegalStateError
            If neither a data source nor a URL is configured.
        """
        if cls._data_source is not None:
            return connect_from_pool(cls._data_source)
        if cls._database_url is None:
            raise IllegalStateError("A data source or a database URL must be set on the Manager")
        return connect(cls._database_url)

    @classmethod
    def configure_from_settings(cls) -> None:
        """Take the database URL from ``ZORM_DATABASE_URL``."""
        cls._database_url = get_settings().database_url

    @classmethod
    def reset(cls) -> None:
        """Forget the connection source and overrides; the id counter keeps running."""
        cls._data_source = None
        cls._database_url = None
        cls._auto_fetching_fields_on_read = None


class ThreadLocalManager:
    """One current session per thread."""

    _local = threading.local()

    @classmethod
    def get_new_session(cls, connection: Any = None) -> "Session":
        """Close the calling thread's current session, if any, and open a new one."""
        cls.close_session()
        session = Manager.get_new_session(connection)
        cls._local.session = session
        return session

    @classmethod
    def get_session(cls) -> Optional["Session"]:
        return getattr(cls._local, "session", None)

    @classmethod
    def close_session(cls) -> None:
        session = getattr(cls._local, "session", None)
        cls._local.session = None
        if session is not None:
            session.close()


__all__ = ["Manager", "ThreadLocalManager"]

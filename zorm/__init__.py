"""
zorm - a lightweight object-relational mapper.

Map tables to Record classes declared with field descriptors, then load,
change and save them through a Session that keeps an identity map:

- Records track which fields are loaded and which were modified
- Sessions fetch missing fields on demand and write only what changed
- SelectQuery composes SELECT statements fluently and materializes rows
  into records of the session

Connections come from any DB-API driver (sqlite3, psycopg) or a pool.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from zorm.config import Settings, get_settings
from zorm.domain import (
    BooleanField,
    Field,
    GenericField,
    IntField,
    Record,
    Schema,
    StringField,
    StringIntField,
)
from zorm.exceptions import (
    DuplicateLabelError,
    EmptySelectError,
    IllegalStateError,
    InsufficientColumnsError,
    InvalidSqlValueError,
    InvalidValueError,
    ObjectNotFoundError,
    PrimaryKeyViolationError,
    SqlError,
    ZormError,
)
from zorm.manager import Manager, ThreadLocalManager
from zorm.query import Expression, Join, SelectQuery
from zorm.session import Session
from zorm.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Mapping
    "Field",
    "GenericField",
    "StringField",
    "IntField",
    "StringIntField",
    "BooleanField",
    "Schema",
    "Record",
    # Sessions and queries
    "Manager",
    "ThreadLocalManager",
    "Session",
    "SelectQuery",
    "Expression",
    "Join",
    # Errors
    "ZormError",
    "IllegalStateError",
    "InvalidValueError",
    "InvalidSqlValueError",
    "ObjectNotFoundError",
    "PrimaryKeyViolationError",
    "InsufficientColumnsError",
    "EmptySelectError",
    "DuplicateLabelError",
    "SqlError",
    # Logging
    "configure_logging",
    "get_logger",
]

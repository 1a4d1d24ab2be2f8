"""
Error types raised by zorm.

Every failure is surfaced to the caller; nothing is recovered silently. Lower
level exceptions (driver errors, field decoders) are chained with ``raise ...
from`` so the original traceback stays available.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from zorm.domain.field import Field
    from zorm.domain.record import Record


class ZormError(Exception):
    """Base class for every error raised by zorm."""


class IllegalStateError(ZormError):
    """Operation not permitted in the current state of a session, record or schema."""


class InvalidValueError(ZormError):
    """A value failed the validation of the field it was assigned to."""

    def __init__(self, field: "Field", value: Any, reason: Optional[str] = None):
        self.field = field
        self.value = value
        self.reason = reason
        msg = f"Invalid value {value!r} for field {field}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidSqlValueError(ZormError):
    """A cell read from the database could not be decoded by its field."""

    def __init__(self, field: "Field", value: Any):
        self.field = field
        self.value = value
        super().__init__(f"Invalid SQL value {value!r} for field {field}")


class ObjectNotFoundError(ZormError):
    """The row backing a record is absent from the database."""

    def __init__(self, record: "Record"):
        self.record = record
        super().__init__(f"Record {record!r} is not found in the SQL database")


class PrimaryKeyViolationError(ZormError):
    """More than one row matched an id, so the id column is not a primary key."""

    def __init__(self, table: str, id_value: Any, count: int):
        self.table = table
        self.id_value = id_value
        self.count = count
        super().__init__(
            f"{count} rows matched id {id_value!r} in '{table}'. "
            "This means that the id field specified is not a primary key."
        )


class InsufficientColumnsError(ZormError):
    """The result set has fewer columns than the select groups need."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Insufficient columns returned by the query: expected at least "
            f"{expected}; actual: {actual}."
        )


class EmptySelectError(ZormError):
    """The query selects nothing."""

    def __init__(self) -> None:
        super().__init__(
            "The number of selected items is 0. "
            "This means that the select clause of the query was empty."
        )


class DuplicateLabelError(ZormError):
    """Two selected items resolve to the same result key."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Duplicate selected item name: {label}.")


class SqlError(ZormError):
    """The SQL client failed; carries the statement that was being run."""

    def __init__(self, sql: Optional[str], message: str = "SQL client error"):
        self.sql = sql
        if sql is not None:
            message = f"{message} while executing: {sql}"
        super().__init__(message)


__all__ = [
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
]

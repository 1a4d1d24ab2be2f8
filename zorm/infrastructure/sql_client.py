"""
SQL client interface consumed by the session and the select query.

Wraps any PEP 249 (DB-API 2.0) connection, e.g. ``sqlite3`` or ``psycopg``,
behind a small statement/cursor API:

- ``SqlConnection``: auto-commit check, commit, rollback, close (or release
  back to a pool), statement creation.
- ``SqlStatement``: ``execute_query`` returning a ``ResultCursor``,
  ``execute_update`` returning the affected row count, generated keys.
- ``ResultCursor``: a buffered, scrollable view of one result set with 1-based
  row and column positions and column labels.

Every driver failure is re-raised as ``SqlError`` carrying the SQL text.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence

from zorm.exceptions import IllegalStateError, SqlError


class ResultMetadata:
    """Column labels of a result set."""

    def __init__(self, labels: Sequence[str]) -> None:
        self._labels = list(labels)

    def get_column_count(self) -> int:
        return len(self._labels)

    def get_column_label(self, column: int) -> str:
        """Label of the 1-based column."""
        if not 1 <= column <= len(self._labels):
            raise IllegalStateError(f"Column {column} is out of range 1..{len(self._labels)}")
        return self._labels[column - 1]


class ResultCursor:
    """
    Scrollable cursor over buffered rows.

    The cursor starts before the first row; ``next()`` moves forward and
    reports whether it landed on a row, ``first()``/``last()`` jump.
    """

    def __init__(self, labels: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        self._metadata = ResultMetadata(labels)
        self._rows: List[Sequence[Any]] = list(rows)
        self._position = 0
        self._closed = False

    @property
    def metadata(self) -> ResultMetadata:
        return self._metadata

    def get_metadata(self) -> ResultMetadata:
        return self._metadata

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def next(self) -> bool:
        self._check_open()
        if self._position <= len(self._rows):
            self._position += 1
        return self._position <= len(self._rows)

    def first(self) -> bool:
        self._check_open()
        if not self._rows:
            return False
        self._position = 1
        return True

    def last(self) -> bool:
        self._check_open()
        if not self._rows:
            return False
        self._position = len(self._rows)
        return True

    def get_row(self) -> int:
        """1-based number of the current row, 0 when not on a row."""
        if 1 <= self._position <= len(self._rows):
            return self._position
        return 0

    def get_object(self, column: int) -> Any:
        """Cell of the 1-based column on the current row."""
        self._check_open()
        row = self.get_row()
        if row == 0:
            raise IllegalStateError("The cursor is not positioned on a row")
        if not 1 <= column <= self._metadata.get_column_count():
            raise IllegalStateError(
                f"Column {column} is out of range 1..{self._metadata.get_column_count()}"
            )
        return self._rows[row - 1][column - 1]

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True
        self._rows = []

    def _check_open(self) -> None:
        if self._closed:
            raise IllegalStateError("The result cursor is closed")

    def __enter__(self) -> "ResultCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SqlStatement:
    """Reusable statement handle bound to one connection."""

    def __init__(self, connection: "SqlConnection") -> None:
        self._connection = connection
        self._generated_keys: Optional[ResultCursor] = None
        try:
            self._cursor = connection.raw.cursor()
        except Exception as exc:
            raise SqlError(None, f"Error creating SQL statement: {exc}") from exc
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def execute_query(self, sql: str) -> ResultCursor:
        self._check_open()
        try:
            self._cursor.execute(sql)
            description = self._cursor.description or ()
            labels = [column[0] for column in description]
            rows = self._cursor.fetchall() if description else []
        except Exception as exc:
            raise SqlError(sql, f"Query failed: {exc}") from exc
        return ResultCursor(labels, rows)

    def execute_update(self, sql: str, generated_keys: Optional[Sequence[str]] = None) -> int:
        """
        Run an INSERT/UPDATE/DELETE and return the affected row count.

        Parameters
        ----------
        sql : str
            Statement text.
        generated_keys : sequence of str, optional
            Columns whose database-generated values should be made available
            through ``get_generated_keys()`` afterwards.
        """
        self._check_open()
        self._generated_keys = None
        returning = bool(generated_keys) and self._connection.uses_returning_keys
        statement = f"{sql} RETURNING {', '.join(generated_keys)}" if returning else sql
        try:
            self._cursor.execute(statement)
            count = self._cursor.rowcount
            if returning:
                key_rows = self._cursor.fetchall()
                self._generated_keys = ResultCursor(list(generated_keys), key_rows)
                if count is None or count < 0:
                    count = len(key_rows)
            elif generated_keys:
                last_id = getattr(self._cursor, "lastrowid", None)
                key_rows = [] if last_id is None else [(last_id,)]
                self._generated_keys = ResultCursor(list(generated_keys)[:1], key_rows)
        except Exception as exc:
            raise SqlError(statement, f"Update failed: {exc}") from exc
        return count

    def get_generated_keys(self) -> ResultCursor:
        if self._generated_keys is None:
            raise IllegalStateError("No generated keys were requested by the last update")
        return self._generated_keys

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._cursor.close()
        except Exception as exc:
            raise SqlError(None, f"Error closing the SQL statement: {exc}") from exc

    def _check_open(self) -> None:
        if self._closed:
            raise IllegalStateError("The SQL statement is closed")


def _is_postgres_driver(raw: Any) -> bool:
    return type(raw).__module__.split(".")[0] in ("psycopg", "psycopg2")


class SqlConnection:
    """
    A DB-API connection as seen by a session.

    Parameters
    ----------
    raw : object
        The driver connection.
    release : callable, optional
        Called with the raw connection instead of ``raw.close()`` when the
        connection is closed; used to hand pooled connections back.
    returning_keys : bool, optional
        Fetch generated keys with ``RETURNING`` instead of ``cursor.lastrowid``.
        Detected from the driver when omitted (psycopg needs RETURNING).
    limit_offset : bool, optional
        Emit ``LIMIT <take> OFFSET <skip>`` instead of ``LIMIT <skip>, <take>``
        when a query skips rows. Detected from the driver when omitted
        (PostgreSQL rejects the comma form).
    """

    def __init__(
        self,
        raw: Any,
        release: Optional[Callable[[Any], None]] = None,
        returning_keys: Optional[bool] = None,
        limit_offset: Optional[bool] = None,
    ) -> None:
        self._raw = raw
        self._release = release
        postgres = _is_postgres_driver(raw)
        self.uses_returning_keys = postgres if returning_keys is None else returning_keys
        self.uses_limit_offset = postgres if limit_offset is None else limit_offset
        self._closed = False

    @property
    def raw(self) -> Any:
        if self._closed:
            raise IllegalStateError("The SQL connection is closed")
        return self._raw

    @property
    def closed(self) -> bool:
        return self._closed

    def create_statement(self) -> SqlStatement:
        return SqlStatement(self)

    def get_auto_commit(self) -> bool:
        raw = self.raw
        auto_commit = getattr(raw, "autocommit", None)
        if isinstance(auto_commit, bool):
            return auto_commit
        if hasattr(raw, "isolation_level"):
            # sqlite3 legacy transaction control: None means autocommit
            return raw.isolation_level is None
        return False

    def commit(self) -> None:
        try:
            self.raw.commit()
        except Exception as exc:
            raise SqlError(None, f"Error making a commit to the SQL connection: {exc}") from exc

    def rollback(self) -> None:
        try:
            self.raw.rollback()
        except Exception as exc:
            raise SqlError(None, f"Error making a rollback to the SQL connection: {exc}") from exc

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self._release is not None:
                self._release(self._raw)
            else:
                self._raw.close()
        except Exception as exc:
            raise SqlError(None, f"Error closing the SQL connection: {exc}") from exc


def as_sql_connection(connection: Any) -> SqlConnection:
    """Wrap a raw DB-API connection unless it is already wrapped."""
    if isinstance(connection, SqlConnection):
        return connection
    return SqlConnection(connection)


__all__ = [
    "ResultMetadata",
    "ResultCursor",
    "SqlStatement",
    "SqlConnection",
    "as_sql_connection",
]

from __future__ import annotations

import sqlite3

import pytest

from helpers import FakeConnection, rows
from zorm.exceptions import IllegalStateError, SqlError
from zorm.infrastructure.sql_client import ResultCursor, SqlConnection, as_sql_connection


def test_cursor_navigation() -> None:
    cursor = ResultCursor(["a", "b"], [(1, 2), (3, 4)])
    assert cursor.get_row() == 0
    assert cursor.next()
    assert cursor.get_row() == 1
    assert cursor.get_object(2) == 2
    assert cursor.next()
    assert cursor.get_object(1) == 3
    assert not cursor.next()
    assert cursor.get_row() == 0
    assert cursor.last()
    assert cursor.get_row() == 2
    assert cursor.first()
    assert cursor.get_row() == 1


def test_empty_cursor() -> None:
    cursor = ResultCursor(["a"], [])
    assert not cursor.first()
    assert not cursor.last()
    assert not cursor.next()
    with pytest.raises(IllegalStateError):
        cursor.get_object(1)


def test_cursor_metadata_and_bounds() -> None:
    cursor = ResultCursor(["id", "name"], [("1", "x")])
    metadata = cursor.get_metadata()
    assert metadata.get_column_count() == 2
    assert metadata.get_column_label(2) == "name"
    cursor.next()
    with pytest.raises(IllegalStateError):
        cursor.get_object(3)
    with pytest.raises(IllegalStateError):
        metadata.get_column_label(0)


def test_closed_cursor_refuses_access() -> None:
    with ResultCursor(["a"], [(1,)]) as cursor:
        assert cursor.next()
    assert cursor.closed
    with pytest.raises(IllegalStateError):
        cursor.next()


def test_sqlite_query_labels_and_rows() -> None:
    connection = SqlConnection(sqlite3.connect(":memory:"))
    statement = connection.create_statement()
    cursor = statement.execute_query("SELECT 1 AS one, 'x' AS letter")
    assert cursor.get_metadata().get_column_label(1) == "one"
    assert cursor.next()
    assert cursor.get_object(2) == "x"
    connection.close()


def test_sqlite_generated_keys_from_lastrowid() -> None:
    connection = SqlConnection(sqlite3.connect(":memory:"))
    statement = connection.create_statement()
    statement.execute_update("CREATE TABLE t (id INTEGER PRIMARY KEY AUTOINCREMENT, v TEXT)")
    assert statement.execute_update("INSERT INTO t (v) VALUES ('a')", ["id"]) == 1
    keys = statement.get_generated_keys()
    assert keys.next()
    assert keys.get_object(1) == 1
    connection.close()


def test_generated_keys_require_request() -> None:
    statement = SqlConnection(FakeConnection()).create_statement()
    statement.execute_update("DELETE FROM t")
    with pytest.raises(IllegalStateError):
        statement.get_generated_keys()


def test_returning_clause_for_drivers_without_lastrowid() -> None:
    raw = FakeConnection().queue(rows(("id",), (41,)))
    statement = SqlConnection(raw, returning_keys=True).create_statement()
    assert statement.execute_update("INSERT INTO t (v) VALUES ('a')", ["id"]) == 1
    assert raw.executed == ["INSERT INTO t (v) VALUES ('a') RETURNING id"]
    keys = statement.get_generated_keys()
    assert keys.next() and keys.get_object(1) == 41


def test_driver_errors_are_wrapped_with_sql() -> None:
    connection = SqlConnection(sqlite3.connect(":memory:"))
    statement = connection.create_statement()
    with pytest.raises(SqlError) as excinfo:
        statement.execute_query("SELEC 1")
    assert excinfo.value.sql == "SELEC 1"
    assert "SELEC 1" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, sqlite3.Error)
    connection.close()


def test_auto_commit_detection() -> None:
    assert not SqlConnection(sqlite3.connect(":memory:")).get_auto_commit()
    assert SqlConnection(sqlite3.connect(":memory:", isolation_level=None)).get_auto_commit()
    assert SqlConnection(FakeConnection(autocommit=True)).get_auto_commit()
    assert not SqlConnection(FakeConnection()).get_auto_commit()


def test_release_callback_replaces_close() -> None:
    raw = FakeConnection()
    released = []
    connection = SqlConnection(raw, release=released.append)
    connection.close()
    connection.close()
    assert released == [raw]
    assert "connection.close" not in raw.events
    assert connection.closed
    with pytest.raises(IllegalStateError):
        connection.raw


def test_statement_close_is_idempotent() -> None:
    raw = FakeConnection()
    statement = SqlConnection(raw).create_statement()
    statement.close()
    statement.close()
    assert raw.events == ["cursor.close"]
    with pytest.raises(IllegalStateError):
        statement.execute_query("SELECT 1")


def test_as_sql_connection_wraps_once() -> None:
    wrapped = as_sql_connection(FakeConnection())
    assert isinstance(wrapped, SqlConnection)
    assert as_sql_connection(wrapped) is wrapped

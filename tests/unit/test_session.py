from __future__ import annotations

import logging
from typing import Any

import pytest

from helpers import ITEM_COLUMNS, FakeConnection, Item, User, rows, updated
from zorm import Record
from zorm.domain.field import IntField, StringField
from zorm.exceptions import (
    IllegalStateError,
    InvalidSqlValueError,
    InvalidValueError,
    ObjectNotFoundError,
    PrimaryKeyViolationError,
    SqlError,
)
from zorm.session import Session


class IncrementField(IntField):
    """Counter column updated as ``column = column + delta``."""

    uses_sql_expr_for_update = True

    def to_sql_expr(self, value: Any) -> str:
        return f"{self.name} + {int(value)}"


class Counter(Record):
    __table__ = "counter"

    id = StringField()
    hits = IncrementField()


class Log(Record):
    __table__ = "log"

    message = StringField()


def test_get_emits_select_of_auto_fetched_fields(fake_connection, fake_session) -> None:
    fake_connection.queue(rows(ITEM_COLUMNS, ("item1", 2, "john")))

    item = fake_session.get(Item, "1")

    assert fake_connection.executed == ["SELECT name, rating, author_id FROM item WHERE id = '1'"]
    assert item.name == "item1"
    assert item.rating == 2
    assert not item.is_field_initialized(Item.active)
    assert fake_session.get(Item, "1") is item
    assert fake_session.num_queries == 1


def test_get_with_fields_loads_only_missing_ones(fake_connection, fake_session) -> None:
    fake_connection.queue(rows(("name",), ("item1",)), rows(("rating",), (2,)))

    item = fake_session.get(Item, "1", [Item.name])
    same = fake_session.get(Item, "1", [Item.name, Item.rating])

    assert same is item
    assert fake_connection.executed[-1] == "SELECT rating FROM item WHERE id = '1'"


def test_get_missing_row_does_not_cache(fake_connection, fake_session) -> None:
    fake_connection.queue(rows(ITEM_COLUMNS), rows(ITEM_COLUMNS, ("item1", 2, None)))

    with pytest.raises(ObjectNotFoundError):
        fake_session.get(Item, "1")
    item = fake_session.get(Item, "1")

    assert item.author_id is None
    assert fake_session.num_queries == 2


def test_get_with_duplicate_rows_is_a_key_violation(fake_connection, fake_session) -> None:
    fake_connection.queue(rows(ITEM_COLUMNS, ("a", 1, None), ("b", 2, None)))
    with pytest.raises(PrimaryKeyViolationError):
        fake_session.get(Item, "1")


def test_get_validates_id_before_querying(fake_connection, fake_session) -> None:
    with pytest.raises(InvalidValueError):
        fake_session.get(Item, "abc")
    assert fake_connection.executed == []


def test_get_rejects_non_string_ids(fake_connection, fake_session) -> None:
    with pytest.raises(InvalidValueError):
        fake_session.get(Item, 1)
    with pytest.raises(InvalidValueError):
        fake_session.get_shallow(User, 7)
    assert fake_connection.executed == []


def test_get_requires_id_field(fake_session) -> None:
    with pytest.raises(IllegalStateError):
        fake_session.get(Log, "1")


def test_get_shallow_never_queries(fake_connection, fake_session) -> None:
    first, second = fake_session.get_shallow(Item, ["1", "2"])
    assert first.get_id() == "1" and second.get_id() == "2"
    assert first.initialized_mask == 1 << Item.id.index
    assert not first.is_new
    assert fake_session.get_shallow(Item, "1") is first
    assert fake_connection.executed == []


def test_batch_get(fake_connection, fake_session) -> None:
    fake_connection.queue(rows(("name",), ("john",)), rows(("name",), ("janet",)))
    users = fake_session.get(User, ["john", "janet"])
    assert [u.name for u in users] == ["john", "janet"]


def test_fetch_skips_initialized_fields(fake_connection, fake_session) -> None:
    item = fake_session.get_shallow(Item, "2")
    item.author_id = "janet"
    fake_connection.queue(rows(("name", "rating", "active"), ("item2", 3, 0)))

    item.fetch(Item.schema.fields)
    item.fetch(Item.schema.fields)

    assert fake_connection.executed == ["SELECT name, rating, active FROM item WHERE id = '2'"]
    assert item.author_id == "janet"
    assert item.active is False


def test_undecodable_cell_raises_invalid_sql_value(fake_connection, fake_session) -> None:
    item = fake_session.get_shallow(Item, "1")
    fake_connection.queue(rows(("active",), ("maybe",)))
    with pytest.raises(InvalidSqlValueError):
        fake_session.fetch(item, [Item.active])


def test_insert_reads_generated_id(fake_connection, fake_session) -> None:
    item = fake_session.get_new(Item)
    item.name = "new"
    item.active = True
    item.author_id = None
    fake_connection.queue(updated(1, lastrowid=7))

    item.save()

    assert fake_connection.executed == [
        "INSERT INTO item (name, active, author_id) VALUES ('new', '1', NULL)"
    ]
    assert item.get_id() == "7"
    assert not item.is_new
    assert item.modified_mask == 0
    assert item in fake_session
    assert fake_session.get_shallow(Item, "7") is item


def test_insert_requires_non_generated_fields(fake_connection, fake_session) -> None:
    item = fake_session.get_new(Item)
    item.name = "incomplete"
    with pytest.raises(IllegalStateError):
        fake_session.save(item)
    assert fake_connection.executed == []


def test_insert_must_affect_one_row(fake_connection, fake_session) -> None:
    user = fake_session.get_new(User)
    user.id = "x"
    user.name = "X"
    fake_connection.queue(updated(0))
    with pytest.raises(IllegalStateError):
        user.save()
    assert user.is_new


def test_save_attaches_detached_new_record(fake_connection, fake_session) -> None:
    user = User()
    user.id = "ann"
    user.name = "Ann"
    fake_connection.queue(updated(1))

    fake_session.save(user)

    assert user.session is fake_session
    assert fake_session.get_shallow(User, "ann") is user


def test_records_without_id_stay_new_after_insert(fake_connection, fake_session) -> None:
    entry = fake_session.get_new(Log)
    entry.message = "hello"
    fake_connection.queue(updated(1))

    entry.save()

    assert entry.is_new
    assert not entry.is_modified
    assert fake_connection.executed == ["INSERT INTO log (message) VALUES ('hello')"]


def test_update_writes_only_modified_fields(fake_connection, fake_session) -> None:
    item = fake_session.get_shallow(Item, "1")
    item.name = "x"
    item.rating = 5
    fake_connection.queue(updated(1))

    item.save()
    item.save()

    assert fake_connection.executed == ["UPDATE item SET name = 'x', rating = '5' WHERE id = '1'"]
    assert not item.is_modified


def test_update_uses_sql_expression_fields(fake_connection, fake_session) -> None:
    counter = fake_session.get_shallow(Counter, "home")
    counter.hits = 3
    fake_connection.queue(updated(1))

    counter.save()

    assert fake_connection.executed == ["UPDATE counter SET hits = hits + 3 WHERE id = 'home'"]


def test_update_row_count_checks(fake_connection, fake_session) -> None:
    item = fake_session.get_shallow(Item, "1")
    item.name = "x"
    fake_connection.queue(updated(0), updated(2))
    with pytest.raises(ObjectNotFoundError):
        item.save()
    with pytest.raises(PrimaryKeyViolationError):
        item.save()
    assert item.is_modified


def test_delete(fake_connection, fake_session) -> None:
    item = fake_session.get_shallow(Item, "1")
    fake_connection.queue(updated(1), updated(0))

    assert fake_session.delete(Item, "1") is True
    assert fake_session.delete(Item, "0") is False

    assert fake_connection.executed == [
        "DELETE FROM item WHERE id = '1'",
        "DELETE FROM item WHERE id = '0'",
    ]
    assert item.session is None
    assert fake_session.get_shallow(Item, "1") is not item


def test_delete_more_than_one_row_fails(fake_connection, fake_session) -> None:
    fake_connection.queue(updated(2))
    with pytest.raises(PrimaryKeyViolationError):
        fake_session.delete(User, "john")


def test_record_delete_shortcut(fake_connection, fake_session) -> None:
    user = fake_session.get_shallow(User, "o'neil")
    fake_connection.queue(updated(1))
    assert user.delete() is True
    assert fake_connection.executed == ["DELETE FROM user WHERE id = 'o''neil'"]


def test_save_all_and_detach_all(fake_connection, fake_session) -> None:
    first, second = fake_session.get_shallow(User, ["a", "b"])
    first.name = "A"
    second.name = "B"
    fake_connection.queue(updated(1), updated(1))

    fake_session.save_all_and_commit()

    assert len(fake_connection.executed) == 2
    assert fake_connection.events[-1] == "commit"

    fake_session.detach_all()
    assert first.session is None and second.session is None


def test_commit_and_rollback_skip_auto_commit_connections() -> None:
    connection = FakeConnection(autocommit=True)
    session = Session(connection)
    session.commit()
    session.rollback()
    assert connection.events == []


def test_commit_and_rollback_without_connection_are_noops() -> None:
    session = Session()
    session.commit()
    session.rollback()
    assert not session.is_closed


def test_rollback_passes_through(fake_connection, fake_session) -> None:
    fake_session.rollback()
    assert fake_connection.events == ["rollback"]


def test_close_releases_statement_then_connection(fake_connection) -> None:
    session = Session(fake_connection)
    session.get_sql_statement()

    session.close()
    session.close()

    assert session.is_closed
    assert fake_connection.events == ["cursor.close", "connection.close"]
    with pytest.raises(IllegalStateError):
        session.get_sql_statement()


def test_context_manager_closes(fake_connection) -> None:
    with Session(fake_connection) as session:
        session.get_sql_statement()
    assert session.is_closed
    assert fake_connection.events[-1] == "connection.close"


def test_connection_can_be_set_only_once(fake_session) -> None:
    with pytest.raises(IllegalStateError):
        fake_session.set_sql_connection(FakeConnection())


def test_sql_errors_propagate(fake_connection, fake_session) -> None:
    fake_connection.queue(RuntimeError("boom"))
    with pytest.raises(SqlError) as excinfo:
        fake_session.get(Item, "1")
    assert excinfo.value.sql == "SELECT name, rating, author_id FROM item WHERE id = '1'"


def test_log_query_counts_and_logs(fake_session, caplog) -> None:
    caplog.set_level(logging.INFO, logger="zorm")

    fake_session.log_query("SELECT 1")
    fake_session.clear_num_queries()
    fake_session.log_query("SELECT 2")

    assert fake_session.num_queries == 1
    record = caplog.records[-1]
    assert record.name == "zorm"
    assert record.getMessage() == f'SESSION{fake_session.session_id}: query: "SELECT 2"'
    assert record.query == "SELECT 2"
    assert record.session_id == fake_session.session_id

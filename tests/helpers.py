"""
Record classes and DB-API fakes shared by the test suite.

``Item`` and ``User`` map the demo tables created by ``scripts/seed_demo.py``.
``FakeConnection`` is a scripted DB-API connection: every ``execute`` records
the SQL and consumes the next queued ``FakeResult``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple

from zorm import BooleanField, IntField, Record, StringField, StringIntField


class Item(Record):
    __table__ = "item"
    __alias__ = "i"

    id = StringIntField(auto_generated=True)
    name = StringField()
    rating = IntField(auto_generated=True)
    active = BooleanField(auto_fetched=False)
    author_id = StringField(null_valid=True)


class User(Record):
    __table__ = "user"
    __alias__ = "u"

    id = StringField()
    name = StringField()


ITEM_COLUMNS = ("name", "rating", "author_id")


@dataclass
class FakeResult:
    labels: Tuple[str, ...] = ()
    rows: Sequence[Sequence[Any]] = ()
    rowcount: int = -1
    lastrowid: Any = None


def rows(labels: Sequence[str], *data: Sequence[Any]) -> FakeResult:
    return FakeResult(tuple(labels), list(data), len(data))


def updated(count: int, lastrowid: Any = None) -> FakeResult:
    return FakeResult(rowcount=count, lastrowid=lastrowid)


class FakeCursor:
    def __init__(self, connection: "FakeConnection") -> None:
        self.connection = connection
        self.description = None
        self.rowcount = -1
        self.lastrowid = None
        self._rows: List[Sequence[Any]] = []

    def execute(self, sql: str) -> None:
        self.connection.executed.append(sql)
        result = self.connection.results.pop(0) if self.connection.results else FakeResult()
        if isinstance(result, Exception):
            raise result
        self.description = [(label, None, None, None, None, None, None) for label in result.labels] or None
        self._rows = list(result.rows)
        self.rowcount = result.rowcount
        self.lastrowid = result.lastrowid

    def fetchall(self) -> List[Sequence[Any]]:
        data, self._rows = self._rows, []
        return data

    def close(self) -> None:
        self.connection.events.append("cursor.close")


@dataclass
class FakeConnection:
    autocommit: bool = False
    results: List[Any] = field(default_factory=list)
    executed: List[str] = field(default_factory=list)
    events: List[str] = field(default_factory=list)

    def queue(self, *results: Any) -> "FakeConnection":
        self.results.extend(results)
        return self

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        self.events.append("commit")

    def rollback(self) -> None:
        self.events.append("rollback")

    def close(self) -> None:
        self.events.append("connection.close")


class FakePool:
    """Minimal getconn/putconn data source."""

    def __init__(self) -> None:
        self.handed_out: List[FakeConnection] = []
        self.returned: List[FakeConnection] = []

    def getconn(self) -> FakeConnection:
        connection = FakeConnection()
        self.handed_out.append(connection)
        return connection

    def putconn(self, connection: FakeConnection) -> None:
        self.returned.append(connection)

"""
Fluent SELECT builder and executor.

A query collects *select groups* (a schema, its effective alias and the fields
to load) and free-form projections, plus the usual clauses. ``str(query)``
emits the SQL; the ``execute*`` methods run it through the bound session and
materialize each select group into records of the session's identity map::

    q = session.select_query()
    q.select(Item).where(Item.active, EQUALS, 1).order_by(desc(Item.rating)).take(10)
    items = q.execute()["i"]          # list of Item records
    count = session.select_query().select("COUNT(*)").from_(Item).execute_unique()
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple, Union

from zorm.domain.field import Field
from zorm.domain.record import schema_of
from zorm.domain.schema import Schema
from zorm.exceptions import (
    DuplicateLabelError,
    EmptySelectError,
    IllegalStateError,
    InsufficientColumnsError,
)
from zorm.infrastructure.sql_client import ResultCursor, ResultMetadata
from zorm.query.expression import Expression

if TYPE_CHECKING:
    from zorm.session import Session

# Emitted as the LIMIT row count when only a skip is given.
MAX_TAKE = 2**31 - 1


class Join(str, Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


@dataclass(frozen=True)
class SelectGroup:
    """One schema projected by the query; materializes to a record per row."""

    schema: Schema
    fields: Tuple[Field, ...]
    alias: str

    @property
    def column_count(self) -> int:
        return len(self.fields) + (1 if self.schema.id_field is not None else 0)

    def columns(self) -> List[str]:
        names = [] if self.schema.id_field is None else [self.schema.id_field.name]
        names.extend(f.name for f in self.fields)
        return [f"{self.alias}.{name}" for name in names]


class SelectQuery:
    """
    SELECT statement composer.

    Parameters
    ----------
    session : Session, optional
        Session that executes the query and owns the materialized records.
    """

    def __init__(self, session: Optional["Session"] = None) -> None:
        self.session = session
        self._auto_add_to_from = True
        self._groups: List[SelectGroup] = []
        self._select_items: List[str] = []
        self._distinct = False
        self._from_items: List[str] = []
        self._where = Expression()
        self._having = Expression()
        self._group_by: Tuple[Any, ...] = ()
        self._order_by: Tuple[Any, ...] = ()
        self._skip = 0
        self._take: Optional[int] = None
        self._extra: Optional[str] = None
        self._custom_query: Optional[str] = None

    # ------------------------------------------------------------------
    # SELECT
    # ------------------------------------------------------------------

    def auto_add_to_from(self, value: bool) -> "SelectQuery":
        """Whether selecting a schema also adds its table to FROM (default True)."""
        self._auto_add_to_from = value
        return self

    def select(
        self,
        item: Any,
        *args: Any,
        fields: Optional[Iterable[Field]] = None,
        alias: Optional[str] = None,
    ) -> "SelectQuery":
        """
        Add a schema or a free-form expression to the SELECT list.

        ``item`` may be a Record subclass or a Schema, optionally followed by
        fields (individually or as one iterable) and an alias string::

            q.select(Item)                          # auto-fetched fields, alias "i"
            q.select(Item, [Item.name])             # id + name
            q.select(Item, Item.name, "t2_i")       # id + name under another alias

        Anything else is a free-form projection, optionally followed by its
        column alias: ``q.select("COUNT(*)", "n")``.
        """
        schema = schema_of(item)
        if schema is None:
            if len(args) > 1:
                raise TypeError("A free-form select takes at most one alias")
            if args:
                alias = args[0]
            self._select_items.append(str(item) if alias is None else f"{item} {alias}")
            return self

        chosen: Optional[List[Field]] = None if fields is None else list(fields)
        for arg in args:
            if isinstance(arg, str):
                alias = arg
            elif isinstance(arg, Field):
                chosen = (chosen or []) + [arg]
            else:
                chosen = (chosen or []) + list(arg)
        return self._select_schema(schema, chosen, alias)

    def _select_schema(
        self, schema: Schema, fields: Optional[List[Field]], alias: Optional[str]
    ) -> "SelectQuery":
        alias = alias or schema.table_alias
        id_field = schema.id_field
        if fields is None or id_field is None:
            chosen = schema.auto_fetched_fields
        else:
            for field in fields:
                if field.schema is not schema:
                    raise IllegalStateError(f"Field {field!r} does not belong to {schema!r}")
            chosen = tuple(f for f in fields if f is not id_field)
        self._groups.append(SelectGroup(schema, tuple(chosen), alias))
        if self._auto_add_to_from and self._custom_query is None:
            if alias == schema.table_name:
                self.from_(alias)
            else:
                self.from_(schema.table_name, alias)
        return self

    def distinct(self, value: bool = True) -> "SelectQuery":
        self._distinct = value
        return self

    @property
    def select_groups(self) -> Tuple[SelectGroup, ...]:
        return tuple(self._groups)

    # ------------------------------------------------------------------
    # FROM / JOIN
    # ------------------------------------------------------------------

    def from_(self, item: Any, alias: Optional[str] = None) -> "SelectQuery":
        """Append a table (schema, Record class or raw text) to FROM."""
        schema = schema_of(item)
        if schema is not None:
            if alias is None and schema.table_alias != schema.table_name:
                alias = schema.table_alias
            item = schema.table_name
        self._from_items.append(str(item) if alias is None else f"{item} {alias}")
        return self

    def join(self, kind: Union[Join, str], target: Any, *args: Any) -> "SelectQuery":
        """
        Append ``<kind> JOIN <table> [alias] ON (f1 = f2)`` to the last FROM item.

        Forms::

            q.join(Join.LEFT, User, Item.author_id, User.id)
            q.join(Join.LEFT, User, "t2_u", Item.author_id, second(User.id))
            q.join(Join.INNER, "user", "u", "i.author_id", "u.id")
        """
        kind = Join(kind)
        schema = schema_of(target)
        if schema is not None:
            if len(args) == 2:
                alias = None if schema.table_alias == schema.table_name else schema.table_alias
                field1, field2 = args
            elif len(args) == 3:
                alias, field1, field2 = args
            else:
                raise TypeError("join(kind, schema, [alias,] field1, field2)")
            table = schema.table_name
        else:
            if len(args) != 3:
                raise TypeError("join(kind, table_name, alias, field1, field2)")
            table = target
            alias, field1, field2 = args

        clause = f" {kind.value} JOIN {table}"
        if alias is not None:
            clause += f" {alias}"
        clause += f" ON ({field1} = {field2})"
        if self._from_items:
            self._from_items[-1] += clause
        else:
            self._from_items.append(clause.lstrip())
        return self

    # ------------------------------------------------------------------
    # WHERE / GROUP BY / HAVING / ORDER BY / LIMIT
    # ------------------------------------------------------------------

    @property
    def where_expr(self) -> Expression:
        return self._where

    @property
    def having_expr(self) -> Expression:
        return self._having

    def where(self, *fragments: Any) -> "SelectQuery":
        self._where.expr(*fragments)
        return self

    def where_between(self, element: Any, low_limit: Any, high_limit: Any) -> "SelectQuery":
        self._where.between(element, low_limit, high_limit)
        return self

    def where_in(self, element: Any, *values: Any) -> "SelectQuery":
        self._where.in_(element, *values)
        return self

    def group_by(self, *exprs: Any) -> "SelectQuery":
        self._group_by = exprs
        return self

    def having(self, *fragments: Any) -> "SelectQuery":
        self._having.expr(*fragments)
        return self

    def order_by(self, *exprs: Any) -> "SelectQuery":
        self._order_by = exprs
        return self

    def skip(self, value: int) -> "SelectQuery":
        if value < 0:
            raise ValueError("skip must be >= 0")
        self._skip = value
        return self

    def take(self, value: Optional[int]) -> "SelectQuery":
        """Row count limit; None removes it."""
        if value is not None and value < 0:
            raise ValueError("take must be >= 0")
        self._take = value
        return self

    def extra(self, text: Optional[str]) -> "SelectQuery":
        """Raw text appended after the LIMIT clause (e.g. ``FOR UPDATE``)."""
        self._extra = text
        return self

    def custom_query(self, sql: Optional[str]) -> "SelectQuery":
        """Replace the generated statement; select groups still drive materialization."""
        self._custom_query = sql
        return self

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def clear(self) -> "SelectQuery":
        self.clear_select()
        self.clear_from()
        self.clear_where()
        self.clear_having()
        self._distinct = False
        self._group_by = ()
        self._order_by = ()
        self._extra = None
        self._custom_query = None
        self._skip = 0
        self._take = None
        return self

    def clear_select(self) -> "SelectQuery":
        self._groups.clear()
        self._select_items.clear()
        return self

    def clear_from(self) -> "SelectQuery":
        self._from_items.clear()
        return self

    def clear_where(self) -> "SelectQuery":
        self._where.clear()
        return self

    def clear_having(self) -> "SelectQuery":
        self._having.clear()
        return self

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def to_sql(self, limit_offset: bool = False) -> str:
        """
        Emit the statement.

        A skip renders as ``LIMIT <skip>, <take>``; with ``limit_offset`` it
        renders as ``LIMIT <take> OFFSET <skip>`` for PostgreSQL instead.
        """
        if self._custom_query is not None:
            return self._custom_query

        columns: List[str] = []
        for group in self._groups:
            columns.extend(group.columns())
        columns.extend(self._select_items)

        parts = ["SELECT "]
        if self._distinct:
            parts.append("DISTINCT ")
        parts.append(", ".join(columns))
        parts.append(" FROM ")
        parts.append(", ".join(self._from_items))
        if self._where:
            parts.append(f" WHERE {self._where}")
        if self._group_by:
            parts.append(" GROUP BY " + ", ".join(str(e) for e in self._group_by))
        if self._having:
            parts.append(f" HAVING {self._having}")
        if self._order_by:
            parts.append(" ORDER BY " + ", ".join(str(e) for e in self._order_by))
        if self._skip == 0:
            if self._take is not None:
                parts.append(f" LIMIT {self._take}")
        elif limit_offset:
            if self._take is not None:
                parts.append(f" LIMIT {self._take}")
            parts.append(f" OFFSET {self._skip}")
        else:
            take = MAX_TAKE if self._take is None else self._take
            parts.append(f" LIMIT {self._skip}, {take}")
        if self._extra is not None:
            parts.append(f" {self._extra}")
        return "".join(parts)

    def __str__(self) -> str:
        return self.to_sql()

    def __repr__(self) -> str:
        return f"<SelectQuery {self.to_sql()!r}>"

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_unique(self) -> Any:
        """First selected item of the first row; None when no row matches."""
        return self._execute_query(unique_select=True, unique_row=True)

    def execute_unique_select(self) -> List[Any]:
        """First selected item of every row."""
        return self._execute_query(unique_select=True, unique_row=False)

    def execute_unique_row(self) -> Dict[str, Any]:
        """First row keyed by group alias / column label; values are None when no row matches."""
        return self._execute_query(unique_select=False, unique_row=True)

    def execute(self) -> Dict[str, List[Any]]:
        """Every row, as one list per group alias / column label."""
        return self._execute_query(unique_select=False, unique_row=False)

    def _execute_query(self, unique_select: bool, unique_row: bool) -> Any:
        session = self.session
        if session is None:
            raise IllegalStateError("The session is not set")
        if self._custom_query is None and not self._groups and not self._select_items:
            raise EmptySelectError()

        sql = self.to_sql(limit_offset=session.get_sql_connection().uses_limit_offset)
        session.log_query(sql)
        cursor = session.get_sql_statement().execute_query(sql)
        try:
            return self._materialize(cursor, unique_select, unique_row)
        finally:
            cursor.close()

    def _materialize(self, cursor: ResultCursor, unique_select: bool, unique_row: bool) -> Any:
        session = self.session
        metadata = cursor.get_metadata()
        column_count = metadata.get_column_count()
        needed_columns = sum(group.column_count for group in self._groups)
        if needed_columns > column_count:
            raise InsufficientColumnsError(needed_columns, column_count)

        selected = len(self._groups) + column_count - needed_columns
        if selected == 0:
            raise EmptySelectError()
        if unique_select:
            selected = 1
            labels: List[str] = []
        else:
            labels = self._result_labels(metadata, needed_columns)

        row_count = cursor.get_row() if cursor.last() else 0
        if unique_row:
            row_count = min(row_count, 1)
        cursor.first()

        matrix: List[List[Any]] = [[] for _ in range(selected)]
        for _ in range(row_count):
            index = 0
            column = 1
            for group in self._groups:
                if index == selected:
                    break
                matrix[index].append(
                    session.get_and_fetch_from_result_set(group.schema, group.fields, cursor, column)
                )
                column += group.column_count
                index += 1
            while index < selected:
                matrix[index].append(cursor.get_object(column))
                column += 1
                index += 1
            cursor.next()

        def pick(values: List[Any]) -> Any:
            if not unique_row:
                return values
            return values[0] if values else None

        if unique_select:
            return pick(matrix[0])
        return {label: pick(values) for label, values in zip(labels, matrix)}

    def _result_labels(self, metadata: ResultMetadata, needed_columns: int) -> List[str]:
        """Group aliases then free column labels; checked before any row is materialized."""
        labels = [group.alias for group in self._groups]
        for column in range(needed_columns + 1, metadata.get_column_count() + 1):
            labels.append(metadata.get_column_label(column))
        seen = set()
        for label in labels:
            if label in seen:
                raise DuplicateLabelError(label)
            seen.add(label)
        return labels


__all__ = ["Join", "MAX_TAKE", "SelectGroup", "SelectQuery"]

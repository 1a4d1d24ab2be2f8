"""
Session: a unit of work over one SQL connection.

The session owns the identity map (at most one non-new record per table and
id), issues the SELECT/INSERT/UPDATE/DELETE statements for its records and
materializes rows returned by select queries. It is confined to one thread.

Typical use::

    with Manager.get_new_session() as session:
        item = session.get(Item, "1")
        item.name = "renamed"
        session.save_all_and_commit()
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, Union

from zorm.domain.field import Field
from zorm.domain.record import Record, schema_of
from zorm.domain.schema import Schema
from zorm.exceptions import (
    IllegalStateError,
    InvalidSqlValueError,
    InvalidValueError,
    ObjectNotFoundError,
    PrimaryKeyViolationError,
    ZormError,
)
from zorm.infrastructure.sql_client import ResultCursor, SqlConnection, SqlStatement, as_sql_connection
from zorm.manager import Manager
from zorm.query.encoder import sql_encode
from zorm.query.select import SelectQuery

SchemaLike = Union[Schema, Type[Record]]


class Session:
    """
    Identity map plus the persistence primitives for records.

    Parameters
    ----------
    connection : SqlConnection or DB-API connection, optional
        Connection to use. When omitted, one is taken from the Manager the
        first time the database is needed.
    """

    def __init__(self, connection: Any = None) -> None:
        self._session_id = 0
        self._connection: Optional[SqlConnection] = None
        self._statement: Optional[SqlStatement] = None
        self._closed = False
        self._loaded: Dict[str, Record] = {}
        self.auto_fetching_fields_on_read = Manager.is_auto_fetching_fields_on_read()
        self._num_queries = 0
        if connection is not None:
            self.set_sql_connection(connection)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> int:
        if self._session_id == 0:
            self._session_id = Manager.next_session_id()
        return self._session_id

    @session_id.setter
    def session_id(self, value: int) -> None:
        self._session_id = value

    def get_sql_connection(self) -> SqlConnection:
        self._check_not_closed()
        if self._connection is None:
            self._connection = Manager.get_new_sql_connection()
            Manager.get_logger().debug(
                "SESSION%s: acquired SQL connection", self.session_id,
                extra={"session_id": self.session_id},
            )
        return self._connection

    def set_sql_connection(self, connection: Any) -> None:
        if self._connection is not None:
            raise IllegalStateError("SQL connection was already set")
        self._connection = as_sql_connection(connection)

    def get_sql_statement(self) -> SqlStatement:
        self._check_not_closed()
        if self._statement is None:
            self._statement = self.get_sql_connection().create_statement()
        return self._statement

    def select_query(self) -> SelectQuery:
        """A new query bound to this session."""
        return SelectQuery(self)

    @property
    def num_queries(self) -> int:
        return self._num_queries

    def clear_num_queries(self) -> None:
        self._num_queries = 0

    def log_query(self, sql: str) -> None:
        self._num_queries += 1
        logger = Manager.get_logger()
        if logger.isEnabledFor(logging.INFO):
            logger.info(
                'SESSION%s: query: "%s"', self.session_id, sql,
                extra={"session_id": self.session_id, "query": sql},
            )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def get_new(self, record_type: Type[Record]) -> Record:
        """Create a new record bound to this session; it enters the identity map once saved."""
        record = record_type()
        record._set_session(self)
        return record

    def get(
        self,
        target: SchemaLike,
        record_id: Union[str, Sequence[str]],
        fields: Optional[Iterable[Field]] = None,
    ) -> Union[Record, List[Record]]:
        """
        Return the record with ``record_id``, loading its fields as needed.

        ``fields`` limits loading to those fields; by default the auto-fetched
        fields are ensured. A list of ids returns a parallel list of records.

        Raises
        ------
        InvalidValueError
            If an id is rejected by the id field (e.g. an int for a string id).
        ObjectNotFoundError
            If no row has that id.
        """
        schema = self._schema_with_id(target)
        field_list = None if fields is None else list(fields)
        if isinstance(record_id, (list, tuple)):
            return [self._get_single(schema, i, True, field_list) for i in record_id]
        return self._get_single(schema, record_id, True, field_list)

    def get_shallow(
        self, target: SchemaLike, record_id: Union[str, Sequence[str]]
    ) -> Union[Record, List[Record]]:
        """Return the cached record or a not-new record holding only its id. Never queries."""
        schema = self._schema_with_id(target)
        if isinstance(record_id, (list, tuple)):
            return [self._get_single(schema, i, False, None) for i in record_id]
        return self._get_single(schema, record_id, False, None)

    def _get_single(
        self,
        schema: Schema,
        record_id: str,
        fetch_from_db: bool,
        fields: Optional[List[Field]],
    ) -> Record:
        id_field = schema.id_field
        self._validate(id_field, record_id)
        record = self._loaded.get(self._key(schema, record_id))
        cached = record is not None
        if not cached:
            record = schema.new_record()
            record._set_field_value_internal(id_field, record_id)
            record._set_new(False)

        if fetch_from_db:
            wanted = schema.auto_fetched_fields if fields is None else fields
            self._fetch_from_db(record, self._not_initialized(record, wanted))

        if not cached:
            record.attach(self)
        return record

    def fetch(self, record: Record, fields: Optional[Iterable[Field]] = None) -> None:
        """Load the not yet initialized subset of ``fields`` (default: auto-fetched)."""
        if record.is_new:
            raise IllegalStateError(f"Record {record!r} must not be new to be fetched")
        wanted = record.schema.auto_fetched_fields if fields is None else list(fields)
        self._fetch_from_db(record, self._not_initialized(record, wanted))

    def _fetch_field_on_read(self, record: Record, field: Field) -> None:
        if not self.auto_fetching_fields_on_read:
            raise IllegalStateError(
                f"Cannot automatically fetch field {field} when auto fetching on read is disabled"
            )
        if field.auto_fetched:
            self._fetch_from_db(
                record, self._not_initialized(record, record.schema.auto_fetched_fields)
            )
        else:
            self._fetch_from_db(record, [field])

    def get_and_fetch_from_result_set(
        self,
        target: SchemaLike,
        fields: Sequence[Field],
        cursor: ResultCursor,
        first_column: int,
    ) -> Optional[Record]:
        """
        Materialize one select group from the current cursor row.

        With an id field, the id column at ``first_column`` keys the identity
        map (a NULL id yields None); the field columns follow it.
        """
        schema = schema_of(target)
        id_field = schema.id_field
        column = first_column
        if id_field is None:
            record = schema.new_record()
        else:
            record_id = self._from_sql_value(id_field, cursor.get_object(column))
            if record_id is None:
                return None
            record = self._get_single(schema, record_id, False, None)
            column += 1
        for field in fields:
            self._set_field_from_sql_value(record, field, cursor.get_object(column))
            column += 1
        return record

    # ------------------------------------------------------------------
    # Saving / deleting
    # ------------------------------------------------------------------

    def save(self, record: Record) -> None:
        """INSERT a new record or UPDATE the modified fields of an existing one."""
        if record.session is not self:
            record.attach(self)
        if record.is_new:
            self._save_new(record)
        else:
            self._save_existing(record)

    def delete(self, target: Union[SchemaLike, Record], record_id: Optional[str] = None) -> bool:
        """
        Delete the row with ``record_id``; True if one row was removed, False if none.

        ``session.delete(record)`` deletes that record's row.
        """
        if isinstance(target, Record) and record_id is None:
            record_id = target.get_id()
        schema = self._schema_with_id(target)
        id_field = schema.id_field
        sql = (
            f"DELETE FROM {schema.table_name} WHERE {id_field.name} = "
            f"{sql_encode(id_field.to_sql_value(record_id))}"
        )
        self.log_query(sql)
        affected = self.get_sql_statement().execute_update(sql)
        if affected == 0:
            return False
        if affected > 1:
            raise PrimaryKeyViolationError(schema.table_name, record_id, affected)
        record = self._loaded.pop(self._key(schema, record_id), None)
        if record is not None:
            record._set_session(None)
        return True

    def _save_new(self, record: Record) -> None:
        schema = record.schema
        id_field = schema.id_field
        read_generated_id = (
            id_field is not None
            and id_field.auto_generated
            and not record.is_field_initialized(id_field)
        )
        for field in schema.fields:
            if not field.auto_generated and not record.is_field_initialized(field):
                raise IllegalStateError(
                    f"Non-autogenerated field {field} of {record!r} must be initialized before saving"
                )

        fields = self._modified(record)
        columns = ", ".join(f.name for f in fields)
        values = ", ".join(sql_encode(f.to_sql_value(record.get_field_value(f))) for f in fields)
        sql = f"INSERT INTO {schema.table_name} ({columns}) VALUES ({values})"
        self.log_query(sql)
        statement = self.get_sql_statement()
        if read_generated_id:
            affected = statement.execute_update(sql, [id_field.name])
        else:
            affected = statement.execute_update(sql)
        if affected != 1:
            raise IllegalStateError(f"{affected} rows were affected while saving {record!r}")

        if read_generated_id:
            keys = statement.get_generated_keys()
            try:
                if not keys.next():
                    raise IllegalStateError(
                        f"The database returned no value for the autogenerated id field {id_field}"
                    )
                self._set_field_from_sql_value(record, id_field, keys.get_object(1))
            finally:
                keys.close()

        record.set_modified(False)
        # records without an id stay new: they cannot be keyed in the identity map
        if id_field is not None:
            record._set_new(False)
            self._add_to_cache(record)

    def _save_existing(self, record: Record) -> None:
        if not record.is_modified:
            return
        schema = record.schema
        id_field = schema.id_field
        assignments = []
        for field in self._modified(record):
            value = record.get_field_value(field)
            if field.uses_sql_expr_for_update:
                assignments.append(f"{field.name} = {field.to_sql_expr(value)}")
            else:
                assignments.append(f"{field.name} = {sql_encode(field.to_sql_value(value))}")
        sql = (
            f"UPDATE {schema.table_name} SET {', '.join(assignments)} WHERE {id_field.name} = "
            f"{sql_encode(id_field.to_sql_value(record.get_id()))}"
        )
        self.log_query(sql)
        affected = self.get_sql_statement().execute_update(sql)
        if affected == 0:
            raise ObjectNotFoundError(record)
        if affected > 1:
            raise PrimaryKeyViolationError(schema.table_name, record.get_id(), affected)
        record.set_modified(False)

    # ------------------------------------------------------------------
    # Whole-session operations
    # ------------------------------------------------------------------

    def detach_all(self) -> None:
        for record in list(self._loaded.values()):
            record.detach()

    def save_all(self) -> None:
        for record in list(self._loaded.values()):
            self.save(record)

    def commit(self) -> None:
        if self._connection is not None and not self._connection.get_auto_commit():
            self._connection.commit()

    def rollback(self) -> None:
        if self._connection is not None and not self._connection.get_auto_commit():
            self._connection.rollback()

    def save_all_and_commit(self) -> None:
        self.save_all()
        self.commit()

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close the statement, then the connection. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        statement, self._statement = self._statement, None
        connection, self._connection = self._connection, None
        try:
            if statement is not None:
                statement.close()
        finally:
            if connection is not None:
                connection.close()
        if self._session_id:
            Manager.get_logger().debug(
                "SESSION%s: closed", self._session_id, extra={"session_id": self._session_id}
            )

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __contains__(self, record: Record) -> bool:
        record_id = record.get_id()
        return record_id is not None and self._loaded.get(self._key(record.schema, record_id)) is record

    # ------------------------------------------------------------------
    # Identity map
    # ------------------------------------------------------------------

    @staticmethod
    def _key(schema: Schema, record_id: Any) -> str:
        return f"{schema.table_name}:{record_id}"

    def _add_to_cache(self, record: Record) -> None:
        key = self._key(record.schema, record.get_id())
        previous = self._loaded.get(key)
        self._loaded[key] = record
        if previous is not None and previous is not record:
            previous._set_session(None)

    def _remove_from_cache(self, record: Record) -> None:
        if record.schema.id_field is None:
            return
        key = self._key(record.schema, record.get_id())
        if self._loaded.get(key) is record:
            del self._loaded[key]

    # ------------------------------------------------------------------
    # SQL helpers
    # ------------------------------------------------------------------

    def _fetch_from_db(self, record: Record, fields: Sequence[Field]) -> None:
        if not fields:
            return
        schema = record.schema
        id_field = schema.id_field
        sql = (
            f"SELECT {', '.join(f.name for f in fields)} FROM {schema.table_name} "
            f"WHERE {id_field.name} = {sql_encode(id_field.to_sql_value(record.get_id()))}"
        )
        self.log_query(sql)
        cursor = self.get_sql_statement().execute_query(sql)
        try:
            if not cursor.next():
                raise ObjectNotFoundError(record)
            for column, field in enumerate(fields, start=1):
                self._set_field_from_sql_value(record, field, cursor.get_object(column))
            if cursor.next():
                raise PrimaryKeyViolationError(schema.table_name, record.get_id(), cursor.row_count)
        finally:
            cursor.close()

    def _set_field_from_sql_value(self, record: Record, field: Field, raw: Any) -> None:
        value = self._from_sql_value(field, raw)
        self._validate(field, value)
        record._set_field_value_internal(field, value)

    @staticmethod
    def _from_sql_value(field: Field, raw: Any) -> Any:
        try:
            return field.from_sql_value(raw)
        except Exception as exc:
            raise InvalidSqlValueError(field, raw) from exc

    @staticmethod
    def _validate(field: Field, value: Any) -> None:
        try:
            field.validate(value)
        except ZormError:
            raise
        except Exception as exc:
            raise InvalidValueError(field, value, str(exc)) from exc

    @staticmethod
    def _not_initialized(record: Record, fields: Iterable[Field]) -> List[Field]:
        return [f for f in fields if not record.is_field_initialized(f)]

    @staticmethod
    def _modified(record: Record) -> List[Field]:
        return [f for f in record.schema.fields if record.is_field_modified(f)]

    @staticmethod
    def _schema_with_id(target: Any) -> Schema:
        schema = schema_of(target)
        if schema is None:
            raise IllegalStateError(f"{target!r} is not a record class or schema")
        if schema.id_field is None:
            raise IllegalStateError(f"Schema {schema} does not have an id field")
        return schema

    def _check_not_closed(self) -> None:
        if self._closed:
            raise IllegalStateError("Session is closed")

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Session {self._session_id or '?'} {state} records={len(self._loaded)}>"


__all__ = ["Session"]

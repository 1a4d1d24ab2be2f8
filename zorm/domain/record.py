"""
Record: an in-memory object bound to one row of a mapped table.

Declaring a record class::

    class Item(Record):
        __table__ = "item"
        __alias__ = "i"

        id = StringIntField(auto_generated=True)
        name = StringField()
        rating = IntField(auto_generated=True)
        active = BooleanField(auto_fetched=False)
        author_id = StringField(null_valid=True)

The class gets ``Item.schema``, sealed with the fields in declaration order.
A record keeps one slot per field plus two bitmaps: which fields hold a value
(initialized) and which were changed by user code since the last save
(modified). It points back to its session through a weak reference.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any, ClassVar, Iterable, List, Optional, Union

from zorm.domain.field import Field
from zorm.domain.schema import Schema
from zorm.exceptions import IllegalStateError, InvalidValueError, ZormError

if TYPE_CHECKING:
    from zorm.session import Session


class Record:
    """Base class for mapped records."""

    schema: ClassVar[Schema]

    __table__: ClassVar[Optional[str]] = None
    __alias__: ClassVar[Optional[str]] = None
    # Attribute name (or Field) of the primary key when it is not a string field named "id".
    __id_field__: ClassVar[Union[str, Field, None]] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        table = cls.__dict__.get("__table__")
        if table is None:
            return
        schema = Schema(cls, table, cls.__dict__.get("__alias__"))
        id_field = cls.__dict__.get("__id_field__")
        if isinstance(id_field, str):
            id_field = cls.__dict__[id_field]
        if id_field is not None:
            schema.id_field = id_field
        schema.set_fields(*(v for v in cls.__dict__.values() if isinstance(v, Field)))
        cls.schema = schema

    def __init__(self) -> None:
        schema = getattr(type(self), "schema", None)
        if schema is None or not schema.is_sealed:
            raise IllegalStateError(f"{type(self).__name__} has no sealed schema")
        self._values: List[Any] = [None] * len(schema.fields)
        self._initialized_mask = 0
        self._modified_mask = 0
        self._is_new = True
        self._session_ref: Optional[weakref.ref] = None

    def get_schema(self) -> Schema:
        return self.schema

    # ------------------------------------------------------------------
    # Identity & session
    # ------------------------------------------------------------------

    def get_id(self) -> Optional[str]:
        """The id value, or None when the schema has no id or it is not set yet."""
        id_field = self.schema.id_field
        if id_field is None or not self.is_field_initialized(id_field):
            return None
        return self._values[id_field.index]

    @property
    def session(self) -> Optional["Session"]:
        if self._session_ref is None:
            return None
        return self._session_ref()

    @property
    def is_attached(self) -> bool:
        return self.session is not None

    @property
    def is_new(self) -> bool:
        return self._is_new

    def _set_new(self, value: bool) -> None:
        self._is_new = value

    def _set_session(self, session: Optional["Session"]) -> None:
        self._session_ref = None if session is None else weakref.ref(session)

    def attach(self, session: "Session") -> None:
        """Bind the record to a session; non-new records enter its identity map."""
        if self.session is session:
            return
        self.detach()
        self._set_session(session)
        if not self._is_new:
            session._add_to_cache(self)

    def detach(self) -> None:
        """Leave the current session. Field values are kept."""
        session = self.session
        if session is not None and not self._is_new:
            session._remove_from_cache(self)
        self._session_ref = None

    # ------------------------------------------------------------------
    # Field values
    # ------------------------------------------------------------------

    def get_field_value(self, field: Field) -> Any:
        """Return a field value, fetching it first when the session allows lazy reads."""
        self._check_field(field)
        if not self.is_field_initialized(field):
            self._check_attached()
            self._check_not_new()
            self.session._fetch_field_on_read(self, field)
        return self._values[field.index]

    def set_field_value(self, field: Field, value: Any) -> None:
        self._check_field(field)
        if not self._is_new and field is self.schema.id_field:
            raise IllegalStateError(
                f"Modification of the id field of the non-new record {self!r} is not permitted"
            )
        try:
            field.validate(value)
        except ZormError:
            raise
        except Exception as exc:
            raise InvalidValueError(field, value, str(exc)) from exc
        self._set_field_value_internal(field, value)
        self._set_field_modified(field, True)

    def _set_field_value_internal(self, field: Field, value: Any) -> None:
        self._values[field.index] = value
        self._set_field_initialized(field, True)

    def clear_field_value(self, field: Field) -> None:
        self._check_field(field)
        if not self._is_new and field is self.schema.id_field:
            raise IllegalStateError(f"The id field {field} of {self!r} cannot be cleared")
        self._clear_slot(field)

    def clear_all_field_values(self) -> None:
        id_field = self.schema.id_field
        for field in self.schema.fields:
            if field is id_field and not self._is_new:
                continue
            self._clear_slot(field)

    def _clear_slot(self, field: Field) -> None:
        self._values[field.index] = None
        self._set_field_initialized(field, False)
        self._set_field_modified(field, False)

    # ------------------------------------------------------------------
    # Bitmaps
    # ------------------------------------------------------------------

    @property
    def initialized_mask(self) -> int:
        return self._initialized_mask

    @property
    def modified_mask(self) -> int:
        return self._modified_mask

    def is_field_initialized(self, field: Field) -> bool:
        return bool(self._initialized_mask & (1 << field.index))

    def _set_field_initialized(self, field: Field, value: bool) -> None:
        if value:
            self._initialized_mask |= 1 << field.index
        else:
            self._initialized_mask &= ~(1 << field.index)

    def is_field_modified(self, field: Field) -> bool:
        return bool(self._modified_mask & (1 << field.index))

    def _set_field_modified(self, field: Field, value: bool) -> None:
        if value:
            self._modified_mask |= 1 << field.index
        else:
            self._modified_mask &= ~(1 << field.index)

    @property
    def is_modified(self) -> bool:
        return self._modified_mask != 0

    def set_modified(self, modified: bool) -> None:
        """Mark every initialized field (except the id) as modified, or none."""
        if not modified:
            self._modified_mask = 0
            return
        self._modified_mask = self._initialized_mask
        id_field = self.schema.id_field
        if id_field is not None:
            self._modified_mask &= ~(1 << id_field.index)

    # ------------------------------------------------------------------
    # Persistence shortcuts
    # ------------------------------------------------------------------

    def fetch(self, fields: Union[Field, Iterable[Field], None] = None) -> None:
        """Load missing fields: the auto-fetched ones by default."""
        self._check_attached()
        self._check_not_new()
        if isinstance(fields, Field):
            fields = [fields]
        self.session.fetch(self, fields)

    def save(self) -> None:
        self._check_attached()
        self.session.save(self)

    def delete(self) -> bool:
        self._check_attached()
        self._check_not_new()
        return self.session.delete(self.schema, self.get_id())

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_field(self, field: Field) -> None:
        if field.schema is not self.schema:
            raise IllegalStateError(f"Field {field!r} does not belong to {self.schema!r}")

    def _check_attached(self) -> None:
        if self.session is None:
            raise IllegalStateError(
                f"Record {self!r} must be attached to a session to perform this operation"
            )

    def _check_not_new(self) -> None:
        if self._is_new:
            raise IllegalStateError(f"Record {self!r} must not be new to perform this operation")

    def __repr__(self) -> str:
        record_id = self.get_id()
        if record_id is None:
            return f"{self.schema.table_name}:[NEW]"
        return f"{self.schema.table_name}:{record_id}"

    __str__ = __repr__


def schema_of(target: Any) -> Optional[Schema]:
    """Schema of a Record subclass, record instance or Schema; None for anything else."""
    if isinstance(target, Schema):
        return target
    if isinstance(target, Record) or (isinstance(target, type) and issubclass(target, Record)):
        return getattr(target, "schema", None)
    return None


__all__ = ["Record", "schema_of"]

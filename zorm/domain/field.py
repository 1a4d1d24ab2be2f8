"""
Field descriptors: one column of a mapped table.

A field knows its column name, its loading/saving flags and how to convert
values between Python and SQL. Fields are data descriptors, so on a record
class they behave like this:

    Item.name          # the Field itself; str(Item.name) == "i.name"
    item.name          # the value, read through Record.get_field_value()
    item.name = "x"    # validated and tracked through Record.set_field_value()

A field is bound to exactly one schema. Once the schema is sealed the field
becomes immutable and its string form (``alias.column``) is fixed; that form
is what query fragments embed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from zorm.exceptions import IllegalStateError, InvalidValueError

if TYPE_CHECKING:
    from zorm.domain.record import Record
    from zorm.domain.schema import Schema


class Field:
    """
    Generic passthrough column.

    Parameters
    ----------
    name : str, optional
        Column name. Defaults to the attribute name the field is assigned to.
    auto_fetched : bool
        Whether the column is loaded whenever the record is loaded.
    auto_generated : bool
        Whether the database produces the value on INSERT.
    null_valid : bool
        Whether ``None`` is an acceptable value.
    """

    # When True, UPDATE statements embed to_sql_expr() verbatim instead of a quoted literal.
    uses_sql_expr_for_update: bool = False

    def __init__(
        self,
        name: Optional[str] = None,
        *,
        auto_fetched: bool = True,
        auto_generated: bool = False,
        null_valid: bool = False,
    ) -> None:
        self._name = name
        self._auto_fetched = auto_fetched
        self._auto_generated = auto_generated
        self._null_valid = null_valid
        self._schema: Optional[Schema] = None
        self._index = -1
        self._display: Optional[str] = None

    # ------------------------------------------------------------------
    # Descriptor protocol
    # ------------------------------------------------------------------

    def __set_name__(self, owner: type, attr_name: str) -> None:
        if self._name is None:
            self._name = attr_name

    def __get__(self, record: Optional["Record"], owner: Optional[type] = None) -> Any:
        if record is None:
            return self
        return record.get_field_value(self)

    def __set__(self, record: "Record", value: Any) -> None:
        record.set_field_value(self, value)

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    @property
    def name(self) -> Optional[str]:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._check_mutable()
        self._name = value

    @property
    def auto_fetched(self) -> bool:
        return self._auto_fetched

    @auto_fetched.setter
    def auto_fetched(self, value: bool) -> None:
        self._check_mutable()
        self._auto_fetched = value

    @property
    def auto_generated(self) -> bool:
        return self._auto_generated

    @auto_generated.setter
    def auto_generated(self, value: bool) -> None:
        self._check_mutable()
        self._auto_generated = value

    @property
    def null_valid(self) -> bool:
        return self._null_valid

    @null_valid.setter
    def null_valid(self, value: bool) -> None:
        self._check_mutable()
        self._null_valid = value

    @property
    def schema(self) -> Optional["Schema"]:
        return self._schema

    @property
    def index(self) -> int:
        return self._index

    def _attach(self, schema: "Schema", index: int) -> None:
        """Bind the field to its schema. Called once, while the schema is sealed."""
        if self._schema is not None and self._schema is not schema:
            raise IllegalStateError(f"Field {self} already belongs to schema {self._schema}")
        if not self._name:
            raise IllegalStateError("A field must have a column name before it is sealed")
        self._schema = schema
        self._index = index
        self._display = f"{schema.table_alias}.{self._name}"

    def _check_mutable(self) -> None:
        if self._schema is not None:
            raise IllegalStateError(f"Field {self} is sealed and cannot be modified")

    # ------------------------------------------------------------------
    # Value conversion
    # ------------------------------------------------------------------

    def from_sql_value(self, raw: Any) -> Any:
        """Decode a cursor cell. ``None`` stays ``None``."""
        return raw

    def to_sql_value(self, value: Any) -> Optional[str]:
        """Text to be quoted as a SQL literal, or None for NULL."""
        return None if value is None else str(value)

    def to_sql_expr(self, value: Any) -> str:
        """Raw SQL fragment used by UPDATE when uses_sql_expr_for_update is set."""
        raise NotImplementedError(
            f"{type(self).__name__} must implement to_sql_expr() to set uses_sql_expr_for_update"
        )

    def validate(self, value: Any) -> None:
        """Raise InvalidValueError if the value cannot be stored in this field."""
        if value is None and not self._null_valid:
            raise InvalidValueError(self, value, "null is not a valid value")

    # ------------------------------------------------------------------
    # Record accessors
    # ------------------------------------------------------------------

    def get_value(self, record: "Record") -> Any:
        return record.get_field_value(self)

    def set_value(self, record: "Record", value: Any) -> None:
        record.set_field_value(self, value)

    def __str__(self) -> str:
        return self._display or self._name or ""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self}>"


class GenericField(Field):
    """Passthrough field with no type constraint beyond null validity."""


class StringField(Field):
    """Text column. Only string fields may serve as a record id."""

    def validate(self, value: Any) -> None:
        super().validate(value)
        if value is not None and not isinstance(value, str):
            raise InvalidValueError(self, value, "expected a string")


class IntField(Field):
    """Integer column."""

    def from_sql_value(self, raw: Any) -> Any:
        if raw is None or isinstance(raw, int):
            return raw
        return int(raw)

    def validate(self, value: Any) -> None:
        super().validate(value)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise InvalidValueError(self, value, "expected an integer")


class StringIntField(StringField):
    """
    Integer column carried as text.

    Typical for numeric primary keys: the id stays a string in the identity map
    while the database column is an integer.
    """

    def from_sql_value(self, raw: Any) -> Any:
        if raw is None:
            return None
        # any numeric cell type is accepted
        return str(raw)

    def validate(self, value: Any) -> None:
        super().validate(value)
        if value is None:
            return
        try:
            int(value)
        except ValueError:
            raise InvalidValueError(self, value, "expected an integer string") from None


class BooleanField(Field):
    """Boolean column stored as 1/0."""

    def from_sql_value(self, raw: Any) -> Any:
        if raw is None or isinstance(raw, bool):
            return raw
        if isinstance(raw, int):
            return raw != 0
        if isinstance(raw, str) and raw.strip().lower() in ("1", "0", "true", "false", "t", "f"):
            return raw.strip().lower() in ("1", "true", "t")
        raise ValueError(f"cannot read {raw!r} as a boolean")

    def to_sql_value(self, value: Any) -> Optional[str]:
        if value is None:
            return None
        return "1" if value else "0"

    def validate(self, value: Any) -> None:
        super().validate(value)
        if value is not None and not isinstance(value, bool):
            raise InvalidValueError(self, value, "expected a boolean")


__all__ = [
    "Field",
    "GenericField",
    "StringField",
    "IntField",
    "StringIntField",
    "BooleanField",
]

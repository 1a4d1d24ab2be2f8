"""
Record schema: the static description of one mapped table.

A schema names the table, its alias in emitted SQL, the ordered list of fields
and the optional id field. ``set_fields`` seals it: indices are assigned,
each field's display string is fixed and the derived field lists are built.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Tuple, Type

from zorm.domain.field import Field, StringField
from zorm.exceptions import IllegalStateError

if TYPE_CHECKING:
    from zorm.domain.record import Record

# One bit per field in the initialized/modified masks of a record.
MAX_FIELDS = 32


class Schema:
    """
    Table metadata shared by every record of one class.

    Parameters
    ----------
    record_type : type
        Record subclass instantiated when rows are materialized.
    table_name : str
        SQL table name.
    table_alias : str, optional
        Alias used in SELECT statements. Defaults to the table name.
    """

    def __init__(
        self,
        record_type: Optional[Type["Record"]] = None,
        table_name: Optional[str] = None,
        table_alias: Optional[str] = None,
    ) -> None:
        self.record_type = record_type
        self._table_name = table_name
        self._table_alias = table_alias
        self._id_field: Optional[StringField] = None
        self._fields: Tuple[Field, ...] = ()
        self._auto_fetched_fields: Tuple[Field, ...] = ()
        self._auto_generated_fields: Tuple[Field, ...] = ()
        self._sealed = False

    @property
    def table_name(self) -> Optional[str]:
        return self._table_name

    @table_name.setter
    def table_name(self, value: str) -> None:
        self._check_not_sealed()
        self._table_name = value

    @property
    def table_alias(self) -> Optional[str]:
        return self._table_alias or self._table_name

    @table_alias.setter
    def table_alias(self, value: str) -> None:
        self._check_not_sealed()
        self._table_alias = value

    @property
    def id_field(self) -> Optional[StringField]:
        return self._id_field

    @id_field.setter
    def id_field(self, field: StringField) -> None:
        self._check_not_sealed()
        if not isinstance(field, StringField):
            raise IllegalStateError(f"The id field {field!r} must be a string field")
        if field.null_valid:
            raise IllegalStateError(f"The id field {field} cannot have null as a valid value")
        self._id_field = field

    @property
    def fields(self) -> Tuple[Field, ...]:
        return self._fields

    @property
    def auto_fetched_fields(self) -> Tuple[Field, ...]:
        """Fields loaded by default, the id field excluded."""
        return self._auto_fetched_fields

    @property
    def auto_generated_fields(self) -> Tuple[Field, ...]:
        return self._auto_generated_fields

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    def get_field(self, index: int) -> Field:
        return self._fields[index]

    def set_fields(self, *fields: Field) -> None:
        """
        Seal the schema with its fields, in declaration order.

        A string field named exactly ``id`` is adopted as the id field when none
        was set explicitly.
        """
        self._check_not_sealed()
        if len(fields) > MAX_FIELDS:
            raise IllegalStateError(
                f"Schema {self} has {len(fields)} fields; at most {MAX_FIELDS} are supported"
            )
        if not self._table_name:
            raise IllegalStateError("A schema needs a table name before its fields are set")

        if self._id_field is None:
            for field in fields:
                if isinstance(field, StringField) and field.name == "id":
                    self.id_field = field
                    break
        elif self._id_field not in fields:
            raise IllegalStateError(f"The id field {self._id_field!r} is not among the fields")

        for index, field in enumerate(fields):
            field._attach(self, index)

        self._fields = tuple(fields)
        self._auto_fetched_fields = tuple(
            f for f in fields if f.auto_fetched and f is not self._id_field
        )
        self._auto_generated_fields = tuple(f for f in fields if f.auto_generated)
        self._sealed = True

    def new_record(self) -> "Record":
        """Instantiate a fresh, new record of this schema's class."""
        if self.record_type is None:
            raise IllegalStateError(f"Schema {self} has no record type")
        return self.record_type()

    def _check_not_sealed(self) -> None:
        if self._sealed:
            raise IllegalStateError(f"Schema {self} is sealed")

    def __str__(self) -> str:
        return self.table_alias or ""

    def __repr__(self) -> str:
        return f"<Schema {self._table_name} as {self.table_alias}>"


__all__ = ["MAX_FIELDS", "Schema"]

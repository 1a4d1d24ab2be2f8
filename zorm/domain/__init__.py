"""
Domain package for zorm.

Exports the mapping metadata (fields, schemas) and the Record base class that
user-defined record classes extend. Keep this package free of SQL I/O: the
session drives loading and saving.
"""

from zorm.domain.field import (
    BooleanField,
    Field,
    GenericField,
    IntField,
    StringField,
    StringIntField,
)
from zorm.domain.record import Record, schema_of
from zorm.domain.schema import MAX_FIELDS, Schema

__all__ = [
    "BooleanField",
    "Field",
    "GenericField",
    "IntField",
    "StringField",
    "StringIntField",
    "Record",
    "schema_of",
    "MAX_FIELDS",
    "Schema",
]

from __future__ import annotations

import pytest

from helpers import Item, User
from zorm.domain.field import BooleanField, Field, GenericField, IntField, StringField, StringIntField
from zorm.exceptions import IllegalStateError, InvalidValueError


def test_class_access_returns_field_with_alias_prefixed_display() -> None:
    assert isinstance(Item.name, StringField)
    assert Item.name.name == "name"
    assert str(Item.name) == "i.name"
    assert str(User.id) == "u.id"


def test_fields_take_attribute_name_unless_given() -> None:
    field = StringField("explicit_column")
    field.__set_name__(object, "attr")
    assert field.name == "explicit_column"


def test_default_flags() -> None:
    field = GenericField("x")
    assert field.auto_fetched is True
    assert field.auto_generated is False
    assert field.null_valid is False
    assert field.uses_sql_expr_for_update is False


def test_indices_follow_declaration_order() -> None:
    assert [f.index for f in Item.schema.fields] == [0, 1, 2, 3, 4]
    assert Item.author_id.schema is Item.schema


def test_sealed_field_is_immutable() -> None:
    with pytest.raises(IllegalStateError):
        Item.name.auto_fetched = False
    with pytest.raises(IllegalStateError):
        Item.name.name = "title"


def test_unsealed_field_flags_can_change() -> None:
    field = IntField("count")
    field.null_valid = True
    field.auto_generated = True
    assert field.null_valid and field.auto_generated


def test_null_rejected_unless_null_valid() -> None:
    with pytest.raises(InvalidValueError):
        StringField("s").validate(None)
    StringField("s", null_valid=True).validate(None)


def test_string_field_requires_str() -> None:
    with pytest.raises(InvalidValueError):
        StringField("s").validate(3)


def test_int_field_rejects_bool_and_decodes_text() -> None:
    field = IntField("n")
    field.validate(4)
    with pytest.raises(InvalidValueError):
        field.validate(True)
    assert field.from_sql_value("12") == 12
    assert field.from_sql_value(None) is None


def test_string_int_field() -> None:
    field = StringIntField("id")
    assert field.from_sql_value(7) == "7"
    field.validate("42")
    with pytest.raises(InvalidValueError):
        field.validate("abc")
    with pytest.raises(InvalidValueError):
        field.validate(42)


def test_boolean_field_encoding() -> None:
    field = BooleanField("flag")
    assert field.to_sql_value(True) == "1"
    assert field.to_sql_value(False) == "0"
    assert field.to_sql_value(None) is None
    assert field.from_sql_value(1) is True
    assert field.from_sql_value(0) is False
    assert field.from_sql_value("t") is True
    with pytest.raises(ValueError):
        field.from_sql_value("maybe")
    with pytest.raises(InvalidValueError):
        field.validate(1)


def test_to_sql_value_is_text() -> None:
    assert GenericField("g").to_sql_value(5) == "5"
    assert GenericField("g").to_sql_value(None) is None


def test_to_sql_expr_needs_subclass() -> None:
    with pytest.raises(NotImplementedError):
        Field("f").to_sql_expr(1)

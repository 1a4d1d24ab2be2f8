"""
SQL literal encoding and small fragment helpers.

Literals follow the standard SQL string syntax understood by sqlite3 and
PostgreSQL: single quotes, embedded quotes doubled, backslashes kept as
ordinary characters. ``None`` becomes ``NULL``. Everything else a query is
built from is raw text and is inserted verbatim, so untrusted input must go
through ``sql_encode`` or ``value``.
"""

from __future__ import annotations

from typing import Any, Optional

from zorm.exceptions import SqlError

# SQL values
NULL = "NULL"

# Logical operators
NOT = "NOT"
AND = "AND"
OR = "OR"

# Arithmetic operators
PLUS = "+"
MINUS = "-"
MULTIPLY = "*"
DIVIDE = "/"

# Comparison operators
EQUALS = "="
NOT_EQUALS = "<>"
LESS = "<"
LESS_EQUAL = "<="
GREATER = ">"
GREATER_EQUAL = ">="
IS_NULL = "IS NULL"
IS_NOT_NULL = "IS NOT NULL"
LIKE = "LIKE"

# Other operators
CONCATENATE = "||"
IN = "IN"
BETWEEN = "BETWEEN"


def sql_encode(text: Optional[str]) -> str:
    """
    Quote a literal; None becomes NULL.

    Raises
    ------
    SqlError
        If the text holds a NUL character, which neither driver accepts
        inside a statement.
    """
    if text is None:
        return NULL
    text = str(text)
    if "\0" in text:
        raise SqlError(None, "A SQL literal cannot contain a NUL character")
    return "'" + text.replace("'", "''") + "'"


def value(ob: Any) -> str:
    """Encode the string form of any object as a SQL literal."""
    return sql_encode(None if ob is None else str(ob))


def desc(expr: Any) -> str:
    """Descending ORDER BY item."""
    return f"{expr} DESC"


def other(expr: Any, index: int) -> str:
    """Rename a table alias (or ``alias.column``) for the index-th use of a table."""
    return f"t{index}_{expr}"


def second(expr: Any) -> str:
    return other(expr, 2)


__all__ = [
    "NULL",
    "NOT",
    "AND",
    "OR",
    "PLUS",
    "MINUS",
    "MULTIPLY",
    "DIVIDE",
    "EQUALS",
    "NOT_EQUALS",
    "LESS",
    "LESS_EQUAL",
    "GREATER",
    "GREATER_EQUAL",
    "IS_NULL",
    "IS_NOT_NULL",
    "LIKE",
    "CONCATENATE",
    "IN",
    "BETWEEN",
    "sql_encode",
    "value",
    "desc",
    "other",
    "second",
]

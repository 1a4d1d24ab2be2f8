"""
Query package for zorm.

SQL literal encoding, WHERE/HAVING expression assembly and the fluent
SelectQuery builder. Everything here produces SQL text; execution goes
through a Session.
"""

from zorm.query.encoder import (
    AND,
    BETWEEN,
    CONCATENATE,
    DIVIDE,
    EQUALS,
    GREATER,
    GREATER_EQUAL,
    IN,
    IS_NOT_NULL,
    IS_NULL,
    LESS,
    LESS_EQUAL,
    LIKE,
    MINUS,
    MULTIPLY,
    NOT,
    NOT_EQUALS,
    NULL,
    OR,
    PLUS,
    desc,
    other,
    second,
    sql_encode,
    value,
)
from zorm.query.expression import Expression
from zorm.query.select import Join, SelectGroup, SelectQuery

__all__ = [
    "AND",
    "BETWEEN",
    "CONCATENATE",
    "DIVIDE",
    "EQUALS",
    "GREATER",
    "GREATER_EQUAL",
    "IN",
    "IS_NOT_NULL",
    "IS_NULL",
    "LESS",
    "LESS_EQUAL",
    "LIKE",
    "MINUS",
    "MULTIPLY",
    "NOT",
    "NOT_EQUALS",
    "NULL",
    "OR",
    "PLUS",
    "desc",
    "other",
    "second",
    "sql_encode",
    "value",
    "Expression",
    "Join",
    "SelectGroup",
    "SelectQuery",
]

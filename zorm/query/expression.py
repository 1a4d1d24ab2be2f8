"""AND-joined expression buffer used for WHERE and HAVING clauses."""

from __future__ import annotations

from typing import Any, List


class Expression:
    """
    Growing list of parenthesized conditions, rendered joined by ``AND``.

    Fragments are converted with ``str()``, so fields (``i.name``), operator
    constants and pre-encoded literals can be mixed freely::

        Expression().expr(Item.active, EQUALS, "1").between(Item.rating, 5, 10)
        # (i.active = 1) AND (i.rating BETWEEN 5 AND 10)
    """

    def __init__(self) -> None:
        self._parts: List[str] = []

    def expr(self, *fragments: Any) -> "Expression":
        """Add one condition made of space-separated fragments."""
        self._parts.append("(" + " ".join(str(f) for f in fragments) + ")")
        return self

    def between(self, element: Any, low_limit: Any, high_limit: Any) -> "Expression":
        self._parts.append(f"({element} BETWEEN {low_limit} AND {high_limit})")
        return self

    def in_(self, element: Any, *values: Any) -> "Expression":
        self._parts.append(f"({element} IN ({', '.join(str(v) for v in values)}))")
        return self

    def clear(self) -> "Expression":
        self._parts.clear()
        return self

    def __bool__(self) -> bool:
        return bool(self._parts)

    def __len__(self) -> int:
        return len(self._parts)

    def __str__(self) -> str:
        return " AND ".join(self._parts)

    def __repr__(self) -> str:
        return f"Expression({str(self)!r})"


__all__ = ["Expression"]

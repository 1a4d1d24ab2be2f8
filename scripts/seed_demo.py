"""
Demo database seeding script for zorm.

Creates the ``item`` and ``user`` tables and loads a handful of rows, so the
``zorm query`` command and the examples have something to read. The same
fixture backs the integration tests.
"""

from __future__ import annotations

import sys
from typing import Optional

import typer

from zorm.config import get_settings
from zorm.infrastructure.db_factory import connect, driver_for_url
from zorm.infrastructure.sql_client import SqlConnection
from zorm.query.encoder import sql_encode

app = typer.Typer(help="Create and seed the demo item/user tables.")

_DDL = {
    "sqlite3": [
        "DROP TABLE IF EXISTS item",
        "DROP TABLE IF EXISTS user",
        "CREATE TABLE item (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL, "
        "rating INTEGER NOT NULL DEFAULT 0, active INTEGER NOT NULL DEFAULT 1, author_id TEXT)",
        "CREATE TABLE user (id TEXT PRIMARY KEY, name TEXT NOT NULL)",
    ],
    "psycopg": [
        "DROP TABLE IF EXISTS item",
        'DROP TABLE IF EXISTS "user"',
        "CREATE TABLE item (id SERIAL PRIMARY KEY, name TEXT NOT NULL, "
        "rating INTEGER NOT NULL DEFAULT 0, active INTEGER NOT NULL DEFAULT 1, author_id TEXT)",
        'CREATE TABLE "user" (id TEXT PRIMARY KEY, name TEXT NOT NULL)',
    ],
}

ITEM_ROWS = [
    (1, "item1", 2, 1, "john"),
    (2, "item2", 3, 0, None),
]

USER_ROWS = [
    ("john", "John Doe"),
    ("janet", "Janet Roe"),
]


def _literal(value: object) -> str:
    if isinstance(value, int):
        return str(value)
    return sql_encode(None if value is None else str(value))


def seed(connection: SqlConnection, driver: str = "sqlite3") -> None:
    """Recreate the demo tables on ``connection`` and commit."""
    user_table = '"user"' if driver == "psycopg" else "user"
    statement = connection.create_statement()
    try:
        for ddl in _DDL[driver]:
            statement.execute_update(ddl)
        for row in ITEM_ROWS:
            statement.execute_update(
                "INSERT INTO item (id, name, rating, active, author_id) VALUES "
                f"({', '.join(_literal(v) for v in row)})"
            )
        for row in USER_ROWS:
            statement.execute_update(
                f"INSERT INTO {user_table} (id, name) VALUES ({', '.join(_literal(v) for v in row)})"
            )
        if driver == "psycopg":
            statement.execute_update(
                "SELECT setval(pg_get_serial_sequence('item', 'id'), (SELECT MAX(id) FROM item))"
            )
    finally:
        statement.close()
    if not connection.get_auto_commit():
        connection.commit()


@app.command()
def main(
    url: Optional[str] = typer.Option(
        None,
        "--url",
        "-u",
        help="Database URL (default from ZORM_DATABASE_URL).",
    ),
) -> None:
    """
    Create the demo tables and rows.
    """
    target = url or get_settings().database_url
    connection = connect(target)
    try:
        seed(connection, driver_for_url(target))
    finally:
        connection.close()
    typer.echo(f"Seeded {len(ITEM_ROWS)} items and {len(USER_ROWS)} users into {target}")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)

from __future__ import annotations

import sys
from typing import Optional

import typer

from zorm.config import get_settings
from zorm.exceptions import ZormError
from zorm.manager import Manager
from zorm.reporter import print_query_result, print_settings
from zorm.utils.logging import configure_logging

app = typer.Typer(help="zorm command line: inspect configuration and run queries.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    print_settings(get_settings())


@app.command()
def query(
    sql: str = typer.Argument(..., help="SELECT statement to run."),
    url: Optional[str] = typer.Option(
        None,
        "--url",
        "-u",
        help="Database URL (default from ZORM_DATABASE_URL).",
    ),
) -> None:
    """
    Run a SELECT statement through a session and print the rows.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    Manager.set_database_url(url or settings.database_url)

    try:
        with Manager.get_new_session() as session:
            result = session.select_query().custom_query(sql).execute()
    except ZormError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    print_query_result(sql, result)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()

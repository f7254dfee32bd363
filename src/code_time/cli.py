"""Command-line interface for code time tracking."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer

from .config import EngineSettings, ServerSettings
from .models import User
from .paths import get_db_path

app = typer.Typer(help="Local-first coding time tracker.")


@app.callback(no_args_is_help=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
) -> None:
    ctx.obj = {"log_level": "debug" if verbose else "info"}
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the events SQLite database."
    ),
    idle_minutes: float = typer.Option(
        5.0,
        "--idle-threshold",
        min=0.5,
        help="Longest gap in minutes between events still counted as active.",
    ),
) -> None:
    """Run the event ingestion and reporting API."""
    from .server_runner import run_server

    engine = EngineSettings.from_milliseconds(int(idle_minutes * 60_000))
    log_level = (ctx.obj or {}).get("log_level", "info")
    run_server(
        ServerSettings(
            host=host, port=port, db_path=db_path, log_level=log_level, engine=engine
        )
    )


@app.command("create-user")
def create_user(
    email: str = typer.Argument(..., help="Email address of the new user."),
    name: Optional[str] = typer.Option(None, "--name", help="Display name."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the events SQLite database."
    ),
) -> None:
    """Register a user and print the API token for the editor plugin."""
    from .db import create_user as insert_user, database_connection

    with database_connection(db_path or get_db_path()) as conn:
        try:
            user = insert_user(conn, email, name=name)
        except ValueError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1) from exc
    typer.echo(user.token)


@app.command()
def minutes(
    email: str = typer.Argument(..., help="Email address of the user."),
    window: int = typer.Option(
        60, "--minutes", min=0, help="Size of the trailing window in minutes."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the events SQLite database."
    ),
) -> None:
    """Print active minutes over the trailing window."""
    from .analytics import minutes_since, trailing_window_start
    from .db import database_connection, fetch_events

    now = datetime.now(timezone.utc)
    with database_connection(db_path or get_db_path()) as conn:
        user = _require_user(conn, email)
        events = fetch_events(conn, user.id, trailing_window_start(now, window), now)
    typer.echo(str(minutes_since(events, now, window)))


@app.command()
def summary(
    email: str = typer.Argument(..., help="Email address of the user."),
    period: str = typer.Option(
        "7d", "--period", help="Reporting period: today, 7d or 30d."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the events SQLite database."
    ),
) -> None:
    """Print coding time per language, workspace, platform and day."""
    from .analytics import AnalyticsCalculator, period_start, resolve_period
    from .db import database_connection
    from .reporting import SummaryPrinter

    resolved = resolve_period(period)
    end = datetime.now(timezone.utc)
    start = period_start(resolved, end)
    with database_connection(db_path or get_db_path()) as conn:
        user = _require_user(conn, email)
        calculator = AnalyticsCalculator.for_user(conn, user.id, start, end)
    SummaryPrinter(echo=typer.echo).print_report(calculator.report(resolved))


def _require_user(conn: sqlite3.Connection, email: str) -> User:
    from .db import fetch_user_by_email

    user = fetch_user_by_email(conn, email)
    if user is None:
        typer.echo(f"No user found for {email}", err=True)
        raise typer.Exit(code=1)
    return user

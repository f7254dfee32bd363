"""SQLite database layer for users and editor events."""

from __future__ import annotations

import secrets
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .models import EditorEvent, User


DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"

_EVENT_COLUMNS = (
    "event_time",
    "event_type",
    "operation_type",
    "language",
    "project",
    "platform",
    "platform_arch",
    "editor",
    "relative_file",
    "absolute_file",
    "git_origin",
    "git_branch",
)


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    enable_foreign_keys(conn)
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def enable_foreign_keys(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA foreign_keys = ON;")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY,
            email TEXT NOT NULL UNIQUE COLLATE NOCASE,
            name TEXT,
            token TEXT NOT NULL UNIQUE,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS event_logs (
            id INTEGER PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            event_time TEXT NOT NULL,
            event_type TEXT NOT NULL,
            operation_type TEXT,
            language TEXT,
            project TEXT,
            platform TEXT,
            platform_arch TEXT,
            editor TEXT,
            relative_file TEXT,
            absolute_file TEXT,
            git_origin TEXT,
            git_branch TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_event_logs_user_time
            ON event_logs(user_id, event_time);
        """
    )


def format_timestamp(value: datetime) -> str:
    """Serialize an aware datetime as sortable UTC text."""
    value = value.astimezone(timezone.utc)
    # strftime does not pad years below 1000 on every platform.
    return f"{value.year:04d}-" + value.strftime(DATETIME_FMT[3:])


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, DATETIME_FMT).replace(tzinfo=timezone.utc)


def create_user(
    conn: sqlite3.Connection,
    email: str,
    *,
    name: Optional[str] = None,
    token: Optional[str] = None,
) -> User:
    """Insert a user, generating an API token when none is given."""
    token = token or secrets.token_hex(32)
    created_at = datetime.now(timezone.utc)
    try:
        cur = conn.execute(
            "INSERT INTO users (email, name, token, created_at) VALUES (?, ?, ?, ?)",
            (email, name, token, format_timestamp(created_at)),
        )
    except sqlite3.IntegrityError as exc:
        raise ValueError(f"A user with email {email!r} or this token already exists") from exc
    return User(id=cur.lastrowid, email=email, token=token, name=name, created_at=created_at)


def fetch_user_by_token(conn: sqlite3.Connection, token: str) -> Optional[User]:
    row = conn.execute(
        "SELECT id, email, name, token, created_at FROM users WHERE token = ?",
        (token,),
    ).fetchone()
    return _row_to_user(row) if row else None


def fetch_user_by_email(conn: sqlite3.Connection, email: str) -> Optional[User]:
    row = conn.execute(
        "SELECT id, email, name, token, created_at FROM users WHERE email = ?",
        (email,),
    ).fetchone()
    return _row_to_user(row) if row else None


def insert_events(
    conn: sqlite3.Connection, user_id: int, events: Iterable[EditorEvent]
) -> None:
    placeholders = ", ".join("?" for _ in _EVENT_COLUMNS)
    conn.executemany(
        f"""
        INSERT INTO event_logs (user_id, {', '.join(_EVENT_COLUMNS)})
        VALUES (?, {placeholders})
        """,
        [
            (
                user_id,
                format_timestamp(event.timestamp),
                event.event_type,
                event.operation_type,
                event.language,
                event.project,
                event.platform,
                event.platform_arch,
                event.editor,
                event.relative_file,
                event.absolute_file,
                event.git_origin,
                event.git_branch,
            )
            for event in events
        ],
    )


def fetch_events(
    conn: sqlite3.Connection,
    user_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[EditorEvent]:
    """Fetch a user's events inside the inclusive window, oldest first."""
    clauses = ["user_id = ?"]
    params: list[object] = [user_id]
    if start is not None:
        clauses.append("event_time >= ?")
        params.append(format_timestamp(start))
    if end is not None:
        clauses.append("event_time <= ?")
        params.append(format_timestamp(end))
    rows = conn.execute(
        f"""
        SELECT id, {', '.join(_EVENT_COLUMNS)}
        FROM event_logs
        WHERE {' AND '.join(clauses)}
        ORDER BY event_time;
        """,
        params,
    )
    return [_row_to_event(row) for row in rows]


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        token=row["token"],
        name=row["name"],
        created_at=parse_timestamp(row["created_at"]),
    )


def _row_to_event(row: sqlite3.Row) -> EditorEvent:
    return EditorEvent(
        id=row["id"],
        timestamp=parse_timestamp(row["event_time"]),
        event_type=row["event_type"],
        operation_type=row["operation_type"],
        language=row["language"],
        project=row["project"],
        platform=row["platform"],
        platform_arch=row["platform_arch"],
        editor=row["editor"],
        relative_file=row["relative_file"],
        absolute_file=row["absolute_file"],
        git_origin=row["git_origin"],
        git_branch=row["git_branch"],
    )

"""SQLite database layer for job-search records and per-user key/value state."""

import sqlite3
from datetime import datetime
from pathlib import Path

_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT    NOT NULL,
    search_id       TEXT    NOT NULL,
    json            TEXT    NOT NULL,
    closed          INTEGER NOT NULL DEFAULT 0,
    closed_date     TEXT,
    created         TEXT    NOT NULL,
    last_modified   TEXT    NOT NULL,
    UNIQUE(user_id, search_id)
);
"""

_KV_TABLE = """
CREATE TABLE IF NOT EXISTS kv_store (
    user_id     TEXT NOT NULL,
    key         TEXT NOT NULL,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL,
    PRIMARY KEY (user_id, key)
);
"""


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_JOBS_TABLE)
    conn.execute(_KV_TABLE)
    conn.commit()
    return conn


def upsert_search_record(
    conn: sqlite3.Connection,
    user_id: str,
    search_id: str,
    body_json: str,
    closed: int,
    created: datetime,
    closed_date: datetime | None = None,
) -> bool:
    """Insert or update one search row. Returns True if a new row was inserted."""
    now = datetime.now().isoformat()
    existing = conn.execute(
        "SELECT 1 FROM jobs WHERE user_id = ? AND search_id = ?",
        (user_id, search_id),
    ).fetchone()
    conn.execute(
        """
        INSERT INTO jobs
            (user_id, search_id, json, closed, closed_date, created, last_modified)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(user_id, search_id)
        DO UPDATE SET
            json = excluded.json,
            closed = excluded.closed,
            closed_date = excluded.closed_date,
            last_modified = excluded.last_modified
        """,
        (
            user_id,
            search_id,
            body_json,
            closed,
            closed_date.isoformat() if closed_date else None,
            created.isoformat(),
            now,
        ),
    )
    conn.commit()
    return existing is None


def fetch_search_records(conn: sqlite3.Connection, user_id: str) -> list[sqlite3.Row]:
    """Return every search row for a user, newest first."""
    return conn.execute(
        """
        SELECT search_id, json, closed, closed_date, created
        FROM jobs
        WHERE user_id = ?
        ORDER BY created DESC, id DESC
        """,
        (user_id,),
    ).fetchall()


def set_search_closed(
    conn: sqlite3.Connection,
    search_id: str,
    closed: int,
    closed_date: datetime | None,
) -> int:
    """Partial update of the closed flag. Returns the number of rows touched."""
    cursor = conn.execute(
        """
        UPDATE jobs
        SET closed = ?, closed_date = ?, last_modified = ?
        WHERE search_id = ?
        """,
        (
            closed,
            closed_date.isoformat() if closed_date else None,
            datetime.now().isoformat(),
            search_id,
        ),
    )
    conn.commit()
    return cursor.rowcount


def delete_search_record(conn: sqlite3.Connection, search_id: str) -> int:
    """Permanently delete a search row. Returns the number of rows removed."""
    cursor = conn.execute("DELETE FROM jobs WHERE search_id = ?", (search_id,))
    conn.commit()
    return cursor.rowcount


def kv_get(conn: sqlite3.Connection, user_id: str, key: str) -> str | None:
    row = conn.execute(
        "SELECT value FROM kv_store WHERE user_id = ? AND key = ?",
        (user_id, key),
    ).fetchone()
    return None if row is None else row["value"]


def kv_set(conn: sqlite3.Connection, user_id: str, key: str, value: str) -> None:
    conn.execute(
        """
        INSERT INTO kv_store (user_id, key, value, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(user_id, key)
        DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
        """,
        (user_id, key, value, datetime.now().isoformat()),
    )
    conn.commit()

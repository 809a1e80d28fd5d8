"""SQLite database for audit logging."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

SCHEMA = """
-- One row per handled event
CREATE TABLE IF NOT EXISTS event_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
    conversation_id INTEGER NOT NULL,
    user_id INTEGER,
    event TEXT NOT NULL,
    screen_before TEXT,
    screen_after TEXT,
    success BOOLEAN DEFAULT 1,
    error_message TEXT
);

CREATE INDEX IF NOT EXISTS idx_event_logs_conversation ON event_logs(conversation_id);
CREATE INDEX IF NOT EXISTS idx_event_logs_timestamp ON event_logs(timestamp);
"""


@contextmanager
def get_connection(db_path: Path) -> Generator[sqlite3.Connection, None, None]:
    """Get a database connection as a context manager."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Path) -> None:
    """Initialize the database with the schema."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with get_connection(db_path) as conn:
        conn.executescript(SCHEMA)
        conn.commit()


def get_recent_events(db_path: Path, conversation_id: int | None = None, limit: int = 50) -> list[dict]:
    """Get the most recent events, newest first."""
    with get_connection(db_path) as conn:
        if conversation_id is not None:
            rows = conn.execute("""
                SELECT * FROM event_logs
                WHERE conversation_id = ?
                ORDER BY id DESC
                LIMIT ?
            """, (conversation_id, limit)).fetchall()
        else:
            rows = conn.execute("""
                SELECT * FROM event_logs
                ORDER BY id DESC
                LIMIT ?
            """, (limit,)).fetchall()

        return [dict(row) for row in rows]


def get_event_counts(db_path: Path, hours: int = 24) -> list[dict]:
    """Count events by type over the last `hours`."""
    since = datetime.now(timezone.utc) - timedelta(hours=hours)

    with get_connection(db_path) as conn:
        rows = conn.execute("""
            SELECT event, COUNT(*) as count,
                   SUM(CASE WHEN success THEN 1 ELSE 0 END) as success_count
            FROM event_logs
            WHERE timestamp > ?
            GROUP BY event
            ORDER BY count DESC
        """, (since.strftime("%Y-%m-%d %H:%M:%S"),)).fetchall()

        return [dict(row) for row in rows]

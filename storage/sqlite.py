"""SQLite-backed server configuration store."""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

from . import ServerNotFoundError, StorageError
from .models import ServerRecord

logger = logging.getLogger(__name__)

MIGRATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    applied_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""

# (version, script) pairs, applied in order
MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS servers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            conversation_id INTEGER NOT NULL UNIQUE,
            host TEXT NOT NULL,
            port INTEGER NOT NULL DEFAULT 25565,
            name TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """,
    ),
]

_COLUMNS = "id, conversation_id, host, port, name, created_at, updated_at"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_record(row: sqlite3.Row) -> ServerRecord:
    return ServerRecord(
        id=row["id"],
        conversation_id=row["conversation_id"],
        host=row["host"],
        port=row["port"],
        name=row["name"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class SqliteServerStorage:
    """ServerStorage over a single SQLite file, one connection per operation."""

    def __init__(self, db_path: str | Path):
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.run_migrations()
        except sqlite3.Error as e:
            logger.error("Failed to initialize database %s: %s", self._db_path, e)
            raise StorageError(f"failed to initialize database: {e}") from e

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        """Open an autocommit connection; callers manage transactions explicitly."""
        conn = sqlite3.connect(self._db_path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def run_migrations(self) -> int:
        """Apply pending migrations. Returns the resulting schema version."""
        with self._connect() as conn:
            conn.execute(MIGRATIONS_TABLE)
            current = conn.execute(
                "SELECT COALESCE(MAX(version), 0) FROM schema_migrations"
            ).fetchone()[0]

            for version, script in MIGRATIONS:
                if version <= current:
                    continue
                logger.debug("Applying migration %d", version)
                conn.execute("BEGIN IMMEDIATE")
                try:
                    for statement in script.split(";"):
                        if statement.strip():
                            conn.execute(statement)
                    conn.execute(
                        "INSERT INTO schema_migrations (version) VALUES (?)", (version,)
                    )
                    conn.execute("COMMIT")
                except sqlite3.Error:
                    conn.execute("ROLLBACK")
                    raise
                current = version

            return current

    def get_by_conversation(self, conversation_id: int) -> ServerRecord:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    f"SELECT {_COLUMNS} FROM servers WHERE conversation_id = ?",
                    (conversation_id,),
                ).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to get server for conversation %d: %s", conversation_id, e)
            raise StorageError(f"failed to get server: {e}") from e

        if row is None:
            raise ServerNotFoundError(conversation_id)
        return _row_to_record(row)

    def upsert(self, record: ServerRecord) -> ServerRecord:
        """
        Create or update the record for `record.conversation_id`.

        Read and write happen inside one IMMEDIATE transaction, so concurrent
        writers for the same conversation serialize and the last one wins.
        `record` is updated in place with the stored id and timestamps.
        """
        try:
            with self._connect() as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    existing = conn.execute(
                        "SELECT updated_at FROM servers WHERE conversation_id = ?",
                        (record.conversation_id,),
                    ).fetchone()

                    now = _now()
                    if existing is not None:
                        previous = datetime.fromisoformat(existing["updated_at"])
                        if now <= previous:
                            now = previous + timedelta(microseconds=1)

                    stamp = now.isoformat()
                    conn.execute(
                        """
                        INSERT INTO servers (conversation_id, host, port, name, created_at, updated_at)
                        VALUES (?, ?, ?, ?, ?, ?)
                        ON CONFLICT(conversation_id) DO UPDATE SET
                            host = excluded.host,
                            port = excluded.port,
                            name = excluded.name,
                            updated_at = excluded.updated_at
                        """,
                        (record.conversation_id, record.host, record.port, record.name, stamp, stamp),
                    )
                    row = conn.execute(
                        f"SELECT {_COLUMNS} FROM servers WHERE conversation_id = ?",
                        (record.conversation_id,),
                    ).fetchone()
                    conn.execute("COMMIT")
                except sqlite3.Error:
                    conn.execute("ROLLBACK")
                    raise
        except sqlite3.Error as e:
            logger.error(
                "Failed to upsert server for conversation %d: %s", record.conversation_id, e
            )
            raise StorageError(f"failed to save server: {e}") from e

        stored = _row_to_record(row)
        record.id = stored.id
        record.created_at = stored.created_at
        record.updated_at = stored.updated_at
        logger.info(
            "Server for conversation %d saved: %s", record.conversation_id, record.address
        )
        return stored

    def delete(self, conversation_id: int) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM servers WHERE conversation_id = ?", (conversation_id,))
        except sqlite3.Error as e:
            logger.error("Failed to delete server for conversation %d: %s", conversation_id, e)
            raise StorageError(f"failed to delete server: {e}") from e
        logger.info("Server for conversation %d deleted", conversation_id)

    def close(self) -> None:
        # Connections are per operation; nothing is held open.
        logger.debug("Closing server storage %s", self._db_path)

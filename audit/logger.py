"""Audit logging for handled bot events."""

import logging
import sqlite3
import threading
from pathlib import Path

from .database import get_connection, get_event_counts, get_recent_events, init_db

logger = logging.getLogger(__name__)


class AuditLogger:
    """Writes one audit row per handled event."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self._initialized = False
        self._lock = threading.Lock()

    def _ensure_db(self) -> None:
        """Ensure database is initialized (thread-safe)."""
        if not self._initialized:
            with self._lock:
                if not self._initialized:  # Double-check pattern
                    init_db(self.db_path)
                    self._initialized = True

    def log_event(
        self,
        conversation_id: int,
        event: str,
        user_id: int | None = None,
        screen_before: str | None = None,
        screen_after: str | None = None,
        success: bool = True,
        error_message: str | None = None,
    ) -> None:
        """Log a handled event. Audit failures never break event handling."""
        try:
            self._ensure_db()
            with get_connection(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO event_logs
                    (conversation_id, user_id, event, screen_before, screen_after, success, error_message)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        conversation_id,
                        user_id,
                        event,
                        screen_before,
                        screen_after,
                        success,
                        error_message[:500] if error_message else None,
                    ),
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.error("Failed to write audit entry for %s: %s", event, e)

    def recent_events(self, conversation_id: int | None = None, limit: int = 50) -> list[dict]:
        self._ensure_db()
        return get_recent_events(self.db_path, conversation_id, limit)

    def event_counts(self, hours: int = 24) -> list[dict]:
        self._ensure_db()
        return get_event_counts(self.db_path, hours)

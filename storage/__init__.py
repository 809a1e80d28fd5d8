"""Persistence of per-conversation server configuration."""

from typing import Protocol

from .models import ServerRecord


class StorageError(Exception):
    """Raised when the underlying store fails."""

    pass


class ServerNotFoundError(LookupError):
    """Raised when a conversation has no server configured."""

    def __init__(self, conversation_id: int):
        super().__init__(f"server configuration not found for conversation {conversation_id}")
        self.conversation_id = conversation_id


class ServerStorage(Protocol):
    """Record store keyed by conversation id, at most one record per conversation."""

    def get_by_conversation(self, conversation_id: int) -> ServerRecord:
        """Return the record or raise ServerNotFoundError."""
        ...

    def upsert(self, record: ServerRecord) -> ServerRecord:
        """Create or update the record, preserving id and created_at."""
        ...

    def delete(self, conversation_id: int) -> None:
        """Remove the record. Deleting a missing record is not an error."""
        ...

    def close(self) -> None: ...


__all__ = ["ServerRecord", "ServerStorage", "ServerNotFoundError", "StorageError"]

"""Persisted server configuration."""

from dataclasses import dataclass
from datetime import datetime

from address import ServerAddress, format_address


@dataclass
class ServerRecord:
    """Server configured for one conversation."""

    conversation_id: int
    host: str
    port: int
    name: str = ""
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def address(self) -> str:
        return format_address(self.host, self.port)

    @property
    def label(self) -> str:
        return self.name or self.address

    def to_address(self) -> ServerAddress:
        return ServerAddress(host=self.host, port=self.port, display_name=self.name)

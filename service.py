"""Server configuration and status lookups for a conversation."""

import asyncio
import logging
from dataclasses import dataclass

from minecraft import DEFAULT_TIMEOUT_SECONDS, ProbeCancelledError, ProbeResult, StatusProbe
from storage import ServerNotFoundError, ServerRecord, ServerStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusResult:
    """
    Outcome of a status lookup.

    Exactly one of three shapes:
    - record is None: the conversation has no server configured
    - record and probe set: the probe completed (online or not)
    - record and error set: the probe was abandoned before completing
    """

    record: ServerRecord | None = None
    probe: ProbeResult | None = None
    error: Exception | None = None

    @property
    def configured(self) -> bool:
        return self.record is not None

    @property
    def online(self) -> bool:
        return self.probe is not None and self.probe.online


class ServerService:
    """Ties the config store and the status probe together."""

    def __init__(
        self,
        storage: ServerStorage,
        probe: StatusProbe,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._storage = storage
        self._probe = probe
        self._timeout = timeout

    def get_config(self, conversation_id: int) -> ServerRecord | None:
        """Return the configured server, or None when there is none."""
        logger.debug("Getting server config for conversation %d", conversation_id)
        try:
            return self._storage.get_by_conversation(conversation_id)
        except ServerNotFoundError:
            return None

    def set_config(self, conversation_id: int, host: str, port: int, name: str = "") -> ServerRecord:
        """Create or replace the conversation's server. Storage errors propagate."""
        logger.info(
            "Setting server for conversation %d: %s:%d (%r)", conversation_id, host, port, name
        )
        record = ServerRecord(conversation_id=conversation_id, host=host, port=port, name=name)
        return self._storage.upsert(record)

    def clear_config(self, conversation_id: int) -> None:
        logger.info("Clearing server for conversation %d", conversation_id)
        self._storage.delete(conversation_id)

    async def get_status(
        self, conversation_id: int, cancel_event: asyncio.Event | None = None
    ) -> StatusResult:
        """Look up the conversation's server and probe it."""
        record = self.get_config(conversation_id)
        if record is None:
            logger.info("No server configured for conversation %d", conversation_id)
            return StatusResult()

        try:
            probe = await self._probe.probe(
                record.host, record.port, timeout=self._timeout, cancel_event=cancel_event
            )
        except ProbeCancelledError as e:
            logger.warning("Status check for conversation %d cancelled", conversation_id)
            return StatusResult(record=record, error=e)

        logger.info(
            "Server %s for conversation %d is %s (%d/%d players)",
            record.address,
            conversation_id,
            "online" if probe.online else "offline",
            probe.players_online,
            probe.players_max,
        )
        return StatusResult(record=record, probe=probe)

"""Minecraft server status probing with a hard timeout and cancellation."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from mcstatus import JavaServer

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class ProbeCancelledError(Exception):
    """Raised when a probe is abandoned because its caller was cancelled."""

    pass


@dataclass(frozen=True)
class ProbeResult:
    """Status of a server. Fields other than `online` are zero when offline."""

    online: bool
    version: str = ""
    protocol: int = 0
    description: str = ""
    players_online: int = 0
    players_max: int = 0
    sample: tuple[str, ...] = ()

    @classmethod
    def offline(cls) -> "ProbeResult":
        return cls(online=False)


class Pinger(Protocol):
    """Performs one status query. Raises on any transport or protocol error."""

    async def ping(self, host: str, port: int, timeout: float) -> ProbeResult: ...


class MinecraftPinger:
    """Server List Ping for Java edition servers, backed by mcstatus."""

    async def ping(self, host: str, port: int, timeout: float) -> ProbeResult:
        server = JavaServer(host, port, timeout=timeout)
        status = await server.async_status()

        sample = status.players.sample or []
        return ProbeResult(
            online=True,
            version=status.version.name,
            protocol=status.version.protocol,
            description=status.motd.to_plain(),
            players_online=status.players.online,
            players_max=status.players.max,
            sample=tuple(player.name for player in sample),
        )


async def _join(tasks: list[asyncio.Task]) -> None:
    """Cancel unfinished tasks and wait for all of them to settle."""
    for task in tasks:
        if not task.done():
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class StatusProbe:
    """
    Runs a single ping raced against a timeout and a cancellation event.

    An unreachable server is not an error: any failure of the ping itself,
    and running out of time, both produce `ProbeResult.offline()`. Only the
    cancellation event turns into an exception, so callers can tell
    "the server is down" apart from "we stopped waiting".
    """

    def __init__(self, pinger: Pinger | None = None):
        self._pinger = pinger or MinecraftPinger()

    async def probe(
        self,
        host: str,
        port: int,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        cancel_event: asyncio.Event | None = None,
    ) -> ProbeResult:
        """
        Query a server's status.

        Raises:
            ProbeCancelledError: If `cancel_event` is set before the ping finishes
        """
        logger.debug("Probing %s:%d (timeout %.1fs)", host, port, timeout)

        ping = asyncio.create_task(self._pinger.ping(host, port, timeout))
        tasks = [ping]
        stop = None
        if cancel_event is not None:
            stop = asyncio.create_task(cancel_event.wait())
            tasks.append(stop)

        try:
            done, _ = await asyncio.wait(
                tasks, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            await _join(tasks)

        if ping in done:
            error = ping.exception()
            if error is not None:
                logger.warning("Ping to %s:%d failed: %s", host, port, error)
                return ProbeResult.offline()
            result = ping.result()
            logger.debug(
                "Ping to %s:%d succeeded: version=%s players=%d/%d",
                host, port, result.version, result.players_online, result.players_max,
            )
            return result

        if stop is not None and stop in done:
            logger.warning("Probe of %s:%d cancelled", host, port)
            raise ProbeCancelledError(f"probe of {host}:{port} cancelled")

        logger.warning("Ping to %s:%d timed out after %.1fs", host, port, timeout)
        return ProbeResult.offline()

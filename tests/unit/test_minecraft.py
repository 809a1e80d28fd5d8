"""Unit tests for minecraft.py - Status probe with timeout and cancellation."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from minecraft import MinecraftPinger, ProbeCancelledError, ProbeResult, StatusProbe
from tests.fixtures.fakes import FakePinger, online_result


def make_status(online=3, maximum=20, names=("Steve", "Alex"), version="1.20.4"):
    """Build an object shaped like mcstatus' JavaStatusResponse."""
    sample = [SimpleNamespace(name=n, id=f"uuid-{n}") for n in names] if names is not None else None
    return SimpleNamespace(
        players=SimpleNamespace(online=online, max=maximum, sample=sample),
        version=SimpleNamespace(name=version, protocol=765),
        motd=SimpleNamespace(to_plain=lambda: "A Minecraft Server"),
    )


class TestProbeResult:
    """Tests for ProbeResult dataclass."""

    def test_offline_is_zeroed(self):
        result = ProbeResult.offline()

        assert result.online is False
        assert result.version == ""
        assert result.players_online == 0
        assert result.players_max == 0
        assert result.sample == ()


class TestMinecraftPinger:
    """Tests for the mcstatus-backed pinger."""

    @pytest.mark.asyncio
    async def test_maps_status_response(self):
        """Test every field of the response lands in the result."""
        server = MagicMock()
        server.async_status = AsyncMock(return_value=make_status())

        with patch("minecraft.JavaServer", return_value=server) as java_server:
            result = await MinecraftPinger().ping("mc.example.com", 25566, 2.0)

        java_server.assert_called_once_with("mc.example.com", 25566, timeout=2.0)
        assert result == ProbeResult(
            online=True,
            version="1.20.4",
            protocol=765,
            description="A Minecraft Server",
            players_online=3,
            players_max=20,
            sample=("Steve", "Alex"),
        )

    @pytest.mark.asyncio
    async def test_missing_sample(self):
        """Test servers that hide their player list give an empty sample."""
        server = MagicMock()
        server.async_status = AsyncMock(return_value=make_status(names=None))

        with patch("minecraft.JavaServer", return_value=server):
            result = await MinecraftPinger().ping("mc.example.com", 25565, 2.0)

        assert result.sample == ()
        assert result.players_online == 3

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        server = MagicMock()
        server.async_status = AsyncMock(side_effect=ConnectionRefusedError("refused"))

        with patch("minecraft.JavaServer", return_value=server):
            with pytest.raises(ConnectionRefusedError):
                await MinecraftPinger().ping("mc.example.com", 25565, 2.0)


class TestStatusProbe:
    """Tests for StatusProbe."""

    @pytest.mark.asyncio
    async def test_online(self):
        pinger = FakePinger(result=online_result())

        result = await StatusProbe(pinger).probe("mc.example.com", 25565, timeout=1.0)

        assert result.online is True
        assert result.version == "1.20.4"
        assert result.sample == ("Player1", "Player2")
        assert pinger.calls == [("mc.example.com", 25565, 1.0)]

    @pytest.mark.asyncio
    async def test_ping_error_is_offline(self):
        """Test a failing ping is reported as offline, not raised."""
        pinger = FakePinger(error=OSError("connection refused"))

        result = await StatusProbe(pinger).probe("mc.example.com", 25565, timeout=1.0)

        assert result == ProbeResult.offline()

    @pytest.mark.asyncio
    async def test_timeout_is_offline(self):
        """Test a ping slower than the timeout is abandoned and reported offline."""
        pinger = FakePinger(result=online_result(), delay=10)
        loop = asyncio.get_running_loop()
        started = loop.time()

        result = await StatusProbe(pinger).probe("mc.example.com", 25565, timeout=0.1)

        assert result == ProbeResult.offline()
        assert loop.time() - started < 2
        assert pinger.cancelled is True

    @pytest.mark.asyncio
    async def test_cancel_event(self):
        """Test setting the cancel event aborts the probe promptly."""
        pinger = FakePinger(result=online_result(), delay=10)
        cancel = asyncio.Event()
        probe = asyncio.create_task(
            StatusProbe(pinger).probe("mc.example.com", 25565, timeout=5.0, cancel_event=cancel)
        )

        await pinger.started.wait()
        cancel.set()

        with pytest.raises(ProbeCancelledError):
            await asyncio.wait_for(probe, timeout=2)
        assert pinger.cancelled is True

    @pytest.mark.asyncio
    async def test_unset_cancel_event_does_not_interfere(self):
        pinger = FakePinger(result=online_result())

        result = await StatusProbe(pinger).probe(
            "mc.example.com", 25565, timeout=1.0, cancel_event=asyncio.Event()
        )

        assert result.online is True

    @pytest.mark.asyncio
    async def test_outer_cancellation_stops_ping(self):
        """Test cancelling the caller also cancels the ping task."""
        pinger = FakePinger(result=online_result(), delay=10)
        probe = asyncio.create_task(StatusProbe(pinger).probe("h", 25565, timeout=5.0))

        await pinger.started.wait()
        probe.cancel()

        with pytest.raises(asyncio.CancelledError):
            await probe
        assert pinger.cancelled is True

"""Shared pytest fixtures for the mss-bot test suite."""

import pytest

from audit import AuditLogger
from dispatcher import Dispatcher
from minecraft import StatusProbe
from service import ServerService
from session import SessionStore
from storage import ServerRecord
from storage.sqlite import SqliteServerStorage
from tests.fixtures.fakes import CONVERSATION_ID, FakePinger, FakeTransport, MemoryStorage


# ============================================================================
# Collaborators
# ============================================================================


@pytest.fixture
def transport():
    """Transport that records sent and edited messages."""
    return FakeTransport()


@pytest.fixture
def pinger():
    """Ping capability; every server is unreachable unless a test says otherwise."""
    return FakePinger()


@pytest.fixture
def memory_storage():
    """In-memory record store."""
    return MemoryStorage()


@pytest.fixture
def sqlite_storage(tmp_path):
    """SQLite record store in a temporary directory."""
    storage = SqliteServerStorage(tmp_path / "data" / "test.db")
    yield storage
    storage.close()


@pytest.fixture
def sample_record():
    """A configured server for CONVERSATION_ID."""
    return ServerRecord(
        conversation_id=CONVERSATION_ID,
        host="mc.example.com",
        port=25565,
        name="Test Server",
    )


# ============================================================================
# Core components
# ============================================================================


@pytest.fixture
def service(memory_storage, pinger):
    """Service over the in-memory store with a short probe timeout."""
    return ServerService(memory_storage, StatusProbe(pinger), timeout=0.5)


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def audit_logger(tmp_path):
    return AuditLogger(tmp_path / "data" / "audit.db")


@pytest.fixture
def dispatcher(transport, service, sessions, audit_logger):
    """Dispatcher wired to fakes."""
    return Dispatcher(transport, service, sessions, audit=audit_logger)

"""
NoteSync Tests - Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── test_settings: Settings with shrunken delays and a temp session file
    ├── storage: In-memory session storage
    ├── notifier: RecordingNotifier capturing user-facing messages
    ├── fake_backend: In-memory FastAPI implementation of the REST API
    ├── client: Fully wired NoteSyncClient talking to fake_backend
    └── authed_client: `client` after registering a user and the first refresh
"""

import os
from typing import List

import httpx
import pytest
import pytest_asyncio

# Keep test output quiet unless a test asks for logs through caplog
os.environ.setdefault("LOG_LEVEL", "WARNING")

from notesync.config import Settings  # noqa: E402
from notesync.main import create_client  # noqa: E402
from notesync.services.notifier import Notifier  # noqa: E402
from notesync.services.session_storage import MemorySessionStorage  # noqa: E402

from fake_backend import FakeBackend  # noqa: E402


class RecordingNotifier(Notifier):
    """Notifier that keeps every message for assertions."""

    def __init__(self):
        self.successes: List[str] = []
        self.errors: List[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(tmp_path):
    """
    Settings for tests.

    Same shape as production, but every delay is a few milliseconds and the
    session file lives in pytest's tmp_path.
    """
    return Settings(
        api_base_url="http://test/api",
        retry_max_attempts=3,
        retry_base_delay=0.0,
        refresh_quiet_window=0.05,
        refresh_inter_fetch_delay=0.02,
        settle_delay=0.02,
        session_file=str(tmp_path / "session.json"),
        log_level="WARNING",
    )


@pytest.fixture
def storage():
    return MemorySessionStorage()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest_asyncio.fixture
async def client(test_settings, storage, notifier, fake_backend):
    """
    NoteSyncClient wired to the fake backend through ASGITransport.

    Usage:
        async def test_login(client):
            result = await client.session.login("alice", "secret")
    """
    nsc = create_client(
        settings=test_settings,
        storage=storage,
        notifier=notifier,
        transport=httpx.ASGITransport(app=fake_backend.app),
    )
    await nsc.start()
    yield nsc
    await nsc.aclose()


@pytest_asyncio.fixture
async def authed_client(client):
    """`client` with a registered user and the initial refresh completed."""
    result = await client.session.register("alice", "alice@example.com", "secret")
    assert result.success
    await client.scheduler.wait_idle()
    return client

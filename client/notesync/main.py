"""
NoteSync - Client Factory
==========================

What:  Builds and wires the complete sync layer.
How:   Factory function: create_client() returns a NoteSyncClient holding one
       instance of every service; lifespan() runs startup and shutdown.
Who:   The UI shell, once per process. Tests build it with a fake transport.

Wiring:
    ┌──────────────────────────────────────────────────────────────┐
    │                        NoteSyncClient                        │
    │                                                              │
    │   AuthSession ──change──▶ CoalescingRefreshScheduler         │
    │        │                   │ authenticated: request_refresh  │
    │        │                   │ anonymous:     cancel           │
    │        │                   ▼                                 │
    │        │          notes.list() ─0.5s─▶ bookmarks.list()      │
    │        ▼                   │                                 │
    │   headers() ◀──── ResourceStore ×2 ──▶ RetryingRequestExecutor│
    │                            │                  │              │
    │                            └───────▶ ApiClient (httpx)       │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Restore the persisted session
    2. If it was restored, the session change schedules the first refresh

    Shutdown:
    1. Cancel the pending timer and any cycle in flight
    2. Close the HTTP connection pool
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from notesync.config import Settings, settings as default_settings
from notesync.schemas.resource import Bookmark, BookmarkFields, Note, NoteFields
from notesync.services.api_client import ApiClient
from notesync.services.auth_session import AuthSession
from notesync.services.executor import RetryingRequestExecutor
from notesync.services.notifier import LoggingNotifier, Notifier
from notesync.services.refresh_scheduler import CoalescingRefreshScheduler
from notesync.services.resource_store import BOOKMARKS, NOTES, ResourceStore
from notesync.services.session_storage import JsonFileSessionStorage, SessionStorage
from notesync.services.view_projector import ViewProjector, view_projector

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure logging for the whole package.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    Meant for standalone use; an embedding application with its own logging
    setup should skip it.
    """
    log_level = level or default_settings.log_level
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # httpx logs every request at INFO; notesync.http already does
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Composition Root
# ══════════════════════════════════════════════════════════════════════════


class NoteSyncClient:
    """
    The assembled sync layer.

    Attributes:
        api:       HTTP client
        session:   AuthSession
        executor:  Shared RetryingRequestExecutor
        notes:     ResourceStore for notes
        bookmarks: ResourceStore for bookmarks
        scheduler: CoalescingRefreshScheduler driving both stores
        projector: ViewProjector for the UI
    """

    def __init__(
        self,
        api: ApiClient,
        session: AuthSession,
        executor: RetryingRequestExecutor,
        notes: "ResourceStore[Note, NoteFields]",
        bookmarks: "ResourceStore[Bookmark, BookmarkFields]",
        scheduler: CoalescingRefreshScheduler,
        projector: ViewProjector = view_projector,
    ):
        self.api = api
        self.session = session
        self.executor = executor
        self.notes = notes
        self.bookmarks = bookmarks
        self.scheduler = scheduler
        self.projector = projector
        self._unsubscribe = session.subscribe(self._on_session_change)

    def _on_session_change(self, session: AuthSession) -> None:
        if session.is_authenticated:
            self.scheduler.request_refresh()
        else:
            self.scheduler.cancel()

    async def start(self) -> None:
        """Restore the persisted session."""
        self.session.restore()

    async def aclose(self) -> None:
        """Stop refreshing and release the connection pool."""
        self._unsubscribe()
        await self.scheduler.aclose()
        await self.api.aclose()


def create_client(
    settings: Optional[Settings] = None,
    storage: Optional[SessionStorage] = None,
    notifier: Optional[Notifier] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> NoteSyncClient:
    """
    Build a NoteSyncClient.

    Args:
        settings:  Configuration; the environment-loaded singleton by default
        storage:   Where the credential persists; the JSON session file by default
        notifier:  Receiver of user-facing messages; logging by default
        transport: httpx transport override (MockTransport / ASGITransport in tests)
    """
    cfg = settings or default_settings
    notifier = notifier or LoggingNotifier()
    storage = storage if storage is not None else JsonFileSessionStorage(cfg.session_path)

    api = ApiClient(base_url=cfg.api_base_url, timeout=cfg.request_timeout, transport=transport)
    session = AuthSession(api, storage, notifier=notifier)
    executor = RetryingRequestExecutor(
        max_attempts=cfg.retry_max_attempts,
        base_delay=cfg.retry_base_delay,
    )
    notes = ResourceStore(
        NOTES, api, session, executor, notifier=notifier, settle_delay=cfg.settle_delay
    )
    bookmarks = ResourceStore(
        BOOKMARKS, api, session, executor, notifier=notifier, settle_delay=cfg.settle_delay
    )
    scheduler = CoalescingRefreshScheduler(
        [notes.list, bookmarks.list],
        quiet_window=cfg.refresh_quiet_window,
        inter_fetch_delay=cfg.refresh_inter_fetch_delay,
        is_active=lambda: session.is_authenticated,
    )

    logger.debug("NoteSync client created for %s", cfg.api_base_url)
    return NoteSyncClient(api, session, executor, notes, bookmarks, scheduler)


# ══════════════════════════════════════════════════════════════════════════
# Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(client: NoteSyncClient) -> AsyncIterator[NoteSyncClient]:
    """
    Run the client between startup and shutdown.

        async with lifespan(create_client()) as client:
            await client.session.login("alice", "secret")
            ...
    """
    # ── Startup ───────────────────────────────────────────────────────────
    logger.info("NoteSync client starting (api=%s)", client.api.base_url)
    await client.start()

    try:
        yield client
    finally:
        # ── Shutdown ──────────────────────────────────────────────────────
        logger.info("NoteSync client shutting down...")
        await client.aclose()
        logger.info("Shutdown complete.")

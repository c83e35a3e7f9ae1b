"""
NoteSync - Authentication Session
==================================

What:  Holds the current credential and identity; the only writer of both.
How:   Explicit state machine, persisted through a SessionStorage, observed
       through `subscribe()`.
Who:   Stores read `headers()` / `is_authenticated`; the composition root
       subscribes to start or cancel refreshes; the UI calls login/register/
       logout and reads `loading` and `user`.

State Machine:
    UNINITIALIZED ──restore()──▶ RESTORING ──┬──▶ AUTHENTICATED
                                             └──▶ ANONYMOUS
    ANONYMOUS     ──login()/register() ok──▶ AUTHENTICATED
    AUTHENTICATED ──logout()──────────────▶ ANONYMOUS
    (a failed login/register leaves the state unchanged)

`generation` increases every time the credential changes. Stores compare it
before and after a fetch to drop responses that belong to an older session.
"""

import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from notesync.exceptions import ErrorKind, NoteSyncError, SessionStorageError
from notesync.schemas.result import TOO_MANY_REQUESTS_MESSAGE
from notesync.schemas.session import AuthResult, Credential, User
from notesync.services.api_client import JSON_HEADERS, ApiClient
from notesync.services.notifier import LoggingNotifier, Notifier
from notesync.services.session_storage import TOKEN_KEY, USER_KEY, SessionStorage

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RESTORING = "restoring"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


SessionListener = Callable[["AuthSession"], None]


class AuthSession:
    """
    Credential owner with a logged-in / logged-out lifecycle.

    Callers must not assume an authenticated state while `loading` is True,
    i.e. until `restore()` has run.
    """

    def __init__(
        self,
        api: ApiClient,
        storage: SessionStorage,
        notifier: Optional[Notifier] = None,
    ):
        self._api = api
        self._storage = storage
        self._notifier = notifier or LoggingNotifier()
        self._credential: Optional[Credential] = None
        self._state = SessionState.UNINITIALIZED
        self._generation = 0
        self._listeners: List[SessionListener] = []

    # ── Read-only views ───────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state in (SessionState.UNINITIALIZED, SessionState.RESTORING)

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED and self._credential is not None

    @property
    def token(self) -> Optional[str]:
        return self._credential.token if self._credential else None

    @property
    def user(self) -> Optional[User]:
        return self._credential.user if self._credential else None

    @property
    def generation(self) -> int:
        return self._generation

    def headers(self) -> Dict[str, str]:
        """
        Header material for an outbound call.

        Content-Type always; the bearer token only while authenticated.
        """
        headers = dict(JSON_HEADERS)
        if self.is_authenticated:
            headers["Authorization"] = f"Bearer {self._credential.token}"
        return headers

    # ── Observation ───────────────────────────────────────────────────────

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.error("Session listener %r failed", listener, exc_info=True)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def restore(self) -> None:
        """
        Load the persisted credential, once.

        Both storage keys must be present and the user record must parse;
        anything else is treated as logged out.
        """
        if self._state is not SessionState.UNINITIALIZED:
            return

        self._state = SessionState.RESTORING
        credential = self._read_persisted()
        if credential is not None:
            self._credential = credential
            self._generation += 1
            self._state = SessionState.AUTHENTICATED
            logger.info("Session restored for user %s", credential.user.display_name)
        else:
            self._state = SessionState.ANONYMOUS
            logger.info("No persisted session, starting anonymous")
        self._notify()

    async def login(self, username: str, password: str) -> AuthResult:
        """POST /auth/login. Never raises for request failures."""
        return await self._authenticate(
            "/auth/login",
            {"username": username, "password": password},
            fallback_message="Login failed",
            success_message="Login successful!",
        )

    async def register(self, username: str, email: str, password: str) -> AuthResult:
        """POST /auth/register. Never raises for request failures."""
        return await self._authenticate(
            "/auth/register",
            {"username": username, "email": email, "password": password},
            fallback_message="Registration failed",
            success_message="Registration successful!",
        )

    def logout(self) -> None:
        """
        Drop the credential and its persisted copy. Synchronous, idempotent.

        A storage failure is logged; the in-memory session ends regardless.
        """
        was_authenticated = self._credential is not None
        previous_state = self._state
        self._credential = None
        self._state = SessionState.ANONYMOUS

        try:
            self._storage.remove(TOKEN_KEY)
            self._storage.remove(USER_KEY)
        except SessionStorageError as e:
            logger.error("Could not clear persisted session: %s | Context: %s", e.message, e.context)

        if was_authenticated:
            self._generation += 1
            logger.info("Logged out")
            self._notifier.success("Logged out successfully!")
        if previous_state is not SessionState.ANONYMOUS:
            self._notify()

    # ── Internals ─────────────────────────────────────────────────────────

    async def _authenticate(
        self,
        path: str,
        body: Dict[str, Any],
        fallback_message: str,
        success_message: str,
    ) -> AuthResult:
        try:
            data = await self._api.request(
                "POST",
                path,
                json=body,
                headers=JSON_HEADERS,
                fallback_message=fallback_message,
            )
            credential = Credential.model_validate(data)
        except NoteSyncError as e:
            message = TOO_MANY_REQUESTS_MESSAGE if e.kind is ErrorKind.RATE_LIMITED else e.message
            logger.warning("%s: %s | Context: %s", fallback_message, message, e.context)
            self._notifier.error(message)
            return AuthResult(success=False, error=message)
        except PydanticValidationError as e:
            logger.warning(
                "%s: malformed auth response (%d errors)", fallback_message, e.error_count()
            )
            self._notifier.error(fallback_message)
            return AuthResult(success=False, error=fallback_message)

        self._establish(credential)
        self._notifier.success(success_message)
        return AuthResult(success=True)

    def _establish(self, credential: Credential) -> None:
        self._credential = credential
        self._generation += 1
        self._state = SessionState.AUTHENTICATED
        logger.info("Authenticated as %s", credential.user.display_name)

        try:
            self._storage.set(TOKEN_KEY, credential.token)
            self._storage.set(USER_KEY, json.dumps(credential.user.model_dump(mode="json")))
        except SessionStorageError as e:
            # The session still works for this process, it just won't survive a restart
            logger.error("Could not persist session: %s | Context: %s", e.message, e.context)

        self._notify()

    def _read_persisted(self) -> Optional[Credential]:
        token = self._storage.get(TOKEN_KEY)
        raw_user = self._storage.get(USER_KEY)
        if not token or not raw_user:
            return None
        try:
            return Credential(token=token, user=User.model_validate(json.loads(raw_user)))
        except (ValueError, PydanticValidationError):
            logger.warning("Persisted session is malformed, ignoring it")
            return None

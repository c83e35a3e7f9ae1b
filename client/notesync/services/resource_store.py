"""
NoteSync - Resource Store
==========================

What:  Authoritative in-memory collection for one resource type, plus the
       operations that change it on the server.
How:   Every write is followed by a full re-read instead of a local patch:

       ┌──────────┐   ┌─────────────┐   ┌────────────┐   ┌──────────────┐
       │ Validate │──▶│ POST/PUT/   │──▶│  Settle    │──▶│ GET (list)   │
       │ payload  │   │ PATCH/DELETE│   │  (0.5s)    │   │ replace all  │
       └──────────┘   └─────────────┘   └────────────┘   └──────────────┘

       The collection therefore only ever holds what the server last
       returned: ids, timestamps and normalized tags are the server's own.
Who:   Instantiated twice by the composition root (NOTES, BOOKMARKS); read by
       the UI through `items` / `subscribe()` and the ViewProjector.

Error Handling:
    Operations return an OperationResult and never raise for validation,
    HTTP or transport failures. Failures are logged, reported through the
    Notifier and leave the collection untouched.

Concurrency:
    - Mutations on one store are serialized by an asyncio.Lock, including
      their settle delay and re-fetch, so a double submit runs one after the
      other instead of racing at the server.
    - Fetches are serialized by a second lock, and a fetch answered after the
      session changed (logout, another login) is discarded.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
)
from urllib.parse import quote

from pydantic import ValidationError as PydanticValidationError

from notesync.config import settings
from notesync.exceptions import (
    ErrorKind,
    NoteSyncError,
    NotAuthenticatedError,
    RequestFailedError,
)
from notesync.schemas.resource import (
    Bookmark,
    BookmarkFields,
    Note,
    NoteFields,
    Resource,
    ResourceFields,
    build_fields,
)
from notesync.schemas.result import OperationResult
from notesync.services.api_client import ApiClient
from notesync.services.auth_session import AuthSession
from notesync.services.executor import RetryingRequestExecutor
from notesync.services.notifier import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Resource)
F = TypeVar("F", bound=ResourceFields)

Confirmation = Callable[[], Union[bool, Awaitable[bool]]]
StoreListener = Callable[[Tuple[Any, ...]], None]


@dataclass(frozen=True)
class ResourceKind(Generic[R, F]):
    """
    Everything that differs between the notes and bookmarks endpoints.

    Attributes:
        name:               Singular, used in messages ("note")
        collection:         URL segment and plural ("notes")
        model:              Read model parsed from responses
        fields_model:       Write payload model
        favorite_via_patch: True → PATCH /{collection}/{id}/favorite {isFavorite};
                            False → PUT the full fields with isFavorite flipped
    """

    name: str
    collection: str
    model: Type[R]
    fields_model: Type[F]
    favorite_via_patch: bool

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def path(self) -> str:
        return f"/{self.collection}"

    def item_path(self, resource_id: str) -> str:
        return f"/{self.collection}/{quote(str(resource_id), safe='')}"


NOTES: ResourceKind[Note, NoteFields] = ResourceKind(
    name="note",
    collection="notes",
    model=Note,
    fields_model=NoteFields,
    favorite_via_patch=True,
)

BOOKMARKS: ResourceKind[Bookmark, BookmarkFields] = ResourceKind(
    name="bookmark",
    collection="bookmarks",
    model=Bookmark,
    fields_model=BookmarkFields,
    favorite_via_patch=False,
)


class ResourceStore(Generic[R, F]):
    """
    Single-writer cache of one resource collection.

    Public state is read-only: `items` is a tuple of frozen models, replaced
    as a whole, so readers never observe a half-applied update.
    """

    def __init__(
        self,
        kind: ResourceKind[R, F],
        api: ApiClient,
        session: AuthSession,
        executor: RetryingRequestExecutor,
        notifier: Optional[Notifier] = None,
        settle_delay: Optional[float] = None,
    ):
        self.kind = kind
        self._api = api
        self._session = session
        self._executor = executor
        self._notifier = notifier or LoggingNotifier()
        self.settle_delay = settle_delay if settle_delay is not None else settings.settle_delay

        self._items: Tuple[R, ...] = ()
        self._loading = False
        self._listeners: List[StoreListener] = []
        self._mutation_lock = asyncio.Lock()
        self._fetch_lock = asyncio.Lock()

        session.subscribe(self._on_session_change)

    # ── Read-only views ───────────────────────────────────────────────────

    @property
    def items(self) -> Tuple[R, ...]:
        return self._items

    @property
    def loading(self) -> bool:
        return self._loading

    def get(self, resource_id: str) -> Optional[R]:
        return next((item for item in self._items if item.id == resource_id), None)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a listener called with the new items after each replacement."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Operations ────────────────────────────────────────────────────────

    async def list(self) -> OperationResult:
        """
        GET the whole collection and replace the cached one on success.

        Rate limiting is retried by the executor. Any failure keeps the
        previous collection. Without a credential no request is made.
        """
        async with self._fetch_lock:
            if not self._session.is_authenticated:
                logger.debug("Skipping %s fetch: not authenticated", self.kind.collection)
                return OperationResult(
                    success=False,
                    message=NotAuthenticatedError().message,
                    error_kind=ErrorKind.NOT_AUTHENTICATED,
                )

            generation = self._session.generation
            headers = self._session.headers()
            fallback = f"Failed to load {self.kind.collection}"

            self._loading = True
            try:
                data = await self._executor.execute(
                    lambda: self._api.request(
                        "GET", self.kind.path, headers=headers, fallback_message=fallback
                    ),
                    description=f"list {self.kind.collection}",
                )
                items = self._parse_collection(data, fallback)
            except NoteSyncError as e:
                return self._report_failure(f"list {self.kind.collection}", e)
            finally:
                self._loading = False

            if generation != self._session.generation:
                logger.info(
                    "Discarding %s response from a previous session", self.kind.collection
                )
                return OperationResult.skipped()

            self._replace(items)
            logger.debug("Loaded %d %s", len(items), self.kind.collection)
            return OperationResult.ok()

    async def create(self, fields: Union[F, Mapping[str, Any]]) -> OperationResult:
        """Validate, POST, then re-fetch after the settle delay."""
        action = f"create {self.kind.name}"
        try:
            payload = build_fields(self.kind.fields_model, fields).to_payload()
        except NoteSyncError as e:
            return self._report_failure(action, e)

        return await self._mutate(
            action,
            "POST",
            self.kind.path,
            payload,
            success_message=f"{self.kind.label} created successfully!",
            fallback_message=f"Failed to create {self.kind.name}",
        )

    async def update(
        self,
        resource_id: Optional[str],
        fields: Union[F, Mapping[str, Any]],
    ) -> OperationResult:
        """
        Validate, PUT, then re-fetch. A no-op when no resource is selected.
        """
        if not resource_id:
            logger.debug("Update of %s ignored: nothing selected", self.kind.name)
            return OperationResult.skipped()

        action = f"update {self.kind.name} {resource_id}"
        try:
            payload = build_fields(self.kind.fields_model, fields).to_payload()
        except NoteSyncError as e:
            return self._report_failure(action, e)

        return await self._mutate(
            action,
            "PUT",
            self.kind.item_path(resource_id),
            payload,
            success_message=f"{self.kind.label} updated successfully!",
            fallback_message=f"Failed to update {self.kind.name}",
        )

    async def delete(
        self,
        resource_id: Optional[str],
        confirm: Optional[Confirmation] = None,
    ) -> OperationResult:
        """
        DELETE, then re-fetch.

        Args:
            resource_id: The resource to delete
            confirm:     Confirmation gate from the UI ("Are you sure?"); sync or
                         async, a falsy answer cancels without any request
        """
        if not resource_id:
            return OperationResult.skipped()

        if confirm is not None:
            answer = confirm()
            if inspect.isawaitable(answer):
                answer = await answer
            if not answer:
                logger.debug("Delete of %s %s declined", self.kind.name, resource_id)
                return OperationResult.skipped()

        return await self._mutate(
            f"delete {self.kind.name} {resource_id}",
            "DELETE",
            self.kind.item_path(resource_id),
            None,
            success_message=f"{self.kind.label} deleted successfully!",
            fallback_message=f"Failed to delete {self.kind.name}",
        )

    async def toggle_favorite(self, resource: R) -> OperationResult:
        """Flip `isFavorite` on the server, then re-fetch."""
        target = not resource.is_favorite
        action = f"toggle favorite on {self.kind.name} {resource.id}"

        if self.kind.favorite_via_patch:
            path = f"{self.kind.item_path(resource.id)}/favorite"
            method = "PATCH"
            payload = {"isFavorite": target}
        else:
            try:
                fields = self.kind.fields_model.from_resource(resource, is_favorite=target)
            except NoteSyncError as e:
                return self._report_failure(action, e)
            path = self.kind.item_path(resource.id)
            method = "PUT"
            payload = fields.to_payload()

        return await self._mutate(
            action,
            method,
            path,
            payload,
            success_message="Added to favorites" if target else "Removed from favorites",
            fallback_message="Failed to update favorite status",
        )

    def clear(self) -> None:
        """Empty the collection (the session ended)."""
        if self._items:
            logger.debug("Clearing %d cached %s", len(self._items), self.kind.collection)
        self._replace(())

    # ── Internals ─────────────────────────────────────────────────────────

    async def _mutate(
        self,
        action: str,
        method: str,
        path: str,
        payload: Optional[Any],
        success_message: str,
        fallback_message: str,
    ) -> OperationResult:
        async with self._mutation_lock:
            if not self._session.is_authenticated:
                return self._report_failure(action, NotAuthenticatedError())

            headers = self._session.headers()
            try:
                await self._executor.execute(
                    lambda: self._api.request(
                        method,
                        path,
                        json=payload,
                        headers=headers,
                        fallback_message=fallback_message,
                    ),
                    description=action,
                )
            except NoteSyncError as e:
                return self._report_failure(action, e)

            logger.info("%s succeeded", action.capitalize())
            self._notifier.success(success_message)

            await asyncio.sleep(self.settle_delay)
            await self.list()

        return OperationResult.ok(success_message)

    def _parse_collection(self, data: Any, fallback_message: str) -> Tuple[R, ...]:
        if not isinstance(data, list):
            raise RequestFailedError(
                message=fallback_message,
                context={"reason": "expected a JSON array", "got": type(data).__name__},
            )
        try:
            return tuple(self.kind.model.model_validate(item) for item in data)
        except PydanticValidationError as e:
            raise RequestFailedError(
                message=fallback_message,
                context={"reason": "malformed item", "error_count": e.error_count()},
            ) from e

    def _report_failure(self, action: str, exc: NoteSyncError) -> OperationResult:
        result = OperationResult.from_error(exc)
        if exc.kind is ErrorKind.VALIDATION_FAILED:
            logger.info("Cannot %s: %s", action, exc.message)
        else:
            logger.warning("Failed to %s: %s | Context: %s", action, exc.message, exc.context)
        self._notifier.error(result.message or exc.message)
        return result

    def _replace(self, items: Tuple[R, ...]) -> None:
        self._items = tuple(items)
        for listener in list(self._listeners):
            try:
                listener(self._items)
            except Exception:
                logger.error("Store listener %r failed", listener, exc_info=True)

    def _on_session_change(self, session: AuthSession) -> None:
        if not session.is_authenticated:
            self.clear()

"""
NoteSync - REST API Client (Network Boundary)
==============================================

What:  Thin async wrapper around httpx for the notes/bookmarks REST API.
How:   Sends JSON requests relative to `settings.api_base_url` and performs the
       one and only error classification step of the package:

           HTTP 429                 → RateLimitedError
           other non-2xx            → RequestFailedError (server message or fallback)
           httpx.RequestError       → NetworkUnavailableError

       Everything above this module (executor, stores, session) works with
       those exception types and never looks at status codes.
Who:   AuthSession (login/register) and ResourceStore (CRUD).

Headers are supplied per call by the caller (AuthSession.headers()), so the
client itself holds no credential.
"""

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from notesync.config import settings
from notesync.exceptions import (
    NetworkUnavailableError,
    RateLimitedError,
    RequestFailedError,
)
from notesync.middleware import attach_request_id, log_response

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


def _server_message(response: httpx.Response) -> Optional[str]:
    """The `error` (or `message`) field of a JSON error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    message = body.get("error") or body.get("message")
    return str(message) if message else None


def _retry_after(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def classify_response(response: httpx.Response, fallback_message: str) -> None:
    """
    Raise the exception matching a non-success response; return on 2xx.

    Args:
        response:          A response whose body has been read
        fallback_message:  Used when the body carries no error text

    Raises:
        RateLimitedError:   status 429
        RequestFailedError: any other status outside 2xx
    """
    rid = response.request.headers.get("X-Request-ID", "")
    if response.status_code == 429:
        raise RateLimitedError(
            retry_after=_retry_after(response),
            context={"request_id": rid, "path": response.request.url.path},
        )
    if not response.is_success:
        raise RequestFailedError(
            message=_server_message(response) or fallback_message,
            status_code=response.status_code,
            context={"request_id": rid, "path": response.request.url.path},
        )


class ApiClient:
    """
    Async JSON client bound to one backend base URL.

    Lifecycle:
        Created once by the composition root; `aclose()` on shutdown releases
        the connection pool. Usable as an async context manager.

    Testing:
        Pass `transport=httpx.MockTransport(handler)` or
        `transport=httpx.ASGITransport(app=fake_backend)` to run without a
        network.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.api_base_url
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.request_timeout,
            transport=transport,
            event_hooks={
                "request": [attach_request_id],
                "response": [log_response],
            },
        )
        logger.debug("ApiClient initialized with base_url=%s", self.base_url)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
        fallback_message: str = "Request failed",
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Args:
            method:           HTTP verb
            path:             Path relative to the base URL, e.g. "/notes/42"
            json:             Request body, serialized as JSON when given
            headers:          Extra headers (auth material from AuthSession)
            fallback_message: Error text used when the server gives none

        Returns:
            Decoded JSON, or None for an empty body (e.g. 204 No Content).

        Raises:
            RateLimitedError, RequestFailedError, NetworkUnavailableError
        """
        request_headers: Dict[str, str] = dict(JSON_HEADERS)
        if headers:
            request_headers.update(headers)

        if self._client.is_closed:
            raise NetworkUnavailableError(
                message=fallback_message,
                context={"path": path, "error_type": "client_closed"},
            )

        try:
            response = await self._client.request(
                method, path, json=json, headers=request_headers
            )
        except httpx.RequestError as e:
            logger.warning("%s %s failed before a response: %s", method, path, str(e))
            raise NetworkUnavailableError(
                message=fallback_message,
                context={"path": path, "error_type": type(e).__name__},
            ) from e

        classify_response(response, fallback_message)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RequestFailedError(
                message=fallback_message,
                status_code=response.status_code,
                context={"path": path, "error_type": "invalid_json"},
            ) from e

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

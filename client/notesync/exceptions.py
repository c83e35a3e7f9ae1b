"""
NoteSync - Exception Hierarchy
===============================

What:  Application-specific exceptions, one per error kind the layer knows.
How:   Each exception carries a user-facing message, a context dict for logs,
       and an `ErrorKind` tag. `ApiClient` performs the only classification
       step (HTTP status / transport failure → exception type); the executor
       and the stores branch on the type or on `kind` and never sniff status
       codes themselves.
Who:   Raised by ApiClient, the payload schemas adapter, and SessionStorage;
       caught by ResourceStore and AuthSession, which turn them into results.

Exception Hierarchy:
    NoteSyncError (base)
    ├── ValidationError          → VALIDATION_FAILED (never reaches the network)
    ├── RateLimitedError         → RATE_LIMITED (HTTP 429, retried with backoff)
    ├── RequestFailedError       → REQUEST_FAILED (any other non-2xx)
    ├── NetworkUnavailableError  → NETWORK_UNAVAILABLE (transport failure)
    ├── NotAuthenticatedError    → NOT_AUTHENTICATED (no credential held)
    └── SessionStorageError      → session file could not be written
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of failure classifications consumed by executor and stores."""

    RATE_LIMITED = "rate_limited"
    VALIDATION_FAILED = "validation_failed"
    REQUEST_FAILED = "request_failed"
    NETWORK_UNAVAILABLE = "network_unavailable"
    NOT_AUTHENTICATED = "not_authenticated"


class NoteSyncError(Exception):
    """
    Base exception for all NoteSync errors.

    Attributes:
        message:  User-facing error description (safe to show in a toast)
        context:  Additional debug info (logged, never shown)
        kind:     Classification used by retry and reporting policy
    """

    kind: Optional[ErrorKind] = None

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteSyncError):
    """
    Raised when user input fails client-side validation.

    When:    Missing required field (note content, bookmark URL) or a URL
             that does not parse. Raised before any request is built.
    """

    kind = ErrorKind.VALIDATION_FAILED

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class RateLimitedError(NoteSyncError):
    """
    Raised when the backend answers 429 Too Many Requests.

    The only error the RetryingRequestExecutor recovers from. When retries
    are exhausted it reaches the store unchanged and is reported with
    TOO_MANY_REQUESTS_MESSAGE.

    Attributes:
        retry_after: Value of the Retry-After header in seconds, if sent
    """

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after is not None:
            ctx["retry_after"] = retry_after
        super().__init__(message="Rate limited", context=ctx)
        self.retry_after = retry_after


class RequestFailedError(NoteSyncError):
    """
    Raised for any non-2xx, non-429 response.

    The message is the server's `error` (or `message`) field when the body
    carries one, otherwise the per-operation fallback chosen by the caller.
    """

    kind = ErrorKind.REQUEST_FAILED

    def __init__(
        self,
        message: str = "Request failed",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class NetworkUnavailableError(NoteSyncError):
    """
    Raised when the request never produced a response.

    When:    DNS failure, connection refused, reset, timeout.
    Retry:   Not retried; treated like RequestFailedError by the stores.
    """

    kind = ErrorKind.NETWORK_UNAVAILABLE

    def __init__(
        self,
        message: str = "Unable to reach the server",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotAuthenticatedError(NoteSyncError):
    """Raised when an operation needs a credential and none is held."""

    kind = ErrorKind.NOT_AUTHENTICATED

    def __init__(
        self,
        message: str = "Please log in to continue.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class SessionStorageError(NoteSyncError):
    """
    Raised when the session file cannot be written or removed.

    The path and OS error go into `context`; the message stays generic.
    """

    def __init__(
        self,
        message: str = "Could not save the session",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

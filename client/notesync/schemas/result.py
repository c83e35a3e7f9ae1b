"""
NoteSync - Store Operation Results
===================================

What:  The success/failure value every ResourceStore operation returns.
How:   Stores catch NoteSyncError subclasses at their boundary, notify the user
       and hand back an OperationResult instead of raising.
"""

from typing import Optional

from pydantic import BaseModel

from notesync.exceptions import ErrorKind, NoteSyncError

# Shown when a request is still rate-limited after the last retry
TOO_MANY_REQUESTS_MESSAGE = "Too many requests. Please wait a moment and try again."


class OperationResult(BaseModel):
    """
    Attributes:
        success:    True when the server accepted the operation
        message:    User-facing text (success toast or error), if any
        error_kind: Classification of the failure; None on success or no-op
    """

    success: bool
    message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, message: Optional[str] = None) -> "OperationResult":
        return cls(success=True, message=message)

    @classmethod
    def skipped(cls, message: Optional[str] = None) -> "OperationResult":
        """Nothing was attempted (no selection, declined confirmation)."""
        return cls(success=False, message=message)

    @classmethod
    def from_error(cls, exc: NoteSyncError) -> "OperationResult":
        if exc.kind is ErrorKind.RATE_LIMITED:
            message = TOO_MANY_REQUESTS_MESSAGE
        else:
            message = exc.message
        return cls(success=False, message=message, error_kind=exc.kind)

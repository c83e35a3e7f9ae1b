"""
NoteSync - HTTP Hooks Package
==============================

What:  Cross-cutting concerns applied to every outbound request.

Hook Chain (registered on the httpx.AsyncClient in ApiClient):
    request  → [Request ID]  stamps X-Request-ID + start time
    response → [Logging]     logs method, path, status, duration, request ID
"""

from notesync.middleware.logging import log_response
from notesync.middleware.request_id import attach_request_id, request_id_var

__all__ = ["attach_request_id", "log_response", "request_id_var"]

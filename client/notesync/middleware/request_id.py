"""
NoteSync - Request ID Hook
===========================

What:  Assigns a short unique ID to every outbound request.
How:   httpx "request" event hook. Stores the ID in a ContextVar for log
       correlation and sends it as the X-Request-ID header so backend logs
       can be matched with ours. Also stamps the start time used by the
       response logging hook.
Who:   Registered on the ApiClient's httpx.AsyncClient.
"""

import time
import uuid
from contextvars import ContextVar

import httpx

REQUEST_ID_HEADER = "X-Request-ID"

# Extension key carrying the perf_counter() value taken when the request left
START_TIME_EXTENSION = "notesync.start_time"

# Coroutine-local: each in-flight call sees its own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    """8 hex chars, enough to correlate within one session's logs."""
    return uuid.uuid4().hex[:8]


async def attach_request_id(request: httpx.Request) -> None:
    """
    Event hook run before each request is sent.

    A caller-provided X-Request-ID header is kept as is.
    """
    rid = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
    request.headers[REQUEST_ID_HEADER] = rid
    request_id_var.set(rid)
    request.extensions[START_TIME_EXTENSION] = time.perf_counter()

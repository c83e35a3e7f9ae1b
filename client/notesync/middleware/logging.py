"""
NoteSync - Request Logging Hook
================================

What:  One access-log line per completed HTTP call.
How:   httpx "response" event hook; duration is measured from the start time
       stamped by `attach_request_id`.

Log line:
    GET /api/notes 200 41.7ms [a1b2c3d4]

Level by status: 5xx → ERROR, 4xx → WARNING (429 included), else INFO.
Bodies and the Authorization header are never logged.
"""

import logging
import time

import httpx

from notesync.middleware.request_id import REQUEST_ID_HEADER, START_TIME_EXTENSION

logger = logging.getLogger("notesync.http")


async def log_response(response: httpx.Response) -> None:
    """Event hook run when response headers arrive."""
    request = response.request
    started = request.extensions.get(START_TIME_EXTENSION)
    duration_ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0
    rid = request.headers.get(REQUEST_ID_HEADER, "")

    status = response.status_code
    if status >= 500:
        log_level = logging.ERROR
    elif status >= 400:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    logger.log(
        log_level,
        "%s %s %d %.1fms [%s]",
        request.method,
        request.url.path,
        status,
        duration_ms,
        rid,
        extra={
            "request_id": rid,
            "method": request.method,
            "path": request.url.path,
            "status": status,
            "duration_ms": round(duration_ms, 2),
        },
    )

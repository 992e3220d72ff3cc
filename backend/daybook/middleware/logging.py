"""
Daybook Backend — Request Logging Middleware
=============================================

What:  One access-log line per HTTP request, tagged with the store that served it.
How:   Times the work below this middleware, then logs method, path, status,
       duration, storage backend, request ID and client IP.
Who:   Applied to every request except /health.

Log levels:
    5xx → ERROR, 4xx → WARNING, everything else → INFO

What we DON'T log:
    Request bodies (post content is personal writing) and identity headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from daybook.middleware.request_id import request_id_var
from daybook.middleware.storage_backend import storage_for

logger = logging.getLogger("daybook.access")


def level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Skipped paths:
        /health is polled every few seconds by probes; logging it would bury
        the lines that matter, such as the switch to memory-only storage.
    """

    SKIPPED_PATHS = {"/health"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.SKIPPED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        entry = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "backend": storage_for(request).status.backend,
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.log(
            level_for(entry["status"]),
            "%(method)s %(path)s %(status)d %(duration_ms).1fms backend=%(backend)s [%(request_id)s] from %(client_ip)s",
            entry,
            extra=entry,
        )
        return response

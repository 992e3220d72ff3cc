"""
Daybook Backend — Request ID Middleware
========================================

What:  Tags each request with a short correlation ID and echoes it back.
Why:   Ties together the access log line, any storage fallback warnings, and
       the request_id field in error responses for the same request.
How:   Accepts an incoming X-Request-ID from the fronting proxy when it looks
       like an ID; anything else is replaced, since the value is written
       verbatim into log lines and response headers.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"

# Coroutine-local: concurrent requests on one thread each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def accept_request_id(candidate: Optional[str]) -> str:
    """The client's ID when it is short and printable, else a fresh one."""
    if candidate and _ACCEPTED_ID.match(candidate):
        return candidate
    return new_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Stores the ID in request_id_var (loggers, error bodies) and
    request.state.request_id (route handlers), and returns it in X-Request-ID.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = accept_request_id(request.headers.get(HEADER))
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[HEADER] = rid
        return response

"""
Daybook Backend — Storage Backend Header Middleware
====================================================

What:  Sets `X-Storage-Backend: remote|memory` on every response.
Why:   Clients show a "changes are not being saved permanently" banner while
       the blog runs on the in-memory fallback.
How:   Reads the manager's status after the handler ran, so the header reflects
       the backend that was authoritative when the response left. The manager
       is resolved through the app's dependency overrides, the same way route
       handlers receive it.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from daybook.database import get_storage
from daybook.storage import StorageAvailabilityManager

HEADER = "X-Storage-Backend"


def storage_for(request: Request) -> StorageAvailabilityManager:
    """The manager route handlers of this app receive from Depends(get_storage)."""
    provider = request.app.dependency_overrides.get(get_storage, get_storage)
    return provider()


class StorageBackendMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers[HEADER] = storage_for(request).status.backend
        return response

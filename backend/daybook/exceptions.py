"""
Daybook Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for request errors and storage failures.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch the request
       errors and return structured JSON; storage errors are absorbed by the
       StorageAvailabilityManager and only ever logged.

Exception Hierarchy:
    DaybookError (base)
    ├── ValidationError              → 400 Bad Request
    ├── AuthenticationRequiredError  → 401 Unauthorized
    ├── PermissionDeniedError        → 403 Forbidden
    ├── NotFoundError                → 404 Not Found
    ├── RateLimitExceededError       → 429 Too Many Requests
    └── StorageError                 (never reaches HTTP; logged by the manager)
        ├── ConfigMissingError       no MONGODB_URI configured
        ├── ConnectTimeoutError      server selection / connect timed out
        ├── NetworkError             refused, DNS, TLS, auth handshake failures
        ├── ConnectionExhaustedError retry budget consumed until next health check
        └── RemoteOperationError     remote CRUD failed while marked connected
"""

from typing import Any, Dict, Optional


class DaybookError(Exception):
    """
    Base exception for all Daybook application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DaybookError):
    """
    Raised when client input fails a business rule.

    Field-level schema errors are handled by FastAPI (422); this covers rules
    Pydantic cannot express, such as an update with nothing to change.
    """

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


class AuthenticationRequiredError(DaybookError):
    """Raised when an operation needs an identity and the request carries none."""

    def __init__(
        self,
        message: str = "You must be signed in to do that",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(DaybookError):
    """
    Raised when the caller's identity does not own the resource.

    HTTP: 403 Forbidden. The context records which rule rejected the call so
    the server log explains the denial without exposing it to the client.
    """

    def __init__(
        self,
        message: str = "You do not have permission to modify this resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(DaybookError):
    """
    Raised when a requested resource does not exist in the authoritative store.

    Storage failures never become NotFoundError; a lookup that failed remotely
    is retried against the fallback store first, and only a miss there too is
    reported as not found.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RateLimitExceededError(DaybookError):
    """Raised when a client exceeds the per-IP request rate limit."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


# ══════════════════════════════════════════════════════════════════════════
# Storage errors
# ══════════════════════════════════════════════════════════════════════════


class StorageError(DaybookError):
    """
    Base class for remote store failures.

    None of these propagate to the HTTP layer. The manager catches them,
    logs them, and serves the call from the fallback store.
    """

    def __init__(
        self,
        message: str = "Remote store is unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigMissingError(StorageError):
    """No connection URI configured; every connect attempt fails immediately."""

    def __init__(self, setting: str = "MONGODB_URI"):
        super().__init__(
            message=f"{setting} environment variable is not set",
            context={"setting": setting},
        )


class ConnectTimeoutError(StorageError):
    """The driver could not select a server within its configured timeout."""


class NetworkError(StorageError):
    """Connection refused, DNS failure, TLS or authentication handshake failure."""


class ConnectionExhaustedError(StorageError):
    """
    Raised by connect() when it fails with the retry budget already consumed.

    The manager stays in Disconnected(exhausted) until the next periodic
    health check resets the budget. Non-fatal to the process.
    """

    def __init__(self, attempts: int):
        super().__init__(
            message=(
                f"Max reconnection attempts ({attempts}) reached; "
                "serving from in-memory storage until the next health check"
            ),
            context={"attempts": attempts},
        )
        self.attempts = attempts


class RemoteOperationError(StorageError):
    """A remote CRUD call failed even though the manager believed it was connected."""

    def __init__(
        self,
        operation: str,
        collection: str,
        cause: Optional[BaseException] = None,
    ):
        ctx: Dict[str, Any] = {"operation": operation, "collection": collection}
        if cause is not None:
            ctx["error_type"] = type(cause).__name__
        super().__init__(
            message=f"Remote {operation} on '{collection}' failed: {cause}",
            context=ctx,
        )
        self.operation = operation
        self.collection = collection

"""
Daybook Backend — Shared Response Schemas
==========================================

What:  Error envelope and health report used across all routes.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from daybook.middleware.request_id import request_id_var


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


def error_content(error: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """ErrorResponse body for the current request, for handlers and middleware alike."""
    return ErrorResponse(
        error=error,
        message=message,
        details=details,
        request_id=request_id_var.get(""),
    ).model_dump()


class StorageHealth(BaseModel):
    """Connection state of the storage layer as seen by the availability manager."""

    backend: str = Field(description="Authoritative store: remote or memory")
    phase: str = Field(description="disconnected, connecting or connected")
    retry_count: int = Field(description="Automatic retries since the last success or health check")
    max_retries: int
    exhausted: bool = Field(description="Retries paused until the next periodic health check")
    memory_records: Dict[str, int] = Field(
        default_factory=dict,
        description="Records per collection held only in process memory; lost on restart",
    )


class HealthResponse(BaseModel):
    """
    What:  Health check response for monitoring and load balancers.

    Status levels:
        healthy:  MongoDB is the authoritative store
        degraded: serving from volatile memory; writes will not survive a restart

    Both are HTTP 200: the process handles every request in either mode.
    """

    status: str = Field(description="Overall service status: healthy or degraded")
    version: str = Field(description="Application version")
    storage: StorageHealth
    uptime_seconds: float = Field(description="Seconds since service started")

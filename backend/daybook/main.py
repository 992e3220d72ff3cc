"""
Daybook Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn daybook.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware: storage header → security headers →         │
    │              request ID → rate limit → logging           │
    │                                                          │
    │  Routes: /api/posts  /api/posts/{id}/comments            │
    │          /api/categories  /health                        │
    │                                                          │
    │  Services ──▶ StorageAvailabilityManager                 │
    │                 ├── MongoRemoteStore  (connected)        │
    │                 └── FallbackStore     (disconnected)     │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Report missing configuration (the server still starts)
    3. Arm storage health checks and begin connecting in the background

    Shutdown:
    1. Cancel retry and health-check timers
    2. Close the MongoDB client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from daybook import __version__
from daybook.config import settings
from daybook.database import shutdown_storage, start_storage
from daybook.exceptions import (
    AuthenticationRequiredError,
    DaybookError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    ValidationError,
)
from daybook.middleware.logging import RequestLoggingMiddleware
from daybook.middleware.rate_limit import RateLimitMiddleware
from daybook.middleware.request_id import RequestIDMiddleware, request_id_var
from daybook.middleware.security_headers import SecurityHeadersMiddleware
from daybook.middleware.storage_backend import StorageBackendMiddleware
from daybook.routes import comments, health, posts
from daybook.schemas.common import error_content

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    The storage manager logs every backend switch (connected, disconnected,
    retry scheduled, retries exhausted) at INFO or above, so the default
    level is enough to reconstruct an outage from the logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup and shutdown procedures.

    Startup never waits on MongoDB: the first connection attempt runs in the
    background and requests that arrive before it completes are served from
    memory.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Daybook Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        # Don't exit: the in-memory fallback keeps the blog usable

    await start_storage()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Daybook Backend shutting down...")
    await shutdown_storage()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, exc: DaybookError, details=None, headers=None):
    return JSONResponse(
        status_code=status_code,
        content=error_content(error, exc.message, details=details),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy:
        ValidationError              → 400 Bad Request
        AuthenticationRequiredError  → 401 Unauthorized
        PermissionDeniedError        → 403 Forbidden
        NotFoundError                → 404 Not Found
        RateLimitExceededError       → 429 Too Many Requests
        DaybookError (base)          → 500 Internal Server Error
        Exception (fallback)         → 500 Internal Server Error

    Storage errors are absent on purpose: the storage manager absorbs them and
    serves from memory, so an outage never turns into a 5xx.

    Security: responses never include stack traces or context dicts beyond the
    validation field; full context is logged server-side.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc, details=exc.context or None)

    @app.exception_handler(AuthenticationRequiredError)
    async def handle_authentication_required(request: Request, exc: AuthenticationRequiredError):
        return _error_response(401, "authentication_required", exc)

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.warning(
            "[%s] Permission denied: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(403, "permission_denied", exc)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429,
            "rate_limit_exceeded",
            exc,
            details=exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DaybookError)
    async def handle_daybook_error(request: Request, exc: DaybookError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: stack trace to the log, generic message to the client."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Middleware executes in REVERSE order of addition (last added = outermost).
    """
    app = FastAPI(
        title="Daybook API",
        description=(
            "Personal blog API for posts and comments. Stays available through "
            "database outages by serving from in-memory storage."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-Total-Count",
            "X-Storage-Backend",
            "Retry-After",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(StorageBackendMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(posts.router)
    app.include_router(comments.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()

"""
Daybook Backend — Rate Limiting Middleware
===========================================

What:  Per-IP sliding window rate limiter.
Why:   A public comment form attracts scripted spam; during an outage that spam
       would also fill process memory through the fallback store.
How:   SlidingWindow keeps one deque of hit times per client; the middleware
       turns a refusal into the standard error body with Retry-After.

Limits:
    Single process only. State lives in this middleware instance, so multiple
    workers each enforce their own window.
"""

import logging
import math
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from daybook.config import settings
from daybook.exceptions import RateLimitExceededError
from daybook.schemas.common import error_content

logger = logging.getLogger(__name__)


class SlidingWindow:
    """
    At most `limit` hits per key within any `window` seconds.

    Keys whose newest hit left the window are dropped once the table grows
    past `sweep_at` entries.
    """

    def __init__(
        self,
        limit: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
        sweep_at: int = 1024,
    ):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._sweep_at = sweep_at
        self._hits: Dict[str, Deque[float]] = {}

    def hit(self, key: str) -> Optional[int]:
        """Record a hit. Returns None when allowed, else seconds until a slot frees."""
        now = self._clock()
        hits = self._hits.setdefault(key, deque())
        while hits and hits[0] <= now - self.window:
            hits.popleft()

        if len(hits) >= self.limit:
            return max(1, math.ceil(hits[0] + self.window - now))

        hits.append(now)
        if len(self._hits) > self._sweep_at:
            self._sweep(now)
        return None

    def tracked(self) -> int:
        return len(self._hits)

    def _sweep(self, now: float) -> None:
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= now - self.window]
        for key in stale:
            del self._hits[key]
        if stale:
            logger.debug("Dropped %d idle rate limit entries", len(stale))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Configuration (from settings unless passed in):
        rate_limit_requests: Max requests per window (default: 300)
        rate_limit_window:   Window duration in seconds (default: 900 = 15 min)
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        **kwargs,
    ):
        super().__init__(app, **kwargs)
        self.window = SlidingWindow(
            limit=max_requests or settings.rate_limit_requests,
            window=window_seconds or settings.rate_limit_window,
            clock=clock,
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        retry_after = self.window.hit(client_ip)
        if retry_after is None:
            return await call_next(request)

        error = RateLimitExceededError(retry_after=retry_after)
        logger.warning(
            "Rate limit exceeded for IP %s on %s %s (limit %d per %ds)",
            client_ip,
            request.method,
            request.url.path,
            self.window.limit,
            self.window.window,
        )
        return JSONResponse(
            status_code=429,
            content=error_content("rate_limit_exceeded", error.message, details=error.context),
            headers={"Retry-After": str(error.retry_after)},
        )

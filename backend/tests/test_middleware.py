"""
Daybook Backend — Middleware Tests
===================================
"""

import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from daybook.middleware.rate_limit import RateLimitMiddleware, SlidingWindow
from daybook.middleware.request_id import RequestIDMiddleware, accept_request_id
from daybook.middleware.security_headers import SECURITY_HEADERS


class TestSecurityHeaders:

    @pytest.mark.asyncio
    async def test_present_on_api_responses(self, test_client):
        response = await test_client.get("/api/posts")
        for name, value in SECURITY_HEADERS.items():
            assert response.headers[name] == value

    @pytest.mark.asyncio
    async def test_present_on_errors(self, test_client):
        response = await test_client.get("/api/posts/nope")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestRequestID:

    @pytest.mark.asyncio
    async def test_generated(self, test_client):
        response = await test_client.get("/api/posts")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_client_id_is_echoed(self, test_client):
        response = await test_client.get("/api/posts/nope", headers={"X-Request-ID": "trace-42"})
        assert response.headers["X-Request-ID"] == "trace-42"
        assert response.json()["request_id"] == "trace-42"

    @pytest.mark.asyncio
    async def test_unprintable_client_id_is_replaced(self, test_client):
        response = await test_client.get("/api/posts", headers={"X-Request-ID": "not an id; injected=1"})
        assert response.headers["X-Request-ID"] != "not an id; injected=1"
        assert len(response.headers["X-Request-ID"]) == 8

    def test_accept_request_id(self):
        assert accept_request_id("edge-7f3a:01") == "edge-7f3a:01"
        assert len(accept_request_id("x" * 65)) == 8
        assert len(accept_request_id(None)) == 8


class TestAccessLog:

    @pytest.mark.asyncio
    async def test_line_names_backend_and_request(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="daybook.access"):
            await test_client.get("/api/posts", headers={"X-Request-ID": "trace-log"})

        record = next(r for r in caplog.records if r.name == "daybook.access")
        assert record.backend == "memory"
        assert record.status == 200
        assert "backend=memory [trace-log]" in record.getMessage()

    @pytest.mark.asyncio
    async def test_client_errors_log_as_warning(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="daybook.access"):
            await test_client.get("/api/posts/nope")

        record = next(r for r in caplog.records if r.name == "daybook.access")
        assert record.levelno == logging.WARNING

    @pytest.mark.asyncio
    async def test_health_is_not_logged(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="daybook.access"):
            await test_client.get("/health")

        assert [r for r in caplog.records if r.name == "daybook.access"] == []


def limited_app(max_requests: int) -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"ok": True}

    app.add_middleware(RateLimitMiddleware, max_requests=max_requests, window_seconds=60)
    app.add_middleware(RequestIDMiddleware)
    return app


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_rejects_over_limit(self):
        transport = ASGITransport(app=limited_app(max_requests=2))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            assert (await client.get("/ping")).status_code == 200
            assert (await client.get("/ping")).status_code == 200
            response = await client.get("/ping")

        assert response.status_code == 429
        assert response.json()["error"] == "rate_limit_exceeded"
        assert 1 <= int(response.headers["Retry-After"]) <= 60

    @pytest.mark.asyncio
    async def test_rejection_carries_request_id(self):
        transport = ASGITransport(app=limited_app(max_requests=1))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await client.get("/ping")
            response = await client.get("/ping", headers={"X-Request-ID": "trace-429"})

        assert response.status_code == 429
        assert response.headers["X-Request-ID"] == "trace-429"
        assert response.json()["request_id"] == "trace-429"
        assert response.json()["details"]["retry_after"] == int(response.headers["Retry-After"])

    @pytest.mark.asyncio
    async def test_health_is_never_limited(self):
        transport = ASGITransport(app=limited_app(max_requests=1))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            statuses = [(await client.get("/health")).status_code for _ in range(5)]

        assert statuses == [200] * 5


class TestSlidingWindow:

    def setup_method(self):
        self.now = 1000.0
        self.window = SlidingWindow(limit=2, window=60, clock=lambda: self.now, sweep_at=2)

    def test_refuses_until_oldest_hit_expires(self):
        assert self.window.hit("1.2.3.4") is None
        self.now += 10
        assert self.window.hit("1.2.3.4") is None
        self.now += 5

        assert self.window.hit("1.2.3.4") == 45

        self.now = 1060.0
        assert self.window.hit("1.2.3.4") is None

    def test_refused_hits_are_not_counted(self):
        self.window.hit("a")
        self.window.hit("a")
        for _ in range(10):
            assert self.window.hit("a") is not None

        self.now += 60
        assert self.window.hit("a") is None
        assert self.window.hit("a") is None

    def test_clients_are_independent(self):
        self.window.hit("a")
        self.window.hit("a")
        assert self.window.hit("b") is None

    def test_idle_clients_are_swept(self):
        self.window.hit("a")
        self.window.hit("b")
        self.now += 120

        self.window.hit("c")

        assert self.window.tracked() == 1

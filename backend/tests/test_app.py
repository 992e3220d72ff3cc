"""
Daybook Backend — Configuration & Application Lifecycle Tests
==============================================================
"""

from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from daybook.config import Settings
from daybook.database import build_storage_manager, get_storage, storage_manager
from daybook.main import app, lifespan
from daybook.middleware.rate_limit import RateLimitMiddleware
from daybook.middleware.request_id import RequestIDMiddleware
from daybook.middleware.storage_backend import StorageBackendMiddleware


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.storage_max_retries == 5
        assert settings.storage_retry_interval == 30.0
        assert settings.storage_health_check_interval == 300.0
        assert settings.backend_port == 3000

    def test_blank_uri_is_missing(self):
        assert Settings(_env_file=None, mongodb_uri="   ").mongodb_uri is None

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_missing_uri_reported(self):
        with pytest.raises(ValueError, match="MONGODB_URI"):
            Settings(_env_file=None, mongodb_uri=None).validate_required_for_production()
        Settings(_env_file=None, mongodb_uri="mongodb://db.test/daybook").validate_required_for_production()

    def test_cors_origins_list(self):
        settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]


class TestStorageWiring:

    def test_manager_starts_on_memory(self):
        manager = build_storage_manager()
        assert manager.is_available() is False
        assert manager.status.backend == "memory"

    def test_dependency_returns_singleton(self):
        assert get_storage() is storage_manager


class TestLifespan:

    @pytest.mark.asyncio
    async def test_starts_and_stops_storage(self):
        with patch("daybook.main.start_storage", new_callable=AsyncMock) as start, \
             patch("daybook.main.shutdown_storage", new_callable=AsyncMock) as shutdown:
            async with lifespan(app):
                start.assert_awaited_once()
                shutdown.assert_not_awaited()
            shutdown.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_uri_does_not_prevent_startup(self):
        """MONGODB_URI is unset in the test environment."""
        with patch("daybook.main.start_storage", new_callable=AsyncMock), \
             patch("daybook.main.shutdown_storage", new_callable=AsyncMock):
            async with lifespan(app):
                pass


class TestMiddlewareOrder:

    def test_request_id_wraps_rate_limit(self):
        order = [m.cls for m in app.user_middleware]
        assert order.index(RequestIDMiddleware) < order.index(RateLimitMiddleware)
        assert order[0] is StorageBackendMiddleware

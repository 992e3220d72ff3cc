"""
Daybook Backend — Storage Wiring
=================================

What:  Builds the process-wide StorageAvailabilityManager and exposes it as a
       FastAPI dependency.
Why:   Centralizes all database connection setup in one place, the same way
       every other layer imports `settings`.
How:   The MongoDB client is created lazily on the first connect(), so building
       the manager at import time performs no I/O and needs no event loop.
Who:   Route handlers via Depends(get_storage); the lifespan via
       start_storage() / shutdown_storage().

Test seam:
    Tests replace the dependency with
    `app.dependency_overrides[get_storage] = lambda: manager`, where the
    manager wraps a fake remote store and a manual scheduler.
"""

from daybook.config import settings
from daybook.models.comment import COMMENTS
from daybook.models.post import POSTS
from daybook.storage import MongoRemoteStore, StorageAvailabilityManager


def build_storage_manager() -> StorageAvailabilityManager:
    """Assemble the manager from settings."""
    remote = MongoRemoteStore(
        database=settings.mongodb_database,
        server_selection_timeout_ms=settings.mongo_server_selection_timeout_ms,
        connect_timeout_ms=settings.mongo_connect_timeout_ms,
        indexes={
            POSTS: [[("created_at", -1)], "category"],
            COMMENTS: ["post_id"],
        },
    )
    return StorageAvailabilityManager(
        remote=remote,
        uri=settings.mongodb_uri,
        max_retries=settings.storage_max_retries,
        retry_interval=settings.storage_retry_interval,
        health_check_interval=settings.storage_health_check_interval,
    )


storage_manager = build_storage_manager()


def get_storage() -> StorageAvailabilityManager:
    """FastAPI dependency returning the process-wide manager."""
    return storage_manager


async def start_storage() -> None:
    """Arm health checks and begin connecting (non-blocking)."""
    await storage_manager.start()


async def shutdown_storage() -> None:
    """Cancel timers and close the MongoDB client."""
    await storage_manager.stop()

"""
Daybook Backend — Health Check Route
=====================================

What:  Health check endpoint for monitoring and load balancer probes.
Why:   Operators need to see whether posts are currently being persisted.
How:   Reads the storage manager's status snapshot and counts what the fallback
       store holds. No I/O: the manager's own periodic health check is what
       probes MongoDB.
Who:   Called by Docker health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   MongoDB connected, writes are persisted (HTTP 200)
    - degraded:  serving from in-memory storage (HTTP 200, flag for monitoring)

There is no "unhealthy": the process answers every request in both modes, so
a load balancer should keep routing to it.
"""

import logging
import time

from fastapi import APIRouter, Depends

from daybook import __version__
from daybook.database import get_storage
from daybook.schemas.common import HealthResponse, StorageHealth
from daybook.storage import StorageAvailabilityManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Track when the service started for uptime reporting
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    storage: StorageAvailabilityManager = Depends(get_storage),
) -> HealthResponse:
    snapshot = storage.status
    overall = "healthy" if snapshot.connected else "degraded"
    if overall == "degraded":
        logger.debug("Health check: serving from memory (retry %d/%d)",
                     snapshot.retry_count, snapshot.max_retries)

    return HealthResponse(
        status=overall,
        version=__version__,
        storage=StorageHealth(
            backend=snapshot.backend,
            phase=snapshot.phase.value,
            retry_count=snapshot.retry_count,
            max_retries=snapshot.max_retries,
            exhausted=snapshot.exhausted,
            memory_records={
                name: storage.fallback.count(name) for name in storage.fallback.collections()
            },
        ),
        uptime_seconds=round(time.time() - _start_time, 2),
    )

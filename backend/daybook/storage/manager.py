"""
Daybook Backend — Storage Availability Manager
===============================================

What:  Decides, per call, whether MongoDB or the in-memory fallback store serves
       a read or write, and drives reconnection when MongoDB is unreachable.
Why:   The blog stays usable through database outages. Without this, every
       handler would branch on "is Mongo up?" and repeat its own fallback.
How:   One ConnectionState owned here; a retry timer and a health-check timer
       obtained from an injectable Scheduler; driver events wired to
       on_disconnected() / on_error().
Who:   Built once at import (daybook.database) and injected into services.
When:  start() in the FastAPI lifespan, stop() on shutdown.

Reconnection policy:
    connect() fails         → retry_count += 1, retry in 30 s (up to 5 times)
    fails with budget spent → ConnectionExhaustedError, dormant
    disconnect event        → one retry in 30 s if budget remains (no increment)
    error event             → flag only; the disconnect event or health check retries
    health check (5 min)    → if disconnected: retry_count = 0, connect() now

Routing:
    Every CRUD call checks `connected` first. A remote call that raises while
    connected is logged and served from the fallback store for that one call;
    the flag itself is left to driver events and the next connect().
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from daybook.exceptions import (
    ConfigMissingError,
    ConnectionExhaustedError,
    NetworkError,
    RemoteOperationError,
    StorageError,
)
from daybook.storage.memory import FallbackStore, Query, Record, SortSpec
from daybook.storage.remote import DISCONNECTED, ERROR, RemoteStore
from daybook.storage.scheduler import AsyncioScheduler, ScheduledHandle, Scheduler
from daybook.storage.state import ConnectionState, ConnectionStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _retrieve_outcome(attempt: "asyncio.Future[bool]") -> None:
    """Mark a finished attempt's exception as retrieved when no caller awaited it."""
    if not attempt.cancelled():
        attempt.exception()


class StorageAvailabilityManager:
    """
    Single source of truth for remote store availability and the only gateway
    to either backend.

    Concurrency:
        Runs on one asyncio loop. `connected` is written only by this class.
        connect() is single-flighted: a second caller while an attempt is in
        progress awaits that attempt instead of starting another, so retry
        timers and health checks never race each other.
    """

    def __init__(
        self,
        remote: RemoteStore,
        uri: Optional[str],
        *,
        fallback: Optional[FallbackStore] = None,
        scheduler: Optional[Scheduler] = None,
        max_retries: int = 5,
        retry_interval: float = 30.0,
        health_check_interval: float = 300.0,
    ):
        self._remote = remote
        self._uri = uri
        self._fallback = fallback if fallback is not None else FallbackStore()
        self._scheduler = scheduler or AsyncioScheduler()
        self._state = ConnectionState(
            max_retries=max_retries,
            retry_interval=retry_interval,
            health_check_interval=health_check_interval,
        )
        self._retry_handle: Optional[ScheduledHandle] = None
        self._health_handle: Optional[ScheduledHandle] = None
        self._startup_handle: Optional[ScheduledHandle] = None
        self._attempt: Optional["asyncio.Future[bool]"] = None
        self._stopped = False

        remote.on(DISCONNECTED, self.on_disconnected)
        remote.on(ERROR, self.on_error)

    # ── Read accessors ────────────────────────────────────────────────────

    def is_available(self) -> bool:
        """True when MongoDB is the authoritative store."""
        return self._state.connected

    @property
    def status(self) -> ConnectionStatus:
        return self._state.snapshot()

    @property
    def retry_pending(self) -> bool:
        return self._retry_handle is not None and self._retry_handle.active

    @property
    def fallback(self) -> FallbackStore:
        return self._fallback

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def start(self) -> None:
        """
        Arm the periodic health check and kick off the first connection attempt.

        The first attempt runs in the background: server startup never waits on
        MongoDB, and requests arriving before it finishes are served from memory.
        """
        self._stopped = False
        if self._health_handle is None or not self._health_handle.active:
            self._health_handle = self._scheduler.call_every(
                self._state.health_check_interval, self.health_check
            )
        self._startup_handle = self._scheduler.call_later(0, self._run_connect)

    async def stop(self) -> None:
        """
        Cancel every timer and any in-flight attempt, then close the remote client.

        Once stopped, no attempt may mark the store connected or arm a timer
        until start() is called again.
        """
        self._stopped = True
        for handle in (self._startup_handle, self._retry_handle, self._health_handle):
            if handle is not None:
                handle.cancel()
        self._startup_handle = self._retry_handle = self._health_handle = None

        attempt = self._attempt
        if attempt is not None and not attempt.done():
            attempt.cancel()
            await asyncio.wait({attempt})
        self._attempt = None

        try:
            await self._remote.close()
        except Exception as e:
            logger.warning("Error closing remote store: %s", e)
        self._state.mark_disconnected()

    # ── Connection state machine ──────────────────────────────────────────

    async def connect(self) -> bool:
        """
        Attempt to connect to the remote store.

        Returns:
            True on success, False on a failure that scheduled a retry or
            once stop() has run.

        Raises:
            ConnectionExhaustedError: the attempt failed and the retry budget
                was already spent. Non-fatal; the health check re-arms retries.
        """
        if self._stopped:
            return False
        if self._attempt is None or self._attempt.done():
            self._attempt = asyncio.ensure_future(self._connect_once())
            self._attempt.add_done_callback(_retrieve_outcome)
        attempt = self._attempt
        try:
            return await asyncio.shield(attempt)
        except asyncio.CancelledError:
            # stop() cancelled the shared attempt, not this caller
            if self._stopped and attempt.cancelled():
                return False
            raise

    async def _connect_once(self) -> bool:
        # This attempt supersedes any pending timer
        self._cancel_retry()
        self._state.mark_connecting()
        try:
            if not self._uri:
                raise ConfigMissingError()
            await self._remote.connect(self._uri)
        except Exception as e:
            error = e if isinstance(e, StorageError) else NetworkError(
                message=str(e), context={"error_type": type(e).__name__}
            )
            self._state.mark_disconnected()
            logger.error("MongoDB connection failed: %s", error.message)
            if not self._stopped:
                self._schedule_retry()
            return False

        if self._stopped:
            self._state.mark_disconnected()
            return False
        self._state.mark_connected()
        logger.info("Connected to MongoDB")
        return True

    def _schedule_retry(self) -> None:
        state = self._state
        if state.can_retry:
            state.retry_count += 1
            logger.info(
                "Reconnection attempt %d/%d in %.0f seconds...",
                state.retry_count,
                state.max_retries,
                state.retry_interval,
            )
            self._retry_handle = self._scheduler.call_later(state.retry_interval, self._run_connect)
            return

        logger.warning(
            "Max reconnection attempts reached. Running with in-memory storage; "
            "data will not persist between server restarts."
        )
        raise ConnectionExhaustedError(attempts=state.max_retries)

    async def _run_connect(self) -> None:
        """Timer entry point: a retry, or the first attempt at startup."""
        self._retry_handle = None
        try:
            await self.connect()
        except ConnectionExhaustedError:
            pass  # logged in _schedule_retry; wait for the health check

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    def on_disconnected(self) -> None:
        """Driver event: an established connection dropped."""
        logger.warning("MongoDB disconnected. Switching to fallback storage...")
        self._state.mark_disconnected()
        if self._stopped or not self._state.can_retry or self.retry_pending:
            return
        if self._attempt is not None and not self._attempt.done():
            return
        self._retry_handle = self._scheduler.call_later(
            self._state.retry_interval, self._run_connect
        )

    def on_error(self, error: Any = None) -> None:
        """Driver event: low-level connection error. Never schedules a retry itself."""
        logger.error("MongoDB connection error: %s", error)
        self._state.mark_disconnected()

    async def health_check(self) -> bool:
        """
        Periodic check: if disconnected, reset the retry budget and reconnect.

        This is the only path out of the exhausted state.
        """
        if self._state.connected:
            return True
        logger.info("Performing periodic MongoDB connection health check...")
        self._state.retry_count = 0
        try:
            return await self.connect()
        except ConnectionExhaustedError:
            return False

    # ── Routed CRUD ───────────────────────────────────────────────────────

    async def _guarded(
        self,
        operation: str,
        collection: str,
        remote_call: Callable[[], Awaitable[T]],
        fallback_call: Callable[[], T],
    ) -> T:
        if self._state.connected:
            try:
                return await remote_call()
            except Exception as e:
                error = RemoteOperationError(operation, collection, cause=e)
                logger.error("%s; serving from in-memory storage", error.message)
        return fallback_call()

    async def read(
        self,
        collection: str,
        query: Optional[Query] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Record]:
        return await self._guarded(
            "read",
            collection,
            lambda: self._remote.find(collection, query, sort),
            lambda: self._fallback.find(collection, query, sort),
        )

    async def read_one(self, collection: str, record_id: str) -> Optional[Record]:
        return await self._guarded(
            "read",
            collection,
            lambda: self._remote.find_one(collection, record_id),
            lambda: self._fallback.find_one(collection, record_id),
        )

    async def write(self, collection: str, record: Record) -> Record:
        return await self._guarded(
            "write",
            collection,
            lambda: self._remote.insert(collection, record),
            lambda: self._fallback.insert(collection, record),
        )

    async def update(self, collection: str, record_id: str, patch: Record) -> Optional[Record]:
        return await self._guarded(
            "update",
            collection,
            lambda: self._remote.update(collection, record_id, patch),
            lambda: self._fallback.update(collection, record_id, patch),
        )

    async def remove(self, collection: str, record_id: str) -> Optional[Record]:
        return await self._guarded(
            "remove",
            collection,
            lambda: self._remote.delete(collection, record_id),
            lambda: self._fallback.delete(collection, record_id),
        )

    async def remove_where(self, collection: str, query: Query) -> int:
        return await self._guarded(
            "remove",
            collection,
            lambda: self._remote.delete_many(collection, query),
            lambda: self._fallback.delete_many(collection, query),
        )

"""
Daybook Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Tests must never need a running MongoDB or wait for real timers.
How:   A FakeRemoteStore stands in for MongoDB and a ManualScheduler stands in
       for the event-loop clock; the manager under test is wired to both.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── scheduler: ManualScheduler; advance(seconds) fires due timers
    ├── remote: FakeRemoteStore; flip `reachable` / `failing` to simulate outages
    ├── manager: StorageAvailabilityManager, disconnected, never started
    ├── connected_manager: the same manager after a successful connect()
    ├── author / reader / admin / stranger: Principals
    └── test_client / connected_client: HTTPX AsyncClient against the app
"""

import os
from typing import Dict, List, Optional

# Override settings for testing BEFORE any app imports
os.environ.pop("MONGODB_URI", None)
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

from daybook.exceptions import NetworkError
from daybook.identity import Principal, Role
from daybook.storage import RemoteStore, ScheduledHandle, Scheduler, StorageAvailabilityManager
from daybook.storage.memory import Query, Record, SortSpec, matches, sort_records

FAKE_URI = "mongodb://db.test:27017/daybook"


# ══════════════════════════════════════════════════════════════════════════
# Test doubles
# ══════════════════════════════════════════════════════════════════════════


class ManualHandle(ScheduledHandle):
    def __init__(self, callback, delay: float, due: float, periodic: bool):
        self.callback = callback
        self.delay = delay
        self.due = due
        self.periodic = periodic
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not self.cancelled and (self.periodic or not self.fired)


class ManualScheduler(Scheduler):
    """
    Virtual clock. Nothing runs until a test calls advance().

    Usage:
        await scheduler.advance(30)   # fires everything due within 30 s
        scheduler.pending_delays()    # delays of one-shot timers still armed
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: List[ManualHandle] = []

    def call_later(self, delay, callback) -> ManualHandle:
        handle = ManualHandle(callback, delay, self.now + delay, periodic=False)
        self.handles.append(handle)
        return handle

    def call_every(self, interval, callback) -> ManualHandle:
        handle = ManualHandle(callback, interval, self.now + interval, periodic=True)
        self.handles.append(handle)
        return handle

    def pending(self) -> List[ManualHandle]:
        return [h for h in self.handles if h.active and not h.periodic]

    def pending_delays(self) -> List[float]:
        return [h.delay for h in self.pending()]

    def periodic(self) -> List[ManualHandle]:
        return [h for h in self.handles if h.active and h.periodic]

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if h.active and h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.now = handle.due
            if handle.periodic:
                handle.due += handle.delay
            else:
                handle.fired = True
            await handle.callback()
        self.now = target


class FakeRemoteStore(RemoteStore):
    """
    In-memory stand-in for MongoDB with ObjectId-formatted ids.

    Flags:
        reachable: connect() succeeds only when True
        failing:   every CRUD call raises, as a dropped socket would
    """

    def __init__(self, reachable: bool = True):
        super().__init__()
        self.reachable = reachable
        self.failing = False
        self.connect_calls = 0
        self.close_calls = 0
        self.crud_calls = 0
        self.connected_uri: Optional[str] = None
        self.data: Dict[str, List[Record]] = {}

    async def connect(self, uri: str) -> None:
        self.connect_calls += 1
        if not self.reachable:
            raise NetworkError(message="connection refused")
        self.connected_uri = uri

    async def close(self) -> None:
        self.close_calls += 1

    def _touch(self) -> None:
        self.crud_calls += 1
        if self.failing:
            raise ConnectionResetError("socket closed")

    def _rows(self, collection: str) -> List[Record]:
        return self.data.setdefault(collection, [])

    async def find(self, collection: str, query: Optional[Query] = None, sort: Optional[SortSpec] = None):
        self._touch()
        return sort_records([dict(r) for r in self._rows(collection) if matches(r, query)], sort)

    async def find_one(self, collection: str, record_id: str):
        self._touch()
        return next((dict(r) for r in self._rows(collection) if r["id"] == record_id), None)

    async def insert(self, collection: str, record: Record):
        self._touch()
        stored = dict(record, id=str(ObjectId()))
        self._rows(collection).append(stored)
        return dict(stored)

    async def update(self, collection: str, record_id: str, patch: Record):
        self._touch()
        for row in self._rows(collection):
            if row["id"] == record_id:
                row.update({k: v for k, v in patch.items() if k != "id"})
                return dict(row)
        return None

    async def delete(self, collection: str, record_id: str):
        self._touch()
        rows = self._rows(collection)
        for index, row in enumerate(rows):
            if row["id"] == record_id:
                return rows.pop(index)
        return None

    async def delete_many(self, collection: str, query: Query) -> int:
        self._touch()
        rows = self._rows(collection)
        kept = [r for r in rows if not matches(r, query)]
        self.data[collection] = kept
        return len(rows) - len(kept)


# ══════════════════════════════════════════════════════════════════════════
# Storage fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def scheduler():
    """A virtual clock; timers only fire on scheduler.advance()."""
    return ManualScheduler()


@pytest.fixture
def remote():
    """A reachable fake MongoDB."""
    return FakeRemoteStore()


@pytest.fixture
def manager(remote, scheduler):
    """
    A disconnected manager with default policy (5 retries, 30 s, 300 s).

    Not started: tests call connect(), start() or the event hooks themselves.
    """
    return StorageAvailabilityManager(remote, FAKE_URI, scheduler=scheduler)


@pytest_asyncio.fixture
async def connected_manager(manager):
    """The manager after a successful connect(); MongoDB is authoritative."""
    assert await manager.connect() is True
    return manager


# ══════════════════════════════════════════════════════════════════════════
# Identity fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def author():
    return Principal(user_id="u-ana", username="ana", role=Role.AUTHOR)


@pytest.fixture
def stranger():
    return Principal(user_id="u-ben", username="ben", role=Role.AUTHOR)


@pytest.fixture
def reader():
    return Principal(user_id="u-cy", username="cy", role=Role.READER)


@pytest.fixture
def admin():
    return Principal(user_id="u-root", username="root", role=Role.ADMIN)


def identity_headers(principal: Principal) -> Dict[str, str]:
    """Headers the fronting auth gateway would forward for `principal`."""
    return {
        "X-User-Id": principal.user_id,
        "X-User-Name": principal.username,
        "X-User-Role": principal.role.value,
    }


# ══════════════════════════════════════════════════════════════════════════
# HTTP fixtures
# ══════════════════════════════════════════════════════════════════════════


async def _client_for(storage):
    from daybook.database import get_storage
    from daybook.main import app

    app.dependency_overrides[get_storage] = lambda: storage
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_storage, None)


@pytest_asyncio.fixture
async def test_client(manager):
    """
    HTTPX AsyncClient talking to the app, with storage served from memory.

    ASGITransport does not run the lifespan, so the process-wide manager is
    never started; requests see the `manager` fixture instead.
    """
    async for client in _client_for(manager):
        yield client


@pytest_asyncio.fixture
async def connected_client(connected_manager):
    """Same as test_client, with MongoDB (the fake) connected."""
    async for client in _client_for(connected_manager):
        yield client


@pytest.fixture
def headers_for():
    """Builds identity headers: headers_for(author) -> {"X-User-Id": ...}."""
    return identity_headers

"""
Daybook Backend — Remote Document Store
========================================

What:  The primary persistent store (MongoDB) behind an abstract interface.
Why:   The availability manager treats the remote store as an opaque capability:
       connect(uri), close(), disconnect/error events, and CRUD calls. Tests
       swap in a fake; production uses PyMongo's native asyncio client.
How:   MongoRemoteStore wraps pymongo.AsyncMongoClient. Driver monitoring
       listeners translate topology changes into "disconnected" and "error"
       events, which are marshalled onto the event loop before any handler runs.

Record shape:
    Records cross this boundary as plain dicts with a string "id".
    MongoDB's `_id: ObjectId` is converted on the way in and out, so callers
    never see bson types. An id that is not a valid ObjectId (for example a
    UUID minted by the fallback store) is a miss, not an error.

Error translation (driver → Daybook):
    ServerSelectionTimeoutError, NetworkTimeout → ConnectTimeoutError
    ConfigurationError (bad URI)                → StorageError
    Any other PyMongoError                      → NetworkError
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from bson import ObjectId
from pymongo import AsyncMongoClient, ReturnDocument, monitoring
from pymongo.errors import (
    ConfigurationError,
    NetworkTimeout,
    PyMongoError,
    ServerSelectionTimeoutError,
)

from daybook.exceptions import (
    ConnectTimeoutError,
    NetworkError,
    StorageError,
)
from daybook.storage.memory import Query, Record, SortSpec

logger = logging.getLogger(__name__)

DISCONNECTED = "disconnected"
ERROR = "error"
EVENTS = (DISCONNECTED, ERROR)

EventHandler = Callable[..., None]


class RemoteStore(ABC):
    """
    Abstract interface for the primary document store.

    Contract:
        - connect() raises a StorageError subclass on failure and returns
          normally once the store answered a round trip
        - CRUD methods may raise anything; the manager guards every call
        - event handlers are invoked on the event loop thread
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[EventHandler]] = {name: [] for name in EVENTS}

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe to 'disconnected' or 'error'."""
        if event not in self._listeners:
            raise ValueError(f"Unknown remote store event '{event}'. Expected one of: {EVENTS}")
        self._listeners[event].append(handler)

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self._listeners.get(event, ())):
            try:
                handler(*args)
            except Exception as e:
                logger.error("Remote store '%s' handler failed: %s", event, e, exc_info=True)

    @abstractmethod
    async def connect(self, uri: str) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        query: Optional[Query] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Record]:
        ...

    @abstractmethod
    async def find_one(self, collection: str, record_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    async def insert(self, collection: str, record: Record) -> Record:
        ...

    @abstractmethod
    async def update(self, collection: str, record_id: str, patch: Record) -> Optional[Record]:
        ...

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    async def delete_many(self, collection: str, query: Query) -> int:
        ...


# ══════════════════════════════════════════════════════════════════════════
# Driver event bridging
# ══════════════════════════════════════════════════════════════════════════


class _TopologyEvents(monitoring.TopologyListener):
    """Emits 'disconnected' when the deployment loses its last writable server."""

    def __init__(self, store: "MongoRemoteStore"):
        self._store = store

    def opened(self, event: monitoring.TopologyOpenedEvent) -> None:
        pass

    def closed(self, event: monitoring.TopologyClosedEvent) -> None:
        pass

    def description_changed(self, event: monitoring.TopologyDescriptionChangedEvent) -> None:
        previous = event.previous_description
        current = event.new_description
        self._store._primary = next(
            (
                address
                for address, server in current.server_descriptions().items()
                if server.is_writable
            ),
            None,
        )
        if previous.has_writable_server() and not current.has_writable_server():
            self._store._emit_threadsafe(DISCONNECTED)


class _HeartbeatEvents(monitoring.ServerHeartbeatListener):
    """Emits 'error' when the heartbeat to the current primary fails."""

    def __init__(self, store: "MongoRemoteStore"):
        self._store = store

    def started(self, event: monitoring.ServerHeartbeatStartedEvent) -> None:
        pass

    def succeeded(self, event: monitoring.ServerHeartbeatSucceededEvent) -> None:
        pass

    def failed(self, event: monitoring.ServerHeartbeatFailedEvent) -> None:
        # Secondaries flapping must not take the blog off MongoDB
        if event.connection_id == self._store._primary:
            self._store._emit_threadsafe(ERROR, event.reply)


def translate_error(exc: BaseException) -> StorageError:
    """Map a driver exception onto the Daybook storage taxonomy."""
    if isinstance(exc, StorageError):
        return exc
    if isinstance(exc, (ServerSelectionTimeoutError, NetworkTimeout)):
        return ConnectTimeoutError(
            message=f"Timed out connecting to MongoDB: {exc}",
            context={"error_type": type(exc).__name__},
        )
    if isinstance(exc, ConfigurationError):
        return StorageError(
            message=f"Invalid MongoDB configuration: {exc}",
            context={"error_type": type(exc).__name__},
        )
    return NetworkError(
        message=f"MongoDB connection failed: {exc}",
        context={"error_type": type(exc).__name__},
    )


def _object_id(record_id: str) -> Optional[ObjectId]:
    if ObjectId.is_valid(record_id):
        return ObjectId(record_id)
    return None


def _to_record(document: Dict[str, Any]) -> Record:
    record = dict(document)
    record["id"] = str(record.pop("_id"))
    return record


# ══════════════════════════════════════════════════════════════════════════
# MongoDB implementation
# ══════════════════════════════════════════════════════════════════════════


class MongoRemoteStore(RemoteStore):
    """
    MongoDB via PyMongo's asyncio client.

    Connection lifecycle:
        - The client is created lazily on the first connect() and reused by
          later attempts; the driver keeps monitoring the deployment between
          attempts, so a retry is just another ping.
        - A URI change (rare: only when settings are reloaded) replaces the client.
        - close() shuts the client down and silences driver events.
    """

    def __init__(
        self,
        database: str = "daybook",
        server_selection_timeout_ms: int = 5000,
        connect_timeout_ms: int = 10000,
        indexes: Optional[Dict[str, List[Any]]] = None,
    ):
        super().__init__()
        self._database_name = database
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._connect_timeout_ms = connect_timeout_ms
        self._indexes = indexes or {}
        self._client: Optional[AsyncMongoClient] = None
        self._uri: Optional[str] = None
        self._db = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._primary = None
        self._closing = False

    def _emit_threadsafe(self, event: str, *args: Any) -> None:
        if self._closing or self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self.emit, event, *args)

    def _build_client(self, uri: str) -> AsyncMongoClient:
        return AsyncMongoClient(
            uri,
            serverSelectionTimeoutMS=self._server_selection_timeout_ms,
            connectTimeoutMS=self._connect_timeout_ms,
            tz_aware=True,
            appname="daybook",
            event_listeners=[_TopologyEvents(self), _HeartbeatEvents(self)],
        )

    async def connect(self, uri: str) -> None:
        self._loop = asyncio.get_running_loop()
        self._closing = False
        try:
            if self._client is None or uri != self._uri:
                await self._discard_client()
                self._client = self._build_client(uri)
                self._uri = uri
                self._db = self._client.get_default_database(default=self._database_name)
            await self._client.admin.command("ping")
            for collection, keys in self._indexes.items():
                for key in keys:
                    await self._db[collection].create_index(key)
        except PyMongoError as e:
            raise translate_error(e) from e

    async def close(self) -> None:
        self._closing = True
        await self._discard_client()

    async def _discard_client(self) -> None:
        if self._client is not None:
            client, self._client, self._db = self._client, None, None
            await client.close()

    def _collection(self, name: str):
        if self._db is None:
            raise NetworkError(message="MongoDB client is not connected")
        return self._db[name]

    def _filter(self, query: Optional[Query]) -> Optional[Dict[str, Any]]:
        """Translate a record query to a MongoDB filter; None means 'matches nothing'."""
        flt = dict(query or {})
        if "id" in flt:
            oid = _object_id(str(flt.pop("id")))
            if oid is None:
                return None
            flt["_id"] = oid
        return flt

    async def find(
        self,
        collection: str,
        query: Optional[Query] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Record]:
        flt = self._filter(query)
        if flt is None:
            return []
        cursor = self._collection(collection).find(flt)
        if sort:
            cursor = cursor.sort(list(sort))
        return [_to_record(doc) async for doc in cursor]

    async def find_one(self, collection: str, record_id: str) -> Optional[Record]:
        oid = _object_id(record_id)
        if oid is None:
            return None
        doc = await self._collection(collection).find_one({"_id": oid})
        return _to_record(doc) if doc is not None else None

    async def insert(self, collection: str, record: Record) -> Record:
        doc = {k: v for k, v in record.items() if k != "id"}
        result = await self._collection(collection).insert_one(doc)
        doc["_id"] = result.inserted_id
        return _to_record(doc)

    async def update(self, collection: str, record_id: str, patch: Record) -> Optional[Record]:
        oid = _object_id(record_id)
        if oid is None:
            return None
        changes = {k: v for k, v in patch.items() if k != "id"}
        doc = await self._collection(collection).find_one_and_update(
            {"_id": oid},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return _to_record(doc) if doc is not None else None

    async def delete(self, collection: str, record_id: str) -> Optional[Record]:
        oid = _object_id(record_id)
        if oid is None:
            return None
        doc = await self._collection(collection).find_one_and_delete({"_id": oid})
        return _to_record(doc) if doc is not None else None

    async def delete_many(self, collection: str, query: Query) -> int:
        flt = self._filter(query)
        if flt is None:
            return 0
        result = await self._collection(collection).delete_many(flt)
        return result.deleted_count

"""
Daybook Backend — Storage Layer
================================

What:  Best-effort persistence: MongoDB when reachable, process memory when not.

Components:
    - StorageAvailabilityManager: routes every CRUD call and drives reconnection
    - ConnectionState / ConnectionStatus: the owned flag and its read-only snapshot
    - RemoteStore / MongoRemoteStore: the primary document store
    - FallbackStore: volatile in-process collections
    - Scheduler / AsyncioScheduler: cancellable timers (injectable clock)
"""

from daybook.storage.manager import StorageAvailabilityManager
from daybook.storage.memory import FallbackStore
from daybook.storage.remote import MongoRemoteStore, RemoteStore
from daybook.storage.scheduler import AsyncioScheduler, ScheduledHandle, Scheduler
from daybook.storage.state import ConnectionPhase, ConnectionState, ConnectionStatus

__all__ = [
    "AsyncioScheduler",
    "ConnectionPhase",
    "ConnectionState",
    "ConnectionStatus",
    "FallbackStore",
    "MongoRemoteStore",
    "RemoteStore",
    "ScheduledHandle",
    "Scheduler",
    "StorageAvailabilityManager",
]

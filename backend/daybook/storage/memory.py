"""
Daybook Backend — In-Memory Fallback Store
===========================================

What:  The volatile per-process container used while MongoDB is unreachable.
Why:   The blog must keep accepting posts and comments during an outage.
How:   One Python list of dicts per collection. Lookups are linear scans,
       inserts append a record with a fresh UUID4 id, updates mutate the stored
       dict in place, deletes remove it from the list.

Durability:
    None. Everything here is lost on restart, and nothing is replayed into
    MongoDB when the connection comes back. Records written during an outage
    stay visible only while the manager is disconnected.

Identifier format:
    UUID4 strings (36 chars with dashes), never confused with MongoDB's
    24-hex-char ObjectIds. The remote store treats a UUID id as a miss.

Query semantics (a small subset of MongoDB's):
    {"field": value}   equality, or membership when the stored value is a list
    sort=[("created_at", -1), ("title", 1)]
"""

import copy
import uuid
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

Record = Dict[str, Any]
Query = Dict[str, Any]
SortSpec = Sequence[Tuple[str, int]]


def generate_local_id() -> str:
    """Identifier for a record created in memory."""
    return str(uuid.uuid4())


def matches(record: Record, query: Optional[Query]) -> bool:
    """True when every key in `query` matches the record."""
    if not query:
        return True
    for key, expected in query.items():
        actual = record.get(key)
        if isinstance(actual, list) and not isinstance(expected, list):
            if expected not in actual:
                return False
        elif actual != expected:
            return False
    return True


def sort_records(records: List[Record], sort: Optional[SortSpec]) -> List[Record]:
    """
    Apply a MongoDB-style multi-key sort.

    Python's sort is stable, so sorting by the keys in reverse order yields
    the same result as a single compound sort. Missing values sort first
    ascending (as MongoDB orders null before other types).
    """
    if not sort:
        return records
    for field, direction in reversed(list(sort)):
        records.sort(
            key=lambda r: (r.get(field) is not None, r.get(field)),
            reverse=direction < 0,
        )
    return records


class FallbackStore:
    """
    Collections of loosely-typed records held in process memory.

    All methods are synchronous: they never yield to the event loop, so a
    read-modify-write here is atomic with respect to other requests.
    Returned records are copies; mutating them does not touch the store.
    """

    def __init__(self) -> None:
        self._collections: Dict[str, List[Record]] = defaultdict(list)

    def find(
        self,
        collection: str,
        query: Optional[Query] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Record]:
        found = [copy.deepcopy(r) for r in self._collections[collection] if matches(r, query)]
        return sort_records(found, sort)

    def find_one(self, collection: str, record_id: str) -> Optional[Record]:
        stored = self._locate(collection, record_id)
        return copy.deepcopy(stored) if stored is not None else None

    def insert(self, collection: str, record: Record) -> Record:
        stored = copy.deepcopy(record)
        stored["id"] = generate_local_id()
        self._collections[collection].append(stored)
        return copy.deepcopy(stored)

    def update(self, collection: str, record_id: str, patch: Record) -> Optional[Record]:
        stored = self._locate(collection, record_id)
        if stored is None:
            return None
        stored.update({k: copy.deepcopy(v) for k, v in patch.items() if k != "id"})
        return copy.deepcopy(stored)

    def delete(self, collection: str, record_id: str) -> Optional[Record]:
        records = self._collections[collection]
        for index, record in enumerate(records):
            if record.get("id") == record_id:
                return records.pop(index)
        return None

    def delete_many(self, collection: str, query: Query) -> int:
        records = self._collections[collection]
        kept = [r for r in records if not matches(r, query)]
        removed = len(records) - len(kept)
        self._collections[collection] = kept
        return removed

    def count(self, collection: str) -> int:
        return len(self._collections[collection])

    def collections(self) -> Iterable[str]:
        return [name for name, records in self._collections.items() if records]

    def _locate(self, collection: str, record_id: str) -> Optional[Record]:
        for record in self._collections[collection]:
            if record.get("id") == record_id:
                return record
        return None

"""In-memory record store.

Behaves like the remote store (owner scoping, server-assigned ids and
timestamps, ordering) without any I/O. Used by tests and by the CLI's
"memory" backend.
"""

import copy
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from .base import COLLECTIONS, VAULT_COLLECTION, Record
from .errors import check_collection, not_found


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRecordStore:
    """Record store backed by dictionaries."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        """
        Args:
            clock: Source of created_at timestamps
        """
        self._clock = clock
        self._collections: dict[str, dict[str, Record]] = {name: {} for name in COLLECTIONS}

    def records(self, collection: str) -> list[Record]:
        """Raw copies of every stored record (all owners)."""
        return [copy.deepcopy(r) for r in self._collections[collection].values()]

    def put(self, collection: str, record: Record) -> None:
        """Store a raw record as-is, bypassing id/timestamp assignment."""
        self._collections[collection][record["id"]] = copy.deepcopy(record)

    async def insert(self, collection: str, record: Record) -> Record:
        check_collection(collection)

        stored = copy.deepcopy(record)
        stored["id"] = stored.get("id") or str(uuid.uuid4())
        stored.setdefault("created_at", self._clock().isoformat())
        if collection == VAULT_COLLECTION:
            stored.setdefault("is_favorite", False)

        self._collections[collection][stored["id"]] = stored
        return copy.deepcopy(stored)

    async def update(
        self,
        collection: str,
        record_id: str,
        owner_id: str,
        changes: Record,
    ) -> Record:
        check_collection(collection)

        stored = self._owned(collection, record_id, owner_id)
        if stored is None:
            raise not_found(collection, record_id)

        stored.update(copy.deepcopy(changes))
        return copy.deepcopy(stored)

    async def delete(self, collection: str, record_id: str, owner_id: str) -> None:
        check_collection(collection)

        if self._owned(collection, record_id, owner_id) is None:
            raise not_found(collection, record_id)
        del self._collections[collection][record_id]

    async def select(
        self,
        collection: str,
        owner_id: str,
        filters: Optional[Record] = None,
        order_by: str = "created_at",
        descending: bool = False,
    ) -> list[Record]:
        check_collection(collection)

        filters = filters or {}
        rows = [
            copy.deepcopy(r)
            for r in self._collections[collection].values()
            if r.get("user_id") == owner_id
            and all(r.get(key) == value for key, value in filters.items())
        ]
        rows.sort(key=lambda r: str(r.get(order_by) or ""), reverse=descending)
        return rows

    def _owned(self, collection: str, record_id: str, owner_id: str) -> Optional[Record]:
        stored = self._collections[collection].get(record_id)
        if stored is None or stored.get("user_id") != owner_id:
            return None
        return stored

"""Error helpers shared by the record store adapters."""

from ..vault.exceptions import EntryNotFoundError, GroupNotFoundError, StoreError
from .base import COLLECTIONS, GROUPS_COLLECTION


def not_found(collection: str, record_id: str) -> StoreError:
    """Build the not-found error matching a collection."""
    if collection == GROUPS_COLLECTION:
        return GroupNotFoundError(record_id)
    return EntryNotFoundError(record_id)


def check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise StoreError(f"Unknown collection: {collection}")

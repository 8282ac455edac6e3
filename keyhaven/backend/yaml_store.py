"""File-backed record store using YAML files.

Each record is stored as an individual YAML file:
    data_dir/vault/<id>.yaml   - Vault entries (ciphertext + metadata)
    data_dir/groups/<id>.yaml  - Groups
"""

import copy
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import yaml

from ..utils.logging import get_logger
from ..vault.exceptions import StoreError
from .base import COLLECTIONS, VAULT_COLLECTION, Record
from .errors import check_collection, not_found

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class YamlRecordStore:
    """Manages record storage in a data directory.

    Records are written with safe_dump and read with safe_load; timestamps
    are kept as ISO-8601 strings so files stay human-readable.
    """

    def __init__(self, data_dir: Path, clock: Callable[[], datetime] = _utcnow):
        """Initialize storage for a data directory.

        Args:
            data_dir: Directory holding one sub-directory per collection
            clock: Source of created_at timestamps
        """
        self.data_dir = Path(data_dir)
        self._clock = clock

    def ensure_dirs(self) -> None:
        """Create collection directories if they don't exist."""
        for collection in COLLECTIONS:
            (self.data_dir / collection).mkdir(parents=True, exist_ok=True)

    def record_path(self, collection: str, record_id: str) -> Path:
        """Get path to a record file."""
        if not record_id or "/" in record_id or "\\" in record_id or record_id.startswith("."):
            raise StoreError(f"Invalid record id: {record_id!r}")
        return self.data_dir / collection / f"{record_id}.yaml"

    def _load(self, path: Path) -> Record:
        try:
            with open(path, encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Failed to read {path.name}: {e}") from e

    def _save(self, path: Path, record: Record) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(
                    record,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                )
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Failed to write {path.name}: {e}") from e

    def _load_owned(self, collection: str, record_id: str, owner_id: str) -> Optional[Record]:
        path = self.record_path(collection, record_id)
        if not path.exists():
            return None
        record = self._load(path)
        if record.get("user_id") != owner_id:
            return None
        return record

    async def insert(self, collection: str, record: Record) -> Record:
        check_collection(collection)

        stored = copy.deepcopy(record)
        stored["id"] = stored.get("id") or str(uuid.uuid4())
        stored.setdefault("created_at", self._clock().isoformat())
        if collection == VAULT_COLLECTION:
            stored.setdefault("is_favorite", False)

        self._save(self.record_path(collection, stored["id"]), stored)
        logger.debug("Wrote %s record %s", collection, stored["id"])
        return stored

    async def update(
        self,
        collection: str,
        record_id: str,
        owner_id: str,
        changes: Record,
    ) -> Record:
        check_collection(collection)

        record = self._load_owned(collection, record_id, owner_id)
        if record is None:
            raise not_found(collection, record_id)

        record.update(copy.deepcopy(changes))
        self._save(self.record_path(collection, record_id), record)
        return record

    async def delete(self, collection: str, record_id: str, owner_id: str) -> None:
        check_collection(collection)

        if self._load_owned(collection, record_id, owner_id) is None:
            raise not_found(collection, record_id)

        try:
            self.record_path(collection, record_id).unlink()
        except OSError as e:
            raise StoreError(f"Failed to delete {record_id}: {e}") from e

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
        collection_dir = self.data_dir / collection
        rows: list[Record] = []

        if not collection_dir.exists():
            return rows

        for yaml_file in collection_dir.glob("*.yaml"):
            record = self._load(yaml_file)
            if record.get("user_id") != owner_id:
                continue
            if all(record.get(key) == value for key, value in filters.items()):
                rows.append(record)

        rows.sort(key=lambda r: str(r.get(order_by) or ""), reverse=descending)
        return rows


def init_yaml_store(data_dir: Path) -> YamlRecordStore:
    """Create a YAML store and its collection directories."""
    store = YamlRecordStore(data_dir)
    store.ensure_dirs()
    return store

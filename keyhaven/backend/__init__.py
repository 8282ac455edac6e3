"""Record store and auth adapters for keyhaven.

Adapters:
- InMemoryRecordStore: dictionaries, for tests and throwaway sessions
- YamlRecordStore: one YAML file per record in a local data directory
- RestRecordStore: PostgREST-style HTTP API (e.g. Supabase)
"""

from typing import Optional

from .base import (
    COLLECTIONS,
    GROUPS_COLLECTION,
    VAULT_COLLECTION,
    AuthProvider,
    RecordStore,
    StaticAuthProvider,
)
from .memory import InMemoryRecordStore
from .yaml_store import YamlRecordStore, init_yaml_store
from .rest import RestRecordStore
from ..config.settings import Settings, get_settings
from ..vault.exceptions import StoreError


def create_record_store(settings: Optional[Settings] = None) -> RecordStore:
    """
    Build the record store selected by settings.

    Args:
        settings: Application settings (uses global if not provided)

    Returns:
        A record store adapter
    """
    settings = settings or get_settings()
    backend = settings.backend

    if backend.kind == "memory":
        return InMemoryRecordStore()

    if backend.kind == "yaml":
        return init_yaml_store(backend.data_dir)

    if backend.kind == "rest":
        if not backend.rest_url or not backend.rest_api_key:
            raise StoreError("REST backend needs KEYHAVEN_REST_URL and KEYHAVEN_REST_API_KEY")
        return RestRecordStore(
            base_url=backend.rest_url,
            api_key=backend.rest_api_key,
            access_token=backend.rest_token,
            timeout=backend.timeout,
        )

    raise StoreError(f"Unknown backend: {backend.kind}")


__all__ = [
    "COLLECTIONS",
    "VAULT_COLLECTION",
    "GROUPS_COLLECTION",
    "RecordStore",
    "AuthProvider",
    "StaticAuthProvider",
    "InMemoryRecordStore",
    "YamlRecordStore",
    "init_yaml_store",
    "RestRecordStore",
    "create_record_store",
]

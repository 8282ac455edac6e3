"""Interfaces of the external collaborators the vault core talks to.

The record store holds two owner-scoped collections and never sees plaintext
secrets. The auth provider only answers "who is signed in".
"""

from typing import Any, Optional, Protocol

VAULT_COLLECTION = "vault"
GROUPS_COLLECTION = "groups"
COLLECTIONS = (VAULT_COLLECTION, GROUPS_COLLECTION)

Record = dict[str, Any]


class RecordStore(Protocol):
    """Keyed, owner-scoped record storage.

    Implementations assign ``id`` and ``created_at`` on insert and raise
    keyhaven.vault.exceptions.StoreError (or a subclass) on failure.
    update() and delete() raise EntryNotFoundError/GroupNotFoundError when
    no record with that id belongs to the owner.
    """

    async def insert(self, collection: str, record: Record) -> Record:
        ...

    async def update(
        self,
        collection: str,
        record_id: str,
        owner_id: str,
        changes: Record,
    ) -> Record:
        ...

    async def delete(self, collection: str, record_id: str, owner_id: str) -> None:
        ...

    async def select(
        self,
        collection: str,
        owner_id: str,
        filters: Optional[Record] = None,
        order_by: str = "created_at",
        descending: bool = False,
    ) -> list[Record]:
        ...


class AuthProvider(Protocol):
    """Source of the signed-in identity."""

    def current_user_id(self) -> Optional[str]:
        ...

    def is_authenticated(self) -> bool:
        ...

    def sign_out(self) -> None:
        ...


class StaticAuthProvider:
    """Auth provider bound to a fixed user id until sign-out."""

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id

    def sign_in(self, user_id: str) -> None:
        self._user_id = user_id

    def current_user_id(self) -> Optional[str]:
        return self._user_id

    def is_authenticated(self) -> bool:
        return bool(self._user_id)

    def sign_out(self) -> None:
        self._user_id = None

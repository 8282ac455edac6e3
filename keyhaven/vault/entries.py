"""Vault entry store: CRUD over encrypted records.

Secrets are encrypted before they are handed to the record store and
decrypted after retrieval. The store itself only ever sees ciphertext.
"""

import asyncio
from typing import Optional

from ..backend.base import VAULT_COLLECTION, AuthProvider, RecordStore
from ..utils.logging import get_logger
from .crypto import Cipher
from .exceptions import AuthError, DecryptionError, EntryNotFoundError
from .models import (
    ALL_GROUP,
    EntryInput,
    EntryUpdate,
    VaultEntry,
    VaultRecord,
    is_virtual_group,
)

logger = get_logger(__name__)


class VaultEntryStore:
    """
    Maps between wire records (ciphertext) and domain entries (plaintext).

    Usage:
        store = VaultEntryStore(records, auth)
        entry = await store.create(EntryInput(...), passphrase)
        entries = await store.list(passphrase, group_filter="all")
    """

    def __init__(
        self,
        records: RecordStore,
        auth: AuthProvider,
        cipher: Optional[Cipher] = None,
    ):
        """
        Args:
            records: Remote record store
            auth: Source of the signed-in user id
            cipher: Cipher for secret fields (default: configured work factor)
        """
        self.records = records
        self.auth = auth
        self.cipher = cipher or Cipher()

    def _owner_id(self) -> str:
        user_id = self.auth.current_user_id()
        if not self.auth.is_authenticated() or not user_id:
            raise AuthError()
        return user_id

    async def _encrypt(self, plaintext: str, passphrase: str) -> str:
        return await asyncio.to_thread(self.cipher.encrypt, plaintext, passphrase)

    def _decrypt_strict(self, record: VaultRecord, passphrase: str) -> VaultEntry:
        password = self.cipher.decrypt(record.encrypted_password, passphrase)
        security_answer = None
        if record.encrypted_security_answer:
            security_answer = self.cipher.decrypt(record.encrypted_security_answer, passphrase)
        return VaultEntry.from_vault_record(record, password, security_answer)

    def _decrypt_isolated(self, record: VaultRecord, passphrase: str) -> VaultEntry:
        """Decrypt one entry; a failure marks the entry instead of raising."""
        try:
            return self._decrypt_strict(record, passphrase)
        except DecryptionError as e:
            logger.warning("Failed to decrypt vault entry %s: %s", record.id, e)
            return VaultEntry.from_vault_record(record, None, None, decryption_failed=True)

    async def create(self, entry_input: EntryInput, passphrase: str) -> VaultEntry:
        """
        Encrypt and store a new entry.

        Args:
            entry_input: Plaintext input from the user
            passphrase: Master passphrase

        Returns:
            The stored entry, decrypted

        Raises:
            ValidationError: Missing account name, group or password
            AuthError: Nobody is signed in
            StoreError: The record store rejected the insert
        """
        entry_input.validate()
        owner_id = self._owner_id()

        encrypted_password = await self._encrypt(entry_input.password, passphrase)
        encrypted_answer = None
        if entry_input.security_answer:
            encrypted_answer = await self._encrypt(entry_input.security_answer, passphrase)

        row = await self.records.insert(VAULT_COLLECTION, {
            "account_name": entry_input.account_name.strip(),
            "group_name": entry_input.group,
            "username": entry_input.username,
            "email": entry_input.email,
            "encrypted_password": encrypted_password,
            "phone_no": entry_input.phone_number,
            "security_question": entry_input.security_question,
            "security_answer": encrypted_answer,
            "is_favorite": False,
            "user_id": owner_id,
        })

        record = VaultRecord.from_record(row)
        logger.info("Created vault entry %s", record.id)
        return await asyncio.to_thread(self._decrypt_strict, record, passphrase)

    async def update(self, entry_id: str, entry_update: EntryUpdate, passphrase: str) -> VaultEntry:
        """
        Apply a partial update.

        Only secret fields present in the update are re-encrypted; stored
        ciphertext for every other secret is left byte-for-byte unchanged.

        Raises:
            DecryptionError: The stored entry does not decrypt under this
                passphrase; nothing is written
            EntryNotFoundError: No such entry for the signed-in user
        """
        entry_update.validate()
        owner_id = self._owner_id()

        rows = await self.records.select(VAULT_COLLECTION, owner_id, filters={"id": entry_id})
        if not rows:
            raise EntryNotFoundError(entry_id)
        current = VaultRecord.from_record(rows[0])
        # The passphrase must read the stored secrets before anything is written
        await asyncio.to_thread(self._decrypt_strict, current, passphrase)

        changes = entry_update.plaintext_changes()
        if entry_update.password:
            changes["encrypted_password"] = await self._encrypt(entry_update.password, passphrase)
        if entry_update.security_answer:
            changes["security_answer"] = await self._encrypt(entry_update.security_answer, passphrase)

        row = await self.records.update(VAULT_COLLECTION, entry_id, owner_id, changes)

        record = VaultRecord.from_record(row)
        logger.info("Updated vault entry %s (%s)", record.id, ", ".join(sorted(changes)))
        return await asyncio.to_thread(self._decrypt_strict, record, passphrase)

    async def delete(self, entry_id: str) -> None:
        """Permanently delete an entry."""
        owner_id = self._owner_id()
        await self.records.delete(VAULT_COLLECTION, entry_id, owner_id)
        logger.info("Deleted vault entry %s", entry_id)

    async def list(self, passphrase: str, group_filter: str = ALL_GROUP) -> list[VaultEntry]:
        """
        Fetch and decrypt the signed-in user's entries, newest first.

        Real groups are filtered by the record store; virtual groups are
        never sent to it. Entries are decrypted concurrently and
        independently: an entry that fails to decrypt comes back with
        decryption_failed=True and the rest of the list is unaffected.
        """
        owner_id = self._owner_id()

        filters = None
        if not is_virtual_group(group_filter):
            filters = {"group_name": group_filter}

        rows = await self.records.select(
            VAULT_COLLECTION,
            owner_id,
            filters=filters,
            order_by="created_at",
            descending=True,
        )
        records = [VaultRecord.from_record(row) for row in rows]
        records.sort(key=lambda r: r.created_at, reverse=True)

        entries = await asyncio.gather(*(
            asyncio.to_thread(self._decrypt_isolated, record, passphrase)
            for record in records
        ))

        failures = sum(1 for e in entries if e.decryption_failed)
        if failures:
            logger.warning("%d of %d vault entries could not be decrypted", failures, len(entries))

        return list(entries)

    async def set_favorite(self, entry_id: str, value: bool) -> None:
        """Set the favorite flag. Touches no ciphertext and needs no passphrase."""
        owner_id = self._owner_id()
        await self.records.update(VAULT_COLLECTION, entry_id, owner_id, {"is_favorite": bool(value)})
        logger.debug("Set favorite=%s on vault entry %s", bool(value), entry_id)

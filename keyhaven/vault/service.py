"""Consumer-facing vault service.

Ties the session key holder, the entry and group stores and the view
projection together. This is the surface a UI or the CLI calls:

    service = VaultService(records, auth)
    service.unlock(passphrase)
    views = await service.list_entries("all", search_query="git")
    await service.toggle_favorite(views[0].id)
    service.lock()

The service keeps the last committed listing in memory. Favorite toggles are
applied to it optimistically and rolled back if the record store rejects
them.
"""

from datetime import datetime
from typing import Callable, Optional

from ..backend.base import AuthProvider, RecordStore
from ..utils.logging import get_logger
from .config import VaultConfig, get_vault_config
from .crypto import Cipher
from .entries import VaultEntryStore
from .exceptions import AuthError, EntryNotFoundError, StoreError
from .groups import GroupStore
from .models import (
    ALL_GROUP,
    EntryInput,
    EntryUpdate,
    EntryView,
    Group,
    VaultEntry,
    VaultSummary,
    utcnow,
)
from .projection import ListRequestTracker, group_title, project, summarize
from .session import SessionKeyHolder

logger = get_logger(__name__)


class VaultService:
    """
    Client-side vault: unlock/lock, entry and group operations, and the
    in-memory view those operations reconcile against.
    """

    def __init__(
        self,
        records: RecordStore,
        auth: AuthProvider,
        key_holder: Optional[SessionKeyHolder] = None,
        cipher: Optional[Cipher] = None,
        config: Optional[VaultConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            records: Remote record store
            auth: Authentication collaborator
            key_holder: Passphrase holder (default: new holder with config timeout)
            cipher: Cipher for secret fields
            config: Vault configuration (uses global if not provided)
            clock: Time source for the "recent" view
        """
        self.config = config or get_vault_config()
        self.auth = auth
        self.key_holder = key_holder or SessionKeyHolder(self.config.session_timeout_minutes)
        self.entry_store = VaultEntryStore(records, auth, cipher)
        self.group_store = GroupStore(records, auth, self.config.default_group_icon)
        self._clock = clock
        self._tracker = ListRequestTracker()
        self._entries: list[VaultEntry] = []
        self._groups: list[Group] = []
        self.active_group = ALL_GROUP

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def _require_identity(self) -> None:
        if not self.auth.is_authenticated():
            raise AuthError()

    def _require_passphrase(self) -> str:
        self._require_identity()
        return self.key_holder.require()

    @property
    def is_unlocked(self) -> bool:
        return self.key_holder.is_unlocked

    def unlock(self, passphrase: str) -> None:
        """
        Hold the master passphrase for this session.

        Signing in proves identity to the backend; unlocking proves
        possession of the passphrase to this client. Both are needed.
        """
        self._require_identity()
        self.key_holder.set(passphrase)
        logger.info("Vault unlocked")

    def lock(self) -> None:
        """Forget the passphrase and every decrypted entry."""
        self.key_holder.clear()
        self._tracker.invalidate()
        self._entries = []
        logger.info("Vault locked")

    def sign_out(self) -> None:
        """Lock the vault and end the authenticated session."""
        self.lock()
        self.auth.sign_out()
        self._groups = []
        self.active_group = ALL_GROUP

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    @property
    def entries(self) -> list[VaultEntry]:
        """Entries of the last committed listing."""
        return list(self._entries)

    @property
    def groups(self) -> list[Group]:
        """Last loaded group catalog."""
        return list(self._groups)

    @property
    def title(self) -> str:
        return group_title(self.active_group, self._groups)

    def _project(self, entries: list[VaultEntry], group_filter: str, search_query: Optional[str]) -> list[EntryView]:
        return project(
            entries,
            self._groups,
            group_filter,
            search_query,
            now=self._clock(),
            recent_days=self.config.recent_window_days,
        )

    def visible_entries(self, search_query: Optional[str] = None) -> list[EntryView]:
        """Project the committed listing for the active group and a search query."""
        return self._project(self._entries, self.active_group, search_query)

    def summary(self) -> VaultSummary:
        return summarize(self._entries, now=self._clock(), recent_days=self.config.recent_window_days)

    def _find(self, entry_id: str) -> VaultEntry:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        raise EntryNotFoundError(entry_id)

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    async def load(self, group_filter: Optional[str] = None) -> list[EntryView]:
        """Load the group catalog, then list entries."""
        self._require_passphrase()
        await self.list_groups()
        return await self.list_entries(group_filter)

    async def list_entries(
        self,
        group_filter: Optional[str] = None,
        search_query: Optional[str] = None,
    ) -> list[EntryView]:
        """
        Fetch, decrypt and project entries.

        The newest call always wins: if a later call was issued while this
        one was in flight, this call's result is returned to its caller but
        never replaces the committed view.

        Raises:
            AuthError: Nobody is signed in
            SessionLockedError: The vault has not been unlocked
        """
        group_filter = group_filter or self.active_group
        passphrase = self._require_passphrase()

        self.active_group = group_filter
        ticket = self._tracker.begin(group_filter)
        entries = await self.entry_store.list(passphrase, group_filter)

        if self._tracker.is_current(ticket):
            self._entries = entries
        else:
            logger.debug("Dropped superseded listing for %s", ticket.snapshot)

        return self._project(entries, group_filter, search_query)

    async def refresh(self) -> list[EntryView]:
        """Re-list the active group."""
        return await self.list_entries(self.active_group)

    async def _refresh_after_write(self) -> None:
        """Re-list after a saved mutation. A failed re-list leaves the view stale."""
        try:
            await self.refresh()
        except StoreError as e:
            logger.warning("Change saved, but re-listing %s failed: %s", self.active_group, e)

    async def create_entry(self, entry_input: EntryInput) -> VaultEntry:
        passphrase = self._require_passphrase()
        entry = await self.entry_store.create(entry_input, passphrase)
        await self._refresh_after_write()
        return entry

    async def update_entry(self, entry_id: str, entry_update: EntryUpdate) -> VaultEntry:
        passphrase = self._require_passphrase()
        entry = await self.entry_store.update(entry_id, entry_update, passphrase)
        await self._refresh_after_write()
        return entry

    async def delete_entry(self, entry_id: str) -> None:
        self._require_identity()
        await self.entry_store.delete(entry_id)
        self._entries = [e for e in self._entries if e.id != entry_id]

    async def set_favorite(self, entry_id: str, value: bool) -> bool:
        """
        Set the favorite flag, updating the view before the store confirms.

        On StoreError the view is rolled back to its previous value and the
        error is re-raised.
        """
        self._require_identity()

        try:
            entry = self._find(entry_id)
        except EntryNotFoundError:
            entry = None

        previous = entry.is_favorite if entry is not None else None
        if entry is not None:
            entry.is_favorite = value

        try:
            await self.entry_store.set_favorite(entry_id, value)
        except StoreError:
            if entry is not None:
                entry.is_favorite = previous
            logger.warning("Favorite update for %s failed; reverted", entry_id)
            raise

        return value

    async def toggle_favorite(self, entry_id: str) -> bool:
        """Flip the favorite flag of a listed entry. Returns the new value."""
        self._require_identity()
        entry = self._find(entry_id)
        return await self.set_favorite(entry_id, not entry.is_favorite)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    async def list_groups(self) -> list[Group]:
        self._groups = await self.group_store.list()
        return list(self._groups)

    async def _catalog_changed(self) -> None:
        await self.list_groups()
        if self.key_holder.is_unlocked:
            await self.refresh()

    async def create_group(self, name: str) -> Group:
        group = await self.group_store.create(name)
        await self._catalog_changed()
        return group

    async def rename_group(self, group_id: str, name: str) -> Group:
        group = await self.group_store.update(group_id, name)
        await self._catalog_changed()
        return group

    async def delete_group(self, group_id: str) -> None:
        """Delete a group; if it was the active view, fall back to "all"."""
        await self.group_store.delete(group_id)
        if self.active_group == group_id:
            self.active_group = ALL_GROUP
        await self._catalog_changed()

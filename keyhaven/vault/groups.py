"""Group store: CRUD over named categories of vault entries.

Group names are not secret, so nothing here touches the cipher. Deleting a
group leaves its entries alone; they keep their stored group reference.
"""

from typing import Optional

from ..backend.base import GROUPS_COLLECTION, AuthProvider, RecordStore
from ..utils.logging import get_logger
from .config import get_vault_config
from .exceptions import AuthError, DuplicateGroupError, ValidationError
from .models import Group

logger = get_logger(__name__)


def normalize_group_name(name: Optional[str]) -> str:
    """Trim a group name, rejecting blank names."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Group name cannot be empty", field="name")
    return name


class GroupStore:
    """Owner-scoped group catalog."""

    def __init__(
        self,
        records: RecordStore,
        auth: AuthProvider,
        default_icon: Optional[str] = None,
    ):
        self.records = records
        self.auth = auth
        self.default_icon = default_icon or get_vault_config().default_group_icon

    def _owner_id(self) -> str:
        user_id = self.auth.current_user_id()
        if not self.auth.is_authenticated() or not user_id:
            raise AuthError()
        return user_id

    async def list(self) -> list[Group]:
        """All groups of the signed-in user, oldest first."""
        owner_id = self._owner_id()
        rows = await self.records.select(GROUPS_COLLECTION, owner_id, order_by="created_at")
        groups = [Group.from_record(row) for row in rows]
        groups.sort(key=lambda g: g.created_at)
        return groups

    async def _check_unique(self, name: str, exclude_id: Optional[str] = None) -> None:
        wanted = name.casefold()
        for group in await self.list():
            if group.id != exclude_id and group.name.casefold() == wanted:
                raise DuplicateGroupError(name)

    async def create(self, name: str, icon: Optional[str] = None) -> Group:
        """
        Create a group.

        Raises:
            ValidationError: Name is empty after trimming
            DuplicateGroupError: The user already has a group with this name
                (compared case-insensitively)
        """
        name = normalize_group_name(name)
        owner_id = self._owner_id()
        await self._check_unique(name)

        row = await self.records.insert(GROUPS_COLLECTION, {
            "name": name,
            "user_id": owner_id,
            "icon_type": icon or self.default_icon,
        })
        group = Group.from_record(row)
        logger.info("Created group %s", group.id)
        return group

    async def update(self, group_id: str, name: str) -> Group:
        """Rename a group. Same validation as create()."""
        name = normalize_group_name(name)
        owner_id = self._owner_id()
        await self._check_unique(name, exclude_id=group_id)

        row = await self.records.update(GROUPS_COLLECTION, group_id, owner_id, {"name": name})
        group = Group.from_record(row)
        logger.info("Renamed group %s", group.id)
        return group

    async def delete(self, group_id: str) -> None:
        """Delete a group. Its entries are not deleted."""
        owner_id = self._owner_id()
        await self.records.delete(GROUPS_COLLECTION, group_id, owner_id)
        logger.info("Deleted group %s", group_id)

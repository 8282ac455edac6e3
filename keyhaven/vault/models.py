"""Data models for vault entries and groups.

Two representations of a vault entry exist:

- VaultRecord: the wire form exchanged with the record store. Secret fields
  hold ciphertext only.
- VaultEntry: the domain form, with secrets decrypted into memory.

Records coming back from the store pass through a single strict mapping
(from_record) that rejects unknown or malformed shapes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .exceptions import RecordShapeError, ValidationError

DECRYPTION_FAILED_MARKER = "[Decryption Failed]"

# Canonical identifiers of the computed, never-persisted groups
ALL_GROUP = "all"
FAVORITES_GROUP = "favorites"
RECENT_GROUP = "recent"
VIRTUAL_GROUPS = (ALL_GROUP, FAVORITES_GROUP, RECENT_GROUP)


def is_virtual_group(group_id: Optional[str]) -> bool:
    """True for "all", "favorites" and "recent" (and for no group at all)."""
    return group_id is None or group_id in VIRTUAL_GROUPS


DEFAULT_GROUP_ICON = "📁"

VAULT_RECORD_FIELDS = frozenset({
    "id",
    "user_id",
    "account_name",
    "group_name",
    "username",
    "email",
    "encrypted_password",
    "phone_no",
    "security_question",
    "security_answer",
    "is_favorite",
    "created_at",
})

GROUP_RECORD_FIELDS = frozenset({"id", "user_id", "name", "icon_type", "created_at"})


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any, key: str = "created_at") -> datetime:
    """Parse an ISO-8601 string or datetime into an aware UTC datetime."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise RecordShapeError(f"Field '{key}' is not an ISO-8601 timestamp")
    if not isinstance(value, datetime):
        raise RecordShapeError(f"Field '{key}' must be a timestamp")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _check_keys(data: Any, allowed: frozenset, required: tuple, kind: str) -> dict:
    if not isinstance(data, dict):
        raise RecordShapeError(f"{kind} record must be a mapping, got {type(data).__name__}")

    unknown = set(data) - allowed
    if unknown:
        raise RecordShapeError(f"{kind} record has unknown fields: {', '.join(sorted(unknown))}")

    missing = [key for key in required if data.get(key) is None]
    if missing:
        raise RecordShapeError(f"{kind} record is missing fields: {', '.join(missing)}")

    return data


def _str_field(data: dict, key: str, optional: bool = True) -> Optional[str]:
    value = data.get(key)
    if value is None:
        if optional:
            return None
        raise RecordShapeError(f"Field '{key}' is required")
    if isinstance(value, int) and not isinstance(value, bool) and key in ("id", "user_id"):
        return str(value)
    if not isinstance(value, str):
        raise RecordShapeError(f"Field '{key}' must be a string")
    return value


@dataclass
class VaultRecord:
    """Wire form of a vault entry, as stored remotely."""

    id: str
    owner_id: str
    account_name: str
    group_ref: str
    encrypted_password: str
    created_at: datetime
    username: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    security_question: Optional[str] = None
    encrypted_security_answer: Optional[str] = None
    is_favorite: bool = False

    @classmethod
    def from_record(cls, data: Any) -> "VaultRecord":
        """Validate and map a raw store record."""
        data = _check_keys(
            data,
            VAULT_RECORD_FIELDS,
            ("id", "user_id", "account_name", "group_name", "encrypted_password", "created_at"),
            "Vault",
        )

        is_favorite = data.get("is_favorite")
        if is_favorite is None:
            is_favorite = False
        if not isinstance(is_favorite, bool):
            raise RecordShapeError("Field 'is_favorite' must be a boolean")

        return cls(
            id=_str_field(data, "id", optional=False),
            owner_id=_str_field(data, "user_id", optional=False),
            account_name=_str_field(data, "account_name", optional=False),
            group_ref=_str_field(data, "group_name", optional=False),
            encrypted_password=_str_field(data, "encrypted_password", optional=False),
            created_at=parse_timestamp(data["created_at"]),
            username=_str_field(data, "username"),
            email=_str_field(data, "email"),
            phone_number=_str_field(data, "phone_no"),
            security_question=_str_field(data, "security_question"),
            encrypted_security_answer=_str_field(data, "security_answer"),
            is_favorite=is_favorite,
        )

    def to_record(self) -> dict[str, Any]:
        """Convert back to the store's field names."""
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "account_name": self.account_name,
            "group_name": self.group_ref,
            "username": self.username,
            "email": self.email,
            "encrypted_password": self.encrypted_password,
            "phone_no": self.phone_number,
            "security_question": self.security_question,
            "security_answer": self.encrypted_security_answer,
            "is_favorite": self.is_favorite,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class VaultEntry:
    """A vault entry with its secrets decrypted into memory.

    Attributes:
        id: Server-assigned identifier
        owner_id: Owning user
        account_name: Display label (not secret)
        group_ref: Stored group reference (a group id, or a legacy group name)
        created_at: Creation time (UTC)
        username, email, phone_number, security_question: Plaintext metadata
        password: Decrypted password (None if decryption failed)
        security_answer: Decrypted security answer, if any
        is_favorite: Favorite flag
        decryption_failed: True when the secrets could not be decrypted
    """

    id: str
    owner_id: str
    account_name: str
    group_ref: str
    created_at: datetime
    username: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    security_question: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    security_answer: Optional[str] = field(default=None, repr=False)
    is_favorite: bool = False
    decryption_failed: bool = False

    @classmethod
    def from_vault_record(
        cls,
        record: VaultRecord,
        password: Optional[str],
        security_answer: Optional[str],
        decryption_failed: bool = False,
    ) -> "VaultEntry":
        return cls(
            id=record.id,
            owner_id=record.owner_id,
            account_name=record.account_name,
            group_ref=record.group_ref,
            created_at=record.created_at,
            username=record.username,
            email=record.email,
            phone_number=record.phone_number,
            security_question=record.security_question,
            password=password,
            security_answer=security_answer,
            is_favorite=record.is_favorite,
            decryption_failed=decryption_failed,
        )

    @property
    def password_display(self) -> str:
        """Password text for display, or the failure marker."""
        if self.decryption_failed:
            return DECRYPTION_FAILED_MARKER
        return self.password or ""


def _require_text(value: Optional[str], field_name: str, message: str) -> None:
    if value is None or not value.strip():
        raise ValidationError(message, field=field_name)


@dataclass
class EntryInput:
    """User input for a new vault entry."""

    account_name: str
    group: str
    password: str = field(repr=False)
    username: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    security_question: Optional[str] = None
    security_answer: Optional[str] = field(default=None, repr=False)

    def validate(self) -> None:
        """Raise ValidationError on the first invalid field."""
        _require_text(self.account_name, "account_name", "Account Name cannot be empty")
        _require_text(self.group, "group", "Group must be selected")
        if not self.password:
            raise ValidationError("Password cannot be empty", field="password")


@dataclass
class EntryUpdate:
    """Partial update of a vault entry. Fields left as None are not touched."""

    account_name: Optional[str] = None
    group: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    security_question: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    security_answer: Optional[str] = field(default=None, repr=False)

    def validate(self) -> None:
        if self.account_name is not None:
            _require_text(self.account_name, "account_name", "Account Name cannot be empty")
        if self.group is not None:
            _require_text(self.group, "group", "Group must be selected")
        if self.password is not None and not self.password:
            raise ValidationError("Password cannot be empty", field="password")
        if self.is_empty:
            raise ValidationError("Nothing to update")

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.account_name,
                self.group,
                self.username,
                self.email,
                self.phone_number,
                self.security_question,
                self.password,
                self.security_answer,
            )
        )

    @property
    def has_secrets(self) -> bool:
        return bool(self.password) or bool(self.security_answer)

    def plaintext_changes(self) -> dict[str, Any]:
        """Non-secret changes, keyed by store field name."""
        mapping = {
            "account_name": self.account_name.strip() if self.account_name is not None else None,
            "group_name": self.group,
            "username": self.username,
            "email": self.email,
            "phone_no": self.phone_number,
            "security_question": self.security_question,
        }
        return {key: value for key, value in mapping.items() if value is not None}


@dataclass
class Group:
    """A user-defined category of vault entries."""

    id: str
    owner_id: str
    name: str
    created_at: datetime
    icon: str = DEFAULT_GROUP_ICON

    @classmethod
    def from_record(cls, data: Any) -> "Group":
        """Validate and map a raw store record."""
        data = _check_keys(data, GROUP_RECORD_FIELDS, ("id", "user_id", "name", "created_at"), "Group")

        return cls(
            id=_str_field(data, "id", optional=False),
            owner_id=_str_field(data, "user_id", optional=False),
            name=_str_field(data, "name", optional=False),
            created_at=parse_timestamp(data["created_at"]),
            icon=_str_field(data, "icon_type") or DEFAULT_GROUP_ICON,
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "name": self.name,
            "icon_type": self.icon,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class GroupLabel:
    """Result of joining an entry's group reference against the catalog."""

    id: str
    label: str
    icon: str = DEFAULT_GROUP_ICON
    orphaned: bool = False


@dataclass
class EntryView:
    """A vault entry joined with its display group."""

    entry: VaultEntry
    group: GroupLabel

    @property
    def id(self) -> str:
        return self.entry.id


@dataclass
class VaultSummary:
    """Counts shown above the entry list."""

    total: int = 0
    favorites: int = 0
    recent: int = 0
    decryption_failures: int = 0
    latest_entry: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "favorites": self.favorites,
            "recent": self.recent,
            "decryption_failures": self.decryption_failures,
            "latest_entry": self.latest_entry,
        }

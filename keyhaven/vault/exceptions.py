"""Vault exceptions for the keyhaven credential vault."""

from typing import Optional


class VaultError(Exception):
    """Base exception for vault operations."""

    pass


class AuthError(VaultError):
    """Raised when no authenticated identity is available."""

    def __init__(self, message: str = "Not authenticated. Please sign in again."):
        super().__init__(message)


class SessionLockedError(VaultError):
    """Raised when the user is signed in but the vault has not been unlocked."""

    def __init__(self, message: str = "Vault is locked. Unlock with master password first."):
        super().__init__(message)


class SessionExpiredError(SessionLockedError):
    """Raised when the unlocked session has timed out."""

    def __init__(self, message: str = "Session has expired. Please unlock again."):
        super().__init__(message)


class ValidationError(VaultError):
    """Raised when user input fails validation.

    Attributes:
        field: Name of the offending input field, if any
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DuplicateGroupError(ValidationError):
    """Raised when a group name is already in use for this user."""

    def __init__(self, name: str):
        super().__init__(f'Group "{name}" already exists', field="name")
        self.name = name


class DecryptionError(VaultError):
    """Raised when decryption fails."""

    def __init__(self, message: str = "Failed to decrypt secret."):
        super().__init__(message)


class EncryptionError(VaultError):
    """Raised when encryption fails."""

    def __init__(self, message: str = "Failed to encrypt secret."):
        super().__init__(message)


class StoreError(VaultError):
    """Raised when the remote record store fails."""

    def __init__(self, message: str = "Record store request failed."):
        super().__init__(message)


class EntryNotFoundError(StoreError):
    """Raised when a vault entry does not exist for this user."""

    def __init__(self, entry_id: str = ""):
        message = f"Vault entry not found: {entry_id}" if entry_id else "Vault entry not found."
        super().__init__(message)
        self.entry_id = entry_id


class GroupNotFoundError(StoreError):
    """Raised when a group does not exist for this user."""

    def __init__(self, group_id: str = ""):
        message = f"Group not found: {group_id}" if group_id else "Group not found."
        super().__init__(message)
        self.group_id = group_id


class RecordShapeError(StoreError):
    """Raised when a record from the store does not match the expected shape."""

    def __init__(self, message: str = "Record has an unexpected shape."):
        super().__init__(message)

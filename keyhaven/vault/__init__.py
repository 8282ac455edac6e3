"""Client-side encryption boundary of the keyhaven credential vault.

Secrets are encrypted under the master passphrase before they leave the
client; the record store only ever holds ciphertext and plaintext metadata.

Usage:
    from keyhaven.vault import VaultService, EntryInput

    service = VaultService(records, auth)
    service.unlock(passphrase)
    await service.create_entry(EntryInput(account_name="GitHub", group="Work", password="..."))
    views = await service.list_entries("all")
    service.lock()
"""

# Exceptions
from .exceptions import (
    AuthError,
    DecryptionError,
    DuplicateGroupError,
    EncryptionError,
    EntryNotFoundError,
    GroupNotFoundError,
    RecordShapeError,
    SessionExpiredError,
    SessionLockedError,
    StoreError,
    ValidationError,
    VaultError,
)

# Configuration
from .config import (
    VaultConfig,
    get_vault_config,
    set_vault_config,
)

# Cipher
from .crypto import (
    Cipher,
    KeyDerivation,
    decrypt,
    encrypt,
)

# Session
from .session import SessionKeyHolder

# Models
from .models import (
    ALL_GROUP,
    DECRYPTION_FAILED_MARKER,
    FAVORITES_GROUP,
    RECENT_GROUP,
    VIRTUAL_GROUPS,
    EntryInput,
    EntryUpdate,
    EntryView,
    Group,
    GroupLabel,
    VaultEntry,
    VaultRecord,
    VaultSummary,
    is_virtual_group,
)

# Stores and service
from .entries import VaultEntryStore
from .groups import GroupStore
from .projection import (
    ListRequestTracker,
    filter_virtual,
    project,
    resolve_group,
    search_entries,
    summarize,
)
from .service import VaultService
from .generator import generate_password

__all__ = [
    # Exceptions
    "VaultError",
    "AuthError",
    "SessionLockedError",
    "SessionExpiredError",
    "ValidationError",
    "DuplicateGroupError",
    "DecryptionError",
    "EncryptionError",
    "StoreError",
    "EntryNotFoundError",
    "GroupNotFoundError",
    "RecordShapeError",
    # Configuration
    "VaultConfig",
    "get_vault_config",
    "set_vault_config",
    # Cipher
    "Cipher",
    "KeyDerivation",
    "encrypt",
    "decrypt",
    # Session
    "SessionKeyHolder",
    # Models
    "ALL_GROUP",
    "FAVORITES_GROUP",
    "RECENT_GROUP",
    "VIRTUAL_GROUPS",
    "DECRYPTION_FAILED_MARKER",
    "EntryInput",
    "EntryUpdate",
    "EntryView",
    "Group",
    "GroupLabel",
    "VaultEntry",
    "VaultRecord",
    "VaultSummary",
    "is_virtual_group",
    # Stores
    "VaultEntryStore",
    "GroupStore",
    # Projection
    "ListRequestTracker",
    "filter_virtual",
    "search_entries",
    "resolve_group",
    "project",
    "summarize",
    # Service
    "VaultService",
    # Generator
    "generate_password",
]

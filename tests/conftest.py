"""Shared pytest fixtures for keyhaven tests."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest

from keyhaven.backend import InMemoryRecordStore, StaticAuthProvider
from keyhaven.backend.base import Record
from keyhaven.vault.exceptions import StoreError


TEST_ITERATIONS = 1_000


@pytest.fixture(autouse=True)
def fast_vault_config():
    """Use a low PBKDF2 work factor and no idle timeout for every test."""
    from keyhaven.config.settings import configure
    from keyhaven.vault import VaultConfig, set_vault_config

    set_vault_config(VaultConfig(pbkdf2_iterations=TEST_ITERATIONS, session_timeout_minutes=0))
    yield
    set_vault_config(None)
    configure(None)


@pytest.fixture
def passphrase() -> str:
    return "Sn0wman!"


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def records() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def auth() -> StaticAuthProvider:
    return StaticAuthProvider("user-1")


@pytest.fixture
def cipher():
    from keyhaven.vault import Cipher

    return Cipher(iterations=TEST_ITERATIONS)


@pytest.fixture
def service(records, auth):
    from keyhaven.vault import VaultService

    return VaultService(records, auth)


@pytest.fixture
def unlocked_service(service, passphrase):
    service.unlock(passphrase)
    return service


@pytest.fixture
def vault_row(cipher, passphrase, now) -> Callable[..., Record]:
    """Build a raw vault record with real ciphertext, as the store would hold it."""

    def build(
        record_id: str,
        account_name: str = "GitHub",
        password: str = "GitSecure#456",
        group: str = "group-1",
        days_old: float = 0,
        owner_id: str = "user-1",
        **overrides,
    ) -> Record:
        row = {
            "id": record_id,
            "user_id": owner_id,
            "account_name": account_name,
            "group_name": group,
            "username": None,
            "email": None,
            "encrypted_password": cipher.encrypt(password, passphrase),
            "phone_no": None,
            "security_question": None,
            "security_answer": None,
            "is_favorite": False,
            "created_at": (now - timedelta(days=days_old)).isoformat(),
        }
        row.update(overrides)
        return row

    return build


class FailingRecordStore(InMemoryRecordStore):
    """In-memory store whose updates or vault listings can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_updates = False
        self.fail_vault_selects = False

    async def select(self, collection: str, owner_id: str, filters=None, order_by="created_at", descending=False):
        if self.fail_vault_selects and collection == "vault":
            raise StoreError("connection reset")
        return await super().select(collection, owner_id, filters, order_by, descending)

    async def update(self, collection: str, record_id: str, owner_id: str, changes: Record) -> Record:
        if self.fail_updates:
            raise StoreError("network unreachable")
        return await super().update(collection, record_id, owner_id, changes)


@pytest.fixture
def failing_records() -> FailingRecordStore:
    return FailingRecordStore()


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 3, 15, 12, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()

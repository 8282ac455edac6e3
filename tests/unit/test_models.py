"""Tests for vault and group models."""

from datetime import datetime, timezone

import pytest

from keyhaven.vault import (
    DECRYPTION_FAILED_MARKER,
    EntryInput,
    EntryUpdate,
    Group,
    RecordShapeError,
    ValidationError,
    VaultEntry,
    VaultRecord,
    is_virtual_group,
)
from keyhaven.vault.models import DEFAULT_GROUP_ICON, parse_timestamp


def make_row(**overrides) -> dict:
    row = {
        "id": "entry-1",
        "user_id": "user-1",
        "account_name": "GitHub",
        "group_name": "group-1",
        "username": "octocat",
        "email": None,
        "encrypted_password": "ciphertext",
        "phone_no": None,
        "security_question": None,
        "security_answer": None,
        "is_favorite": False,
        "created_at": "2026-03-15T12:00:00+00:00",
    }
    row.update(overrides)
    return row


class TestVaultRecord:
    """Tests for the strict wire mapping of vault records."""

    def test_from_record(self):
        """A well-formed row maps to domain field names."""
        record = VaultRecord.from_record(make_row(phone_no="555-0100", security_answer="answer-ct"))

        assert record.id == "entry-1"
        assert record.owner_id == "user-1"
        assert record.group_ref == "group-1"
        assert record.phone_number == "555-0100"
        assert record.encrypted_security_answer == "answer-ct"
        assert record.created_at == datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)

    def test_roundtrip_to_record(self):
        """to_record restores the store's field names."""
        row = make_row()

        assert VaultRecord.from_record(row).to_record() == row

    def test_unknown_field_rejected(self):
        """An unexpected column is a shape error, not silently dropped."""
        with pytest.raises(RecordShapeError, match="unknown fields: password"):
            VaultRecord.from_record(make_row(password="plaintext"))

    def test_missing_field_rejected(self):
        """A row without ciphertext is rejected."""
        row = make_row()
        del row["encrypted_password"]

        with pytest.raises(RecordShapeError, match="encrypted_password"):
            VaultRecord.from_record(row)

    def test_wrong_type_rejected(self):
        """is_favorite must be a real boolean."""
        with pytest.raises(RecordShapeError, match="is_favorite"):
            VaultRecord.from_record(make_row(is_favorite="yes"))

    def test_not_a_mapping(self):
        with pytest.raises(RecordShapeError):
            VaultRecord.from_record(["entry-1"])

    def test_numeric_ids_become_strings(self):
        """Integer primary keys from SQL backends are accepted."""
        record = VaultRecord.from_record(make_row(id=42))

        assert record.id == "42"

    def test_null_favorite_defaults_false(self):
        record = VaultRecord.from_record(make_row(is_favorite=None))

        assert record.is_favorite is False

    def test_bad_timestamp(self):
        with pytest.raises(RecordShapeError, match="created_at"):
            VaultRecord.from_record(make_row(created_at="last tuesday"))


class TestTimestamps:
    """Tests for timestamp parsing."""

    def test_zulu_suffix(self):
        assert parse_timestamp("2026-03-15T12:00:00Z") == datetime(2026, 3, 15, 12, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp(datetime(2026, 3, 15, 12)).tzinfo == timezone.utc

    def test_offset_converted(self):
        parsed = parse_timestamp("2026-03-15T14:00:00+02:00")

        assert parsed == datetime(2026, 3, 15, 12, tzinfo=timezone.utc)


class TestVaultEntry:
    """Tests for decrypted entries."""

    def test_repr_hides_secrets(self):
        """Secrets never show up in repr or logs built from it."""
        record = VaultRecord.from_record(make_row())
        entry = VaultEntry.from_vault_record(record, "GitSecure#456", "Fluffy")

        assert "GitSecure#456" not in repr(entry)
        assert "Fluffy" not in repr(entry)
        assert "GitHub" in repr(entry)

    def test_failed_entry_display(self):
        """A failed entry shows the marker instead of a password."""
        record = VaultRecord.from_record(make_row())
        entry = VaultEntry.from_vault_record(record, None, None, decryption_failed=True)

        assert entry.password is None
        assert entry.password_display == DECRYPTION_FAILED_MARKER


class TestEntryInput:
    """Tests for new-entry validation."""

    def test_valid(self):
        EntryInput(account_name="GitHub", group="group-1", password="pw").validate()

    @pytest.mark.parametrize(
        "kwargs, field, message",
        [
            ({"account_name": "  "}, "account_name", "Account Name cannot be empty"),
            ({"group": ""}, "group", "Group must be selected"),
            ({"password": ""}, "password", "Password cannot be empty"),
        ],
    )
    def test_invalid(self, kwargs, field, message):
        values = {"account_name": "GitHub", "group": "group-1", "password": "pw"}
        values.update(kwargs)

        with pytest.raises(ValidationError, match=message) as exc_info:
            EntryInput(**values).validate()

        assert exc_info.value.field == field

    def test_repr_hides_password(self):
        assert "hunter2" not in repr(EntryInput(account_name="a", group="g", password="hunter2"))


class TestEntryUpdate:
    """Tests for partial updates."""

    def test_empty_update_rejected(self):
        with pytest.raises(ValidationError, match="Nothing to update"):
            EntryUpdate().validate()

    def test_plaintext_changes(self):
        """Only the given non-secret fields appear, under store names."""
        update = EntryUpdate(account_name=" GitLab ", phone_number="555", password="new")

        assert update.plaintext_changes() == {"account_name": "GitLab", "phone_no": "555"}
        assert update.has_secrets

    def test_no_secrets(self):
        assert not EntryUpdate(username="octocat").has_secrets


class TestGroup:
    """Tests for group records."""

    def test_from_record(self):
        group = Group.from_record({
            "id": "group-1",
            "user_id": "user-1",
            "name": "Finance",
            "icon_type": "💰",
            "created_at": "2026-03-15T12:00:00+00:00",
        })

        assert group.name == "Finance"
        assert group.icon == "💰"

    def test_default_icon(self):
        group = Group.from_record({
            "id": "group-1",
            "user_id": "user-1",
            "name": "Finance",
            "icon_type": None,
            "created_at": "2026-03-15T12:00:00+00:00",
        })

        assert group.icon == DEFAULT_GROUP_ICON

    def test_unknown_field_rejected(self):
        with pytest.raises(RecordShapeError):
            Group.from_record({
                "id": "group-1",
                "user_id": "user-1",
                "name": "Finance",
                "created_at": "2026-03-15T12:00:00+00:00",
                "color": "red",
            })


class TestVirtualGroups:
    def test_virtual_ids(self):
        assert is_virtual_group("all")
        assert is_virtual_group("favorites")
        assert is_virtual_group("recent")
        assert is_virtual_group(None)
        assert not is_virtual_group("group-1")

"""Tests for key-value persistence backends."""

import pytest

from periodplanner.domain.errors import StorageFailure, StorageFailureKind
from periodplanner.storage.backends import InMemoryStore, JsonDirectoryStore


class TestInMemoryStore:
    """Tests for InMemoryStore."""

    def test_missing_key_returns_none(self):
        assert InMemoryStore().get("config") is None

    def test_set_then_get(self):
        store = InMemoryStore()
        store.set("config", '{"a": 1}')
        assert store.get("config") == '{"a": 1}'

    def test_quota_exceeded(self):
        store = InMemoryStore(quota_bytes=10)
        with pytest.raises(StorageFailure) as excinfo:
            store.set("activities", "x" * 11)
        assert excinfo.value.kind == StorageFailureKind.QUOTA_EXCEEDED
        assert store.get("activities") is None

    def test_quota_counts_replaced_value_once(self):
        """Overwriting a key does not double count its old value."""
        store = InMemoryStore(quota_bytes=10)
        store.set("k", "x" * 8)
        store.set("k", "y" * 9)
        assert store.get("k") == "y" * 9


class TestJsonDirectoryStore:
    """Tests for JsonDirectoryStore."""

    def test_round_trip(self, tmp_path):
        store = JsonDirectoryStore(tmp_path / "state")
        store.set("schedule", "{}")
        assert store.get("schedule") == "{}"
        assert (tmp_path / "state" / "schedule.json").exists()

    def test_missing_key_returns_none(self, tmp_path):
        assert JsonDirectoryStore(tmp_path).get("schedule") is None

    def test_os_error_becomes_storage_failure(self, tmp_path):
        """A directory path that is really a file cannot be written."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = JsonDirectoryStore(blocker)

        with pytest.raises(StorageFailure) as excinfo:
            store.set("schedule", "{}")
        assert excinfo.value.kind == StorageFailureKind.OTHER
        assert "schedule" in str(excinfo.value)

    def test_undecodable_file_becomes_storage_failure(self, tmp_path):
        (tmp_path / "config.json").write_bytes(b"\xff\xfe\x00bad")

        with pytest.raises(StorageFailure) as excinfo:
            JsonDirectoryStore(tmp_path).get("config")
        assert excinfo.value.kind == StorageFailureKind.UNREADABLE
        assert "Failed to read 'config'" in excinfo.value.user_message

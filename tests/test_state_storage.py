"""
Tests for key/value state storage backends.
"""

import json
from unittest.mock import patch

import pytest

from storm_alert_filter.services.state_storage import (
    FileStateStorage,
    InMemoryStateStorage,
)
from storm_alert_filter.utils.error_handling import StorageError


class TestInMemoryStateStorage:
    """Test cases for InMemoryStateStorage."""

    def test_basic_operations(self):
        storage = InMemoryStateStorage({"a": "1"})

        storage.set_item("b", "2")
        storage.remove_item("a")
        storage.remove_item("missing")

        assert storage.get_item("a") is None
        assert storage.get_item("b") == "2"
        assert storage.keys() == ["b"]


class TestFileStateStorage:
    """Test cases for FileStateStorage."""

    def test_persists_across_instances(self, temp_dir):
        state_file = temp_dir / "nested" / "state.json"

        FileStateStorage(str(state_file)).set_item("key", '{"radius": 40}')

        assert FileStateStorage(str(state_file)).get_item("key") == '{"radius": 40}'
        assert json.loads(state_file.read_text(encoding="utf-8")) == {
            "key": '{"radius": 40}'
        }

    def test_remove_item_persists(self, temp_dir):
        state_file = temp_dir / "state.json"
        storage = FileStateStorage(str(state_file))
        storage.set_item("a", "1")
        storage.set_item("b", "2")

        storage.remove_item("a")

        assert FileStateStorage(str(state_file)).keys() == ["b"]

    def test_no_temp_files_left_behind(self, temp_dir):
        storage = FileStateStorage(str(temp_dir / "state.json"))
        storage.set_item("a", "1")

        assert sorted(p.name for p in temp_dir.iterdir()) == ["state.json"]

    def test_corrupt_document_starts_empty(self, temp_dir):
        state_file = temp_dir / "state.json"
        state_file.write_text("{truncated", encoding="utf-8")

        storage = FileStateStorage(str(state_file))

        assert storage.keys() == []

    def test_non_string_entries_are_skipped(self, temp_dir):
        state_file = temp_dir / "state.json"
        state_file.write_text(
            json.dumps({"good": "1", "bad": 2, "list": ["x"]}), encoding="utf-8"
        )

        assert FileStateStorage(str(state_file)).keys() == ["good"]

    def test_non_object_document_starts_empty(self, temp_dir):
        state_file = temp_dir / "state.json"
        state_file.write_text("[1, 2]", encoding="utf-8")

        assert FileStateStorage(str(state_file)).keys() == []

    def test_failed_write_rolls_back(self, temp_dir):
        """A failed save leaves memory and disk as they were."""
        state_file = temp_dir / "state.json"
        storage = FileStateStorage(str(state_file))
        storage.set_item("a", "1")

        with patch(
            "storm_alert_filter.services.state_storage.os.replace",
            side_effect=OSError("disk full"),
        ):
            with pytest.raises(StorageError):
                storage.set_item("a", "2")
            with pytest.raises(StorageError):
                storage.set_item("b", "3")
            with pytest.raises(StorageError):
                storage.remove_item("a")

        assert storage.get_item("a") == "1"
        assert storage.get_item("b") is None
        assert FileStateStorage(str(state_file)).keys() == ["a"]
        assert [p.name for p in temp_dir.iterdir()] == ["state.json"]

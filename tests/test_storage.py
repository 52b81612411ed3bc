"""Tests for the storage backends."""

import json

import pytest

from vmodels import JsonFileStorage, MemoryStorage


class TestMemoryStorage:
    """Tests for the in-process backend."""

    def test_get_missing_key_returns_none(self):
        """Unknown keys read as None."""
        assert MemoryStorage().get("absent") is None

    def test_set_get_delete(self):
        """Values can be written, read back and removed."""
        storage = MemoryStorage()
        storage.set("key", "value")
        assert storage.get("key") == "value"
        assert "key" in storage
        assert len(storage) == 1

        storage.delete("key")
        assert storage.get("key") is None
        storage.delete("key")

    def test_initial_items_and_clear(self):
        """Initial items are available until cleared."""
        storage = MemoryStorage({"a": "1", "b": "2"})
        assert sorted(storage.keys()) == ["a", "b"]
        storage.clear()
        assert len(storage) == 0

    def test_rejects_non_string_values(self):
        """Only strings are stored."""
        with pytest.raises(TypeError):
            MemoryStorage().set("key", {"not": "a string"})


class TestJsonFileStorage:
    """Tests for the JSON file backend."""

    def test_values_survive_a_new_instance(self, tmp_path):
        """A second storage on the same file sees earlier writes."""
        path = tmp_path / "state.json"
        JsonFileStorage(path).set("VIEW_MODEL.Count.alice", '{"count": 3}')

        reopened = JsonFileStorage(path)
        assert reopened.get("VIEW_MODEL.Count.alice") == '{"count": 3}'

    def test_file_holds_a_json_object(self, tmp_path):
        """The document on disk maps keys to string values."""
        path = tmp_path / "nested" / "state.json"
        storage = JsonFileStorage(path)
        storage.set("a", "1")
        storage.set("b", "2")

        assert json.loads(path.read_text(encoding="utf-8")) == {"a": "1", "b": "2"}
        assert not (tmp_path / "nested" / "state.json.tmp").exists()

    def test_overwrite_updates_cached_value(self, tmp_path):
        """Writes replace values already served from the read cache."""
        storage = JsonFileStorage(tmp_path / "state.json", cache_size=2)
        storage.set("key", "old")
        assert storage.get("key") == "old"
        storage.set("key", "new")
        assert storage.get("key") == "new"

    def test_delete(self, tmp_path):
        """Deleted keys disappear from the file and the cache."""
        storage = JsonFileStorage(tmp_path / "state.json")
        storage.set("key", "value")
        assert storage.get("key") == "value"
        storage.delete("key")
        assert storage.get("key") is None
        assert list(storage.keys()) == []

    def test_missing_file_reads_as_empty(self, tmp_path):
        """Reading before the first write returns None."""
        assert JsonFileStorage(tmp_path / "none.json").get("key") is None

    def test_non_object_document_is_rejected(self, tmp_path):
        """A document that is not a JSON object raises ValueError."""
        path = tmp_path / "state.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError):
            JsonFileStorage(path).get("key")

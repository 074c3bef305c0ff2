from pathlib import Path

import pytest

from time_capsule.exceptions import StorageError
from time_capsule.storage.kv import (
    FileKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStore,
    read_json,
    write_json,
)


@pytest.fixture(params=["memory", "file"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> KeyValueStore:
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return FileKeyValueStore(tmp_path / "store")


def test_store_implements_protocol(store: KeyValueStore) -> None:
    assert isinstance(store, KeyValueStore)


def test_get_missing_returns_none(store: KeyValueStore) -> None:
    assert store.get("absent") is None


def test_set_get_delete(store: KeyValueStore) -> None:
    store.set("content_abc", b"\x00\x01")

    assert store.get("content_abc") == b"\x00\x01"

    store.delete("content_abc")
    store.delete("content_abc")

    assert store.get("content_abc") is None


def test_set_replaces_value(store: KeyValueStore) -> None:
    store.set("k", b"old")
    store.set("k", b"new")

    assert store.get("k") == b"new"


def test_keys_filters_by_prefix(store: KeyValueStore) -> None:
    store.set("content_a", b"1")
    store.set("content_meta_a", b"2")
    store.set("revealed_capsules", b"3")

    assert store.keys("content_meta_") == ["content_meta_a"]
    assert store.keys("content_") == ["content_a", "content_meta_a"]
    assert len(store.keys()) == 3


def test_json_helpers(store: KeyValueStore) -> None:
    assert read_json(store, "doc", []) == []

    write_json(store, "doc", [{"id": "c1"}])

    assert read_json(store, "doc", []) == [{"id": "c1"}]


def test_read_json_raises_on_corrupt_document(store: KeyValueStore) -> None:
    store.set("doc", b"{not json")

    with pytest.raises(StorageError, match="Corrupt JSON"):
        read_json(store, "doc", [])


def test_file_store_persists_across_instances(tmp_path: Path) -> None:
    FileKeyValueStore(tmp_path).set("k", b"value")

    assert FileKeyValueStore(tmp_path).get("k") == b"value"


def test_file_store_leaves_no_temporary_files(tmp_path: Path) -> None:
    store = FileKeyValueStore(tmp_path)
    store.set("k", b"value")

    assert [p.name for p in tmp_path.iterdir()] == ["k"]


@pytest.mark.parametrize("key", ["../escape", "a/b", "", "with space"])
def test_file_store_rejects_unsafe_keys(tmp_path: Path, key: str) -> None:
    store = FileKeyValueStore(tmp_path)

    with pytest.raises(ValueError, match="Invalid store key"):
        store.set(key, b"x")

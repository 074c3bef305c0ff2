"""
Persisted key-value stores.

Every piece of local state (fallback content, reveal ledger, capsule
directory, kit store) goes through the KeyValueStore protocol so tests can
use the in-memory implementation.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog

from time_capsule.exceptions import StorageError

logger = structlog.get_logger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal byte-oriented key-value interface."""

    def get(self, key: str) -> bytes | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: bytes) -> None:
        """Store a value, replacing any previous one."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key. No-op if absent."""
        ...

    def keys(self, prefix: str = "") -> list[str]:
        """List keys starting with ``prefix``."""
        ...


class InMemoryKeyValueStore:
    """Process-local store, lost on exit."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    def __len__(self) -> int:
        return len(self._data)


class FileKeyValueStore:
    """
    One file per key under a directory.

    Writes go to a temporary file that is atomically renamed over the target,
    so a crash never leaves a half-written value.
    """

    def __init__(self, directory: Path) -> None:
        """
        Args:
            directory: Storage directory, created if missing.
        """
        self._directory = directory
        self._directory.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._directory

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(
            p.name
            for p in self._directory.iterdir()
            if p.is_file() and not p.name.startswith(".tmp-") and p.name.startswith(prefix)
        )

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            msg = f"Invalid store key: {key!r}"
            raise ValueError(msg)
        return self._directory / key


def read_json(store: KeyValueStore, key: str, default: Any) -> Any:
    """
    Load a JSON document from a store.

    Raises:
        StorageError: If the stored document is not valid JSON.
    """
    raw = store.get(key)
    if raw is None:
        return default
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Corrupt JSON document in store", key=key)
        raise StorageError(f"Corrupt JSON document in store: {key}") from e


def write_json(store: KeyValueStore, key: str, value: Any) -> None:
    store.set(key, json.dumps(value, separators=(",", ":")).encode("utf-8"))

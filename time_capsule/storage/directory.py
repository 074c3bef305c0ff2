"""
Capsule directory and recovery kit store collaborators.

The core only reads from these. The key-value backed implementations are
what the client uses locally; an on-chain registry can implement the same
protocols.
"""

from typing import Protocol, runtime_checkable

import structlog

from time_capsule.exceptions import StorageError
from time_capsule.models.capsule import CapsuleRecord
from time_capsule.models.crypto import RecoveryKit
from time_capsule.models.storage import Locator
from time_capsule.storage.kv import KeyValueStore, read_json, write_json

logger = structlog.get_logger(__name__)

DIRECTORY_KEY = "time_capsules"
KIT_STORE_KEY = "capsule_keys"


@runtime_checkable
class CapsuleDirectory(Protocol):
    """Read-only view of known capsules."""

    async def get_capsule(self, capsule_id: str) -> CapsuleRecord | None:
        """Return the record for ``capsule_id``, or None if unknown."""
        ...

    async def list_capsules(self) -> list[CapsuleRecord]:
        """Return every known capsule."""
        ...


@runtime_checkable
class RecoveryKitStore(Protocol):
    """Read-only lookup of recovery kits held by the local user."""

    async def get_kit(self, capsule_id: str, locator: Locator | None = None) -> RecoveryKit | None:
        """
        Return the kit for ``capsule_id``.

        Implementations may also match a kit saved against the same locator.
        """
        ...


class KeyValueCapsuleDirectory:
    """Capsule directory persisted as one JSON list in a key-value store."""

    def __init__(self, store: KeyValueStore, *, key: str = DIRECTORY_KEY) -> None:
        self._store = store
        self._key = key

    async def get_capsule(self, capsule_id: str) -> CapsuleRecord | None:
        for item in read_json(self._store, self._key, []):
            if item.get("id") == capsule_id:
                return CapsuleRecord.from_dict(item)
        return None

    async def list_capsules(self) -> list[CapsuleRecord]:
        return [CapsuleRecord.from_dict(item) for item in read_json(self._store, self._key, [])]

    def register(self, record: CapsuleRecord) -> None:
        """Add or replace a capsule record."""
        items = [
            item for item in read_json(self._store, self._key, []) if item.get("id") != record.id
        ]
        items.append(record.to_dict())
        write_json(self._store, self._key, items)
        logger.debug("Capsule registered", capsule_id=record.id, locator=str(record.locator))


class KeyValueRecoveryKitStore:
    """
    Recovery kits persisted as one JSON list in a key-value store.

    Entries are ``{kit..., "locator": {...} | None}``.
    """

    def __init__(self, store: KeyValueStore, *, key: str = KIT_STORE_KEY) -> None:
        self._store = store
        self._key = key

    async def get_kit(self, capsule_id: str, locator: Locator | None = None) -> RecoveryKit | None:
        """
        Raises:
            StorageError: If the matching entry is malformed.
        """
        entries = [e for e in read_json(self._store, self._key, []) if isinstance(e, dict)]
        for entry in entries:
            if entry.get("capsuleId") == capsule_id:
                return self._parse_kit(entry)
        if locator is None:
            return None
        for entry in entries:
            if _saved_locator(entry) == locator:
                return self._parse_kit(entry)
        return None

    def _parse_kit(self, entry: dict) -> RecoveryKit:
        try:
            return RecoveryKit.from_dict(entry)
        except KeyError as e:
            logger.error("Malformed recovery kit entry", capsule_id=entry.get("capsuleId"))
            msg = f"Malformed recovery kit entry: missing {e}"
            raise StorageError(msg, key=self._key) from e

    def save(self, kit: RecoveryKit, locator: Locator | None = None) -> None:
        """Add or replace the kit for ``kit.capsule_id``."""
        entries = [
            entry
            for entry in read_json(self._store, self._key, [])
            if entry.get("capsuleId") != kit.capsule_id
        ]
        entries.append({**kit.to_dict(), "locator": locator.to_dict() if locator else None})
        write_json(self._store, self._key, entries)
        logger.debug("Recovery kit saved", capsule_id=kit.capsule_id)


def _saved_locator(entry: dict) -> Locator | None:
    if not (saved := entry.get("locator")):
        return None
    try:
        return Locator.from_dict(saved)
    except (KeyError, TypeError, ValueError):
        logger.warning("Ignoring malformed kit locator", capsule_id=entry.get("capsuleId"))
        return None

"""
Persisted reveal ledger.

One JSON document holding the list of revealed capsules, logically keyed by
capsule id. Insertion is append-only per id.
"""

import structlog

from time_capsule.exceptions import DuplicateRevealError, NotFoundError
from time_capsule.models.capsule import RevealedCapsule
from time_capsule.storage.kv import KeyValueStore, read_json, write_json

logger = structlog.get_logger(__name__)

LEDGER_KEY = "revealed_capsules"


class RevealLedger:
    """
    Ledger of revealed capsules.

    The single writer is RevealCoordinator. Records are never overwritten by a
    reveal: ``insert`` rejects an id that is already present.
    """

    def __init__(self, store: KeyValueStore, *, key: str = LEDGER_KEY) -> None:
        """
        Args:
            store: Backing key-value store.
            key: Store key of the ledger document.
        """
        self._store = store
        self._key = key

    def all(self) -> list[RevealedCapsule]:
        """Return every revealed capsule in reveal order."""
        return [RevealedCapsule.from_dict(item) for item in read_json(self._store, self._key, [])]

    def get(self, capsule_id: str) -> RevealedCapsule | None:
        for item in read_json(self._store, self._key, []):
            if item.get("id") == capsule_id:
                return RevealedCapsule.from_dict(item)
        return None

    def __contains__(self, capsule_id: str) -> bool:
        return any(item.get("id") == capsule_id for item in read_json(self._store, self._key, []))

    def insert(self, capsule: RevealedCapsule) -> None:
        """
        Append a newly revealed capsule.

        Raises:
            DuplicateRevealError: If the capsule id is already in the ledger.
        """
        items = read_json(self._store, self._key, [])
        if any(item.get("id") == capsule.id for item in items):
            msg = "This capsule has already been revealed"
            raise DuplicateRevealError(msg, capsule_id=capsule.id)
        items.append(capsule.to_dict())
        write_json(self._store, self._key, items)
        logger.debug("Ledger record inserted", capsule_id=capsule.id, total=len(items))

    def update(self, capsule: RevealedCapsule) -> None:
        """
        Replace an existing record in place, keeping ledger order.

        Raises:
            NotFoundError: If the capsule id is not in the ledger.
        """
        items = read_json(self._store, self._key, [])
        for index, item in enumerate(items):
            if item.get("id") == capsule.id:
                items[index] = capsule.to_dict()
                write_json(self._store, self._key, items)
                return
        msg = f"Capsule not revealed: {capsule.id}"
        raise NotFoundError(msg)

    def clear(self) -> None:
        self._store.delete(self._key)
        logger.info("Reveal ledger cleared")

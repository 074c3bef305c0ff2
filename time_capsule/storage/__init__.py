"""
Local persistence: key-value stores, the reveal ledger, and the capsule
directory / recovery kit collaborators.
"""

from time_capsule.storage.directory import (
    CapsuleDirectory,
    KeyValueCapsuleDirectory,
    KeyValueRecoveryKitStore,
    RecoveryKitStore,
)
from time_capsule.storage.kv import FileKeyValueStore, InMemoryKeyValueStore, KeyValueStore
from time_capsule.storage.ledger import RevealLedger

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "FileKeyValueStore",
    "RevealLedger",
    "CapsuleDirectory",
    "RecoveryKitStore",
    "KeyValueCapsuleDirectory",
    "KeyValueRecoveryKitStore",
]

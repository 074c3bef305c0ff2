"""
Domain models for the time capsule core.

These are immutable (frozen) dataclasses representing the core domain concepts.
"""

from time_capsule.models.capsule import (
    CapsuleContent,
    CapsuleFile,
    CapsuleRecord,
    Comment,
    FileDecryptionReport,
    FileFailure,
    RevealedCapsule,
    RevealMetadata,
    RevealResult,
    RevealState,
    SealedCapsule,
    SocialInteractions,
    Visibility,
)
from time_capsule.models.crypto import (
    DecryptedFile,
    EncryptedFile,
    EncryptionEnvelope,
    KitValidation,
    RecoveryKit,
)
from time_capsule.models.storage import (
    FetchCause,
    LocalContentMeta,
    Locator,
    LocatorKind,
    StorageInfo,
    UploadResult,
)

__all__ = [
    # Capsule
    "CapsuleRecord",
    "CapsuleFile",
    "CapsuleContent",
    "Comment",
    "SocialInteractions",
    "RevealMetadata",
    "RevealedCapsule",
    "RevealState",
    "RevealResult",
    "FileFailure",
    "FileDecryptionReport",
    "SealedCapsule",
    "Visibility",
    # Crypto
    "EncryptionEnvelope",
    "RecoveryKit",
    "KitValidation",
    "EncryptedFile",
    "DecryptedFile",
    # Storage
    "Locator",
    "LocatorKind",
    "FetchCause",
    "LocalContentMeta",
    "StorageInfo",
    "UploadResult",
]

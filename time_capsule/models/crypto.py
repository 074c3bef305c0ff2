"""
Cryptographic domain models.
"""

from dataclasses import dataclass, field
from typing import Any, Self

KEY_SIZE = 32  # AES-256
IV_SIZE = 12  # 96-bit GCM nonce
TAG_SIZE = 16  # 128-bit GCM tag


@dataclass(frozen=True, kw_only=True)
class EncryptionEnvelope:
    """
    Result of a single AES-256-GCM encryption.

    Attributes:
        ciphertext: Encrypted bytes with the GCM tag appended.
        iv: The 12-byte nonce used for this call.
        raw_key: The exported 32-byte key.
    """

    ciphertext: bytes
    iv: bytes = field(repr=False)
    raw_key: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.iv) != IV_SIZE:
            msg = f"IV must be {IV_SIZE} bytes, got {len(self.iv)}"
            raise ValueError(msg)
        if len(self.raw_key) != KEY_SIZE:
            msg = f"Key must be {KEY_SIZE} bytes, got {len(self.raw_key)}"
            raise ValueError(msg)


@dataclass(frozen=True, kw_only=True)
class RecoveryKit:
    """
    Portable bearer secret able to decrypt one capsule.

    Possession of the kit is full read capability, there is no second factor.
    Key and IV are excluded from repr so kits never leak into logs.

    Attributes:
        key: Base64-encoded 32-byte AES key.
        iv: Base64-encoded 12-byte nonce.
        capsule_id: Capsule the kit is bound to.
    """

    key: str = field(repr=False)
    iv: str = field(repr=False)
    capsule_id: str

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "iv": self.iv, "capsuleId": self.capsule_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(key=data["key"], iv=data["iv"], capsule_id=data["capsuleId"])


@dataclass(frozen=True, kw_only=True)
class KitValidation:
    """Outcome of a structural recovery kit check."""

    is_valid: bool
    error: str | None = None


@dataclass(frozen=True, kw_only=True)
class EncryptedFile:
    """A file sealed on its own key, before embedding in a capsule."""

    name: str
    mime_type: str
    size: int
    envelope: EncryptionEnvelope


@dataclass(frozen=True, kw_only=True)
class DecryptedFile:
    """A file recovered from a capsule with its original identity."""

    name: str
    mime_type: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

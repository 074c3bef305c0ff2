"""
Injectable facade over the capsule crypto primitives.
"""

from collections.abc import Mapping
from typing import Any

from time_capsule.crypto import aes, payload, recovery_kit
from time_capsule.models.capsule import CapsuleContent
from time_capsule.models.crypto import (
    DecryptedFile,
    EncryptedFile,
    EncryptionEnvelope,
    KitValidation,
    RecoveryKit,
)


class CryptoEngine:
    """
    AES-256-GCM engine for capsules, files and recovery kits.

    Stateless. Services receive an instance so tests can substitute a double.
    """

    def generate_key(self) -> bytes:
        return aes.generate_key()

    def generate_iv(self) -> bytes:
        return aes.generate_iv()

    def encrypt(self, plaintext: bytes | str, key: bytes | None = None) -> EncryptionEnvelope:
        return aes.encrypt(plaintext, key)

    def decrypt(self, ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
        return aes.decrypt(ciphertext, key, iv)

    def create_recovery_kit(self, envelope: EncryptionEnvelope, capsule_id: str) -> RecoveryKit:
        return recovery_kit.create_recovery_kit(envelope, capsule_id)

    def validate_recovery_kit(self, kit: RecoveryKit | Mapping[str, Any] | None) -> KitValidation:
        return recovery_kit.validate_recovery_kit(kit)

    def decrypt_with_recovery_kit(self, ciphertext: bytes, kit: RecoveryKit) -> bytes:
        return recovery_kit.decrypt_with_recovery_kit(ciphertext, kit)

    def encrypt_file(self, name: str, mime_type: str, content: bytes) -> EncryptedFile:
        return payload.encrypt_file(name, mime_type, content)

    def decrypt_file(self, ciphertext: bytes, kit: RecoveryKit) -> DecryptedFile:
        return payload.decrypt_file(ciphertext, kit)

    def encrypt_capsule_content(self, content: CapsuleContent) -> EncryptionEnvelope:
        return payload.encrypt_capsule_content(content)

    def decrypt_capsule_content(self, ciphertext: bytes, kit: RecoveryKit) -> CapsuleContent:
        return payload.decrypt_capsule_content(ciphertext, kit)

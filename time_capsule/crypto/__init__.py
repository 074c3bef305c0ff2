"""
Cryptographic operations for time capsules.

This module provides:
- AES-256-GCM authenticated encryption
- Recovery kit export, validation and kit-based decryption
- File and capsule document codecs
"""

from time_capsule.crypto.aes import decrypt, encrypt, generate_iv, generate_key
from time_capsule.crypto.engine import CryptoEngine
from time_capsule.crypto.payload import (
    decrypt_capsule_content,
    decrypt_file,
    encrypt_capsule_content,
    encrypt_file,
)
from time_capsule.crypto.recovery_kit import (
    create_recovery_kit,
    decrypt_with_recovery_kit,
    validate_recovery_kit,
)

__all__ = [
    "CryptoEngine",
    "generate_key",
    "generate_iv",
    "encrypt",
    "decrypt",
    "create_recovery_kit",
    "validate_recovery_kit",
    "decrypt_with_recovery_kit",
    "encrypt_file",
    "decrypt_file",
    "encrypt_capsule_content",
    "decrypt_capsule_content",
]

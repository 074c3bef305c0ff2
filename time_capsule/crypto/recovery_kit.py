"""
Recovery kit creation, structural validation and kit-based decryption.
"""

import base64
import binascii
from collections.abc import Mapping
from typing import Any

from time_capsule.crypto.aes import decrypt
from time_capsule.exceptions import ValidationError
from time_capsule.models.crypto import (
    IV_SIZE,
    KEY_SIZE,
    EncryptionEnvelope,
    KitValidation,
    RecoveryKit,
)


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(data: str) -> bytes:
    """Strict base64 decode. Raises ValueError on malformed input."""
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValueError(f"Invalid base64: {e}") from e


def create_recovery_kit(envelope: EncryptionEnvelope, capsule_id: str) -> RecoveryKit:
    """Export an envelope's key and nonce as a kit bound to ``capsule_id``."""
    return RecoveryKit(
        key=b64encode(envelope.raw_key),
        iv=b64encode(envelope.iv),
        capsule_id=capsule_id,
    )


def validate_recovery_kit(kit: RecoveryKit | Mapping[str, Any] | None) -> KitValidation:
    """
    Structurally validate a recovery kit.

    Pure and cheap: no crypto and no I/O, so malformed kits are rejected before
    any network work starts.

    Args:
        kit: A RecoveryKit or its wire form ``{"key", "iv", "capsuleId"}``.

    Returns:
        KitValidation with the first problem found.
    """
    if kit is None:
        return KitValidation(is_valid=False, error="Recovery kit is missing")

    if isinstance(kit, RecoveryKit):
        key, iv, capsule_id = kit.key, kit.iv, kit.capsule_id
    elif isinstance(kit, Mapping):
        key, iv, capsule_id = kit.get("key"), kit.get("iv"), kit.get("capsuleId")
    else:
        return KitValidation(is_valid=False, error="Recovery kit has an unsupported type")

    for field_name, value in (("key", key), ("iv", iv), ("capsuleId", capsule_id)):
        if not isinstance(value, str) or not value:
            return KitValidation(is_valid=False, error=f"Missing or empty field: {field_name}")

    try:
        raw_key = b64decode(key)
    except ValueError:
        return KitValidation(is_valid=False, error="Key is not valid base64")
    try:
        raw_iv = b64decode(iv)
    except ValueError:
        return KitValidation(is_valid=False, error="IV is not valid base64")

    if len(raw_key) != KEY_SIZE:
        return KitValidation(
            is_valid=False, error=f"Key must be {KEY_SIZE} bytes, got {len(raw_key)}"
        )
    if len(raw_iv) != IV_SIZE:
        return KitValidation(is_valid=False, error=f"IV must be {IV_SIZE} bytes, got {len(raw_iv)}")

    return KitValidation(is_valid=True)


def coerce_recovery_kit(kit: RecoveryKit | Mapping[str, Any]) -> RecoveryKit:
    """
    Return a validated RecoveryKit.

    Raises:
        ValidationError: If the kit is structurally invalid.
    """
    validation = validate_recovery_kit(kit)
    if not validation.is_valid:
        raise ValidationError(f"Invalid recovery kit: {validation.error}")
    if isinstance(kit, RecoveryKit):
        return kit
    return RecoveryKit.from_dict(kit)


def decrypt_with_recovery_kit(ciphertext: bytes, kit: RecoveryKit) -> bytes:
    """
    Decrypt ciphertext with the key and nonce carried by a kit.

    Raises:
        ValidationError: If the kit fields cannot be decoded.
        AuthenticationFailure: If the ciphertext does not authenticate.
    """
    try:
        key = b64decode(kit.key)
        iv = b64decode(kit.iv)
    except ValueError as e:
        raise ValidationError(f"Invalid recovery kit: {e}") from e
    return decrypt(ciphertext, key, iv)

"""
Codecs for the plaintexts sealed inside capsules.

Files are wrapped as a single JSON blob ``{name, type, size, content}`` before
encryption so their identity is recovered atomically with their bytes. The
capsule document is the JSON form of CapsuleContent.
"""

import json
from typing import Any

from time_capsule.crypto.aes import encrypt
from time_capsule.crypto.recovery_kit import b64decode, b64encode, decrypt_with_recovery_kit
from time_capsule.exceptions import PayloadError
from time_capsule.models.capsule import CapsuleContent
from time_capsule.models.crypto import (
    DecryptedFile,
    EncryptedFile,
    EncryptionEnvelope,
    RecoveryKit,
)


def encrypt_file(name: str, mime_type: str, content: bytes) -> EncryptedFile:
    """
    Seal a file on a fresh key.

    Args:
        name: Original file name.
        mime_type: MIME type, may be empty.
        content: Raw file bytes.

    Returns:
        EncryptedFile carrying the envelope.
    """
    blob = json.dumps(
        {
            "name": name,
            "type": mime_type,
            "size": len(content),
            "content": b64encode(content),
        }
    )
    return EncryptedFile(
        name=name,
        mime_type=mime_type,
        size=len(content),
        envelope=encrypt(blob),
    )


def decrypt_file(ciphertext: bytes, kit: RecoveryKit) -> DecryptedFile:
    """
    Open a sealed file and rebuild it with its original name and type.

    Raises:
        AuthenticationFailure: If the ciphertext does not authenticate.
        PayloadError: If the decrypted blob is not a file wrapper.
    """
    data = _load_json(decrypt_with_recovery_kit(ciphertext, kit), "file")
    try:
        return DecryptedFile(
            name=data["name"],
            mime_type=data.get("type", ""),
            content=b64decode(data["content"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise PayloadError(f"Malformed file payload: {e}") from e


def encrypt_capsule_content(content: CapsuleContent) -> EncryptionEnvelope:
    """Seal a capsule document on a fresh key."""
    return encrypt(json.dumps(content.to_dict()))


def decrypt_capsule_content(ciphertext: bytes, kit: RecoveryKit) -> CapsuleContent:
    """
    Open a capsule document.

    Raises:
        AuthenticationFailure: If the ciphertext does not authenticate.
        PayloadError: If the document authenticates but does not parse.
    """
    data = _load_json(decrypt_with_recovery_kit(ciphertext, kit), "capsule")
    try:
        return CapsuleContent.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise PayloadError(f"Malformed capsule payload: {e}") from e


def _load_json(plaintext: bytes, kind: str) -> dict[str, Any]:
    try:
        data = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PayloadError(f"Decrypted {kind} payload is not JSON") from e
    if not isinstance(data, dict):
        raise PayloadError(f"Decrypted {kind} payload is not an object")
    return data

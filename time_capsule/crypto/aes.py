"""
AES-256-GCM authenticated encryption.

Ciphertexts use standard GCM framing: the 16-byte authentication tag is
appended to the encrypted bytes, and the 12-byte nonce travels separately.
"""

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from time_capsule.exceptions import AuthenticationFailure
from time_capsule.models.crypto import IV_SIZE, KEY_SIZE, TAG_SIZE, EncryptionEnvelope


def generate_key() -> bytes:
    """Generate a fresh 256-bit key from the OS CSPRNG."""
    return AESGCM.generate_key(bit_length=KEY_SIZE * 8)


def generate_iv() -> bytes:
    """
    Generate a fresh 96-bit nonce from the OS CSPRNG.

    Every encrypt call draws a new nonce, so a key reused across calls never
    sees the same nonce twice (collision probability is 2**-96 per pair).
    """
    return os.urandom(IV_SIZE)


def encrypt(plaintext: bytes | str, key: bytes | None = None) -> EncryptionEnvelope:
    """
    Encrypt data with AES-256-GCM.

    Args:
        plaintext: Data to encrypt. Strings are UTF-8 encoded.
        key: Optional 32-byte key. A fresh key is generated when omitted.

    Returns:
        Envelope with ciphertext (tag appended), nonce and raw key.

    Raises:
        ValueError: If the supplied key is not 32 bytes.
    """
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")
    if key is None:
        key = generate_key()
    elif len(key) != KEY_SIZE:
        msg = f"Key must be {KEY_SIZE} bytes, got {len(key)}"
        raise ValueError(msg)

    iv = generate_iv()
    ciphertext = AESGCM(key).encrypt(iv, plaintext, None)
    return EncryptionEnvelope(ciphertext=ciphertext, iv=iv, raw_key=key)


def decrypt(ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
    """
    Decrypt and authenticate AES-256-GCM data.

    Wrong key, wrong nonce, truncated input and any bit flip all fail the same
    way. Plaintext is only returned once the tag has been verified.

    Args:
        ciphertext: Encrypted bytes with the tag appended.
        key: 32-byte key.
        iv: 12-byte nonce.

    Returns:
        Authenticated plaintext.

    Raises:
        AuthenticationFailure: If the data cannot be authenticated.
    """
    if len(key) != KEY_SIZE or len(iv) != IV_SIZE or len(ciphertext) < TAG_SIZE:
        raise AuthenticationFailure()
    try:
        return AESGCM(key).decrypt(iv, ciphertext, None)
    except InvalidTag:
        raise AuthenticationFailure() from None

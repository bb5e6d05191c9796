"""
Field Cipher

Encrypts and decrypts one string value with AES-GCM.

Ciphertext layout (before base64):

    nonce (12 bytes) || ciphertext || tag (16 bytes)

A fresh random nonce is drawn for every call, so encrypting the same value
twice never produces the same ciphertext. No associated data is used.
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag

from finvault.crypto.exceptions import DecryptionFailed, EncryptionFailed
from finvault.crypto.keys import CryptoKey


NONCE_LENGTH = 12
TAG_LENGTH = 16


async def encrypt_field(plaintext: str, key: CryptoKey) -> str:
    """
    Encrypt a string value.

    Args:
        plaintext: The value to protect (UTF-8 encoded before encryption)
        key: Key handle from import_key

    Returns:
        base64(nonce || ciphertext+tag)

    Raises:
        EncryptionFailed: If the cipher rejects the input
    """
    try:
        nonce = os.urandom(NONCE_LENGTH)
        sealed = key.aead.encrypt(nonce, plaintext.encode("utf-8"), None)
    except Exception as e:
        raise EncryptionFailed(f"Failed to encrypt field: {e}") from e
    return base64.b64encode(nonce + sealed).decode("ascii")


async def decrypt_field(ciphertext_b64: str, key: CryptoKey) -> str:
    """
    Decrypt a value produced by encrypt_field.

    Raises:
        DecryptionFailed: On bad base64, a truncated blob, tag mismatch
            or plaintext that is not valid UTF-8
    """
    try:
        combined = base64.b64decode(ciphertext_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionFailed(f"Ciphertext is not valid base64: {e}") from e

    if len(combined) < NONCE_LENGTH + TAG_LENGTH:
        raise DecryptionFailed("Ciphertext is too short")

    nonce, sealed = combined[:NONCE_LENGTH], combined[NONCE_LENGTH:]
    try:
        plain = key.aead.decrypt(nonce, sealed, None)
    except InvalidTag as e:
        raise DecryptionFailed("Authentication tag mismatch") from e

    try:
        return plain.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionFailed("Decrypted value is not valid UTF-8") from e

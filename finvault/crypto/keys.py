"""
Key Management

Imports the deployment's base64-encoded secret into an AES-GCM key handle.

DESIGN DECISION: The handle is opaque. Raw key bytes are handed straight to
the `cryptography` AEAD primitive and are not kept on the handle, so the key
cannot be read back from it (the closest Python gets to a non-extractable key).
The handle is immutable and safe to share between concurrent coroutines.
"""

import base64
import binascii
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from finvault.crypto.exceptions import InvalidKeyMaterial


ALGORITHM = "AES-GCM"

# AES-128 / AES-192 / AES-256
ACCEPTED_KEY_SIZES = (16, 24, 32)

DEFAULT_KEY_SIZE = 32


class CryptoKey:
    """
    Opaque symmetric key handle.

    Only usable with the paired field cipher. Create it with `import_key`.
    """

    __slots__ = ("_aead", "_size")

    def __init__(self, aead: AESGCM, size: int):
        object.__setattr__(self, "_aead", aead)
        object.__setattr__(self, "_size", size)

    def __setattr__(self, name, value):
        raise AttributeError("CryptoKey is immutable")

    @property
    def algorithm(self) -> str:
        return ALGORITHM

    @property
    def size_bits(self) -> int:
        return self._size * 8

    @property
    def aead(self) -> AESGCM:
        """The AEAD primitive bound to this key."""
        return self._aead

    def __repr__(self) -> str:
        return f"<CryptoKey {ALGORITHM}-{self.size_bits}>"

    def __reduce__(self):
        raise TypeError("CryptoKey cannot be serialized")


def decode_secret(secret: str) -> bytes:
    """
    Decode a base64 secret into raw key bytes.

    Accepts the standard and URL-safe alphabets.

    Raises:
        InvalidKeyMaterial: If the secret is empty, not base64, or its
            decoded length is not an accepted AES key size.
    """
    if not secret or not secret.strip():
        raise InvalidKeyMaterial("Encryption key secret is empty")

    cleaned = secret.strip()
    try:
        if "-" in cleaned or "_" in cleaned:
            raw = base64.urlsafe_b64decode(cleaned)
        else:
            raw = base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidKeyMaterial(f"Encryption key secret is not valid base64: {e}")

    if len(raw) not in ACCEPTED_KEY_SIZES:
        raise InvalidKeyMaterial(
            f"Encryption key must decode to one of {ACCEPTED_KEY_SIZES} bytes, "
            f"got {len(raw)}"
        )
    return raw


async def import_key(secret: str) -> CryptoKey:
    """
    Import a base64-encoded secret as an AES-GCM key.

    Args:
        secret: Base64 encoding of a 16, 24 or 32 byte key

    Returns:
        An opaque key handle for encrypt_field/decrypt_field

    Raises:
        InvalidKeyMaterial: If the secret does not decode to a valid key
    """
    raw = decode_secret(secret)
    return CryptoKey(AESGCM(raw), len(raw))


def generate_key_secret(size: int = DEFAULT_KEY_SIZE) -> str:
    """Generate a fresh random key and return it base64-encoded."""
    if size not in ACCEPTED_KEY_SIZES:
        raise InvalidKeyMaterial(f"Unsupported key size: {size}")
    return base64.b64encode(os.urandom(size)).decode("ascii")

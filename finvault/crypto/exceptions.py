"""
Crypto Exceptions

DESIGN DECISION: Each failure mode of the encryption layer has its own type
so callers can tell "the key is wrong" apart from "this one value is bad".

- InvalidKeyMaterial is fatal: nothing can be encrypted or decrypted.
- DecryptionFailed is recovered per field by the row transform.
- EncryptionFailed always propagates: a write must never fall back to plaintext.
"""


class CryptoError(Exception):
    """Base exception for the encryption layer."""
    pass


class InvalidKeyMaterial(CryptoError):
    """The key secret is missing, not base64, or has the wrong length."""
    pass


class DecryptionFailed(CryptoError):
    """Authentication tag mismatch or malformed ciphertext."""
    pass


class EncryptionFailed(CryptoError):
    """The underlying cipher could not encrypt the value."""
    pass

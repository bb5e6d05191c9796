"""
Field-level encryption package.

Key management, the AES-GCM field cipher, the sensitive-field registry
and the row transforms built on top of them.
"""

from finvault.crypto.cipher import NONCE_LENGTH, decrypt_field, encrypt_field
from finvault.crypto.context import CryptoContext
from finvault.crypto.exceptions import (
    CryptoError,
    DecryptionFailed,
    EncryptionFailed,
    InvalidKeyMaterial,
)
from finvault.crypto.keys import (
    ACCEPTED_KEY_SIZES,
    ALGORITHM,
    DEFAULT_KEY_SIZE,
    CryptoKey,
    generate_key_secret,
    import_key,
)
from finvault.crypto.schemas import (
    ENCRYPTED_FIELDS,
    FieldSchemaRegistry,
    FieldType,
    build_default_registry,
)
from finvault.crypto.transform import (
    DecryptionFallback,
    decrypt_row,
    decrypt_rows,
    encrypt_row,
    encrypt_rows,
    looks_encrypted,
    parse_number,
)

__all__ = [
    # Keys
    "ACCEPTED_KEY_SIZES",
    "ALGORITHM",
    "DEFAULT_KEY_SIZE",
    "CryptoKey",
    "generate_key_secret",
    "import_key",
    # Cipher
    "NONCE_LENGTH",
    "decrypt_field",
    "encrypt_field",
    # Registry
    "ENCRYPTED_FIELDS",
    "FieldSchemaRegistry",
    "FieldType",
    "build_default_registry",
    # Row transform
    "DecryptionFallback",
    "decrypt_row",
    "decrypt_rows",
    "encrypt_row",
    "encrypt_rows",
    "looks_encrypted",
    "parse_number",
    # Context
    "CryptoContext",
    # Exceptions
    "CryptoError",
    "DecryptionFailed",
    "EncryptionFailed",
    "InvalidKeyMaterial",
]

"""
Crypto Context

DESIGN DECISION: The imported key and the field registry travel together in
one explicit object. It is created once per session and passed to whatever
needs to encrypt or decrypt rows. There is no module-level key, so several
keys (tenants, tests with throwaway keys) can coexist in one process.
"""

from typing import Optional

import structlog

from finvault.config import get_settings
from finvault.crypto.exceptions import InvalidKeyMaterial
from finvault.crypto.keys import CryptoKey, import_key
from finvault.crypto.schemas import FieldSchemaRegistry, build_default_registry
from finvault.crypto.transform import (
    DecryptionFallback,
    Row,
    decrypt_row,
    decrypt_rows,
    encrypt_row,
    encrypt_rows,
)


logger = structlog.get_logger()


class CryptoContext:
    """
    Key + registry bound together for row encryption.

    Usage:
        context = await CryptoContext.from_settings()
        stored = await context.encrypt_row("transactions", row)
        restored = await context.decrypt_rows("transactions", rows)
    """

    def __init__(
        self,
        key: CryptoKey,
        registry: Optional[FieldSchemaRegistry] = None,
    ):
        self._key = key
        self._registry = registry or build_default_registry()

    @classmethod
    async def from_secret(
        cls,
        secret: str,
        registry: Optional[FieldSchemaRegistry] = None,
    ) -> "CryptoContext":
        """
        Import a base64 secret and build a context around it.

        Raises:
            InvalidKeyMaterial: If the secret is not a valid key
        """
        key = await import_key(secret)
        logger.info("encryption_key_imported", key_bits=key.size_bits)
        return cls(key, registry)

    @classmethod
    async def from_settings(
        cls,
        registry: Optional[FieldSchemaRegistry] = None,
    ) -> "CryptoContext":
        """
        Build a context from FINVAULT_ENCRYPTION_KEY.

        Raises:
            InvalidKeyMaterial: If the key is not configured or invalid
        """
        secret = get_settings().crypto.encryption_key
        if not secret:
            raise InvalidKeyMaterial("FINVAULT_ENCRYPTION_KEY is not configured")
        return await cls.from_secret(secret.get_secret_value(), registry)

    @property
    def key(self) -> CryptoKey:
        return self._key

    @property
    def registry(self) -> FieldSchemaRegistry:
        return self._registry

    async def encrypt_row(self, table: str, row: Row) -> Row:
        return await encrypt_row(self._registry, table, row, self._key)

    async def encrypt_rows(self, table: str, rows: list[Row]) -> list[Row]:
        return await encrypt_rows(self._registry, table, rows, self._key)

    async def decrypt_row(
        self,
        table: str,
        row: Row,
        fallbacks: Optional[list[DecryptionFallback]] = None,
    ) -> Row:
        return await decrypt_row(self._registry, table, row, self._key, fallbacks)

    async def decrypt_rows(
        self,
        table: str,
        rows: list[Row],
        fallbacks: Optional[list[DecryptionFallback]] = None,
    ) -> list[Row]:
        return await decrypt_rows(self._registry, table, rows, self._key, fallbacks)

"""
Encrypted Row Store

DESIGN DECISION: Encryption is applied at the storage boundary, not scattered
through application code. EncryptedRowStore wraps any RowStoreInterface:

- insert/update: sensitive fields are encrypted BEFORE the inner store sees them
- insert/update/select: rows coming back are decrypted before they are returned
- delete: passed through

If encryption fails the write is aborted - the inner store is never called, so
plaintext sensitive data can't be persisted by accident.

Filtering on a sensitive field is rejected: ciphertext is non-deterministic,
so such a filter could never match.
"""

from typing import TYPE_CHECKING, Any, Optional
from uuid import UUID

import structlog

from finvault.crypto import CryptoContext, DecryptionFallback, EncryptionFailed
from finvault.models.audit import AuditEventBuilder
from finvault.services.storage.interface import (
    Row,
    RowStoreInterface,
    StorageError,
)

if TYPE_CHECKING:
    from finvault.audit.logger import AuditLogger


class EncryptedRowStore(RowStoreInterface):
    """
    Row store that encrypts sensitive fields at rest.

    Usage:
        context = await CryptoContext.from_settings()
        store = EncryptedRowStore(InMemoryRowStore(), context)
        await store.insert("transactions", {"amount": 150.5, "category": "food"})
    """

    def __init__(
        self,
        inner: RowStoreInterface,
        context: CryptoContext,
        audit_logger: Optional["AuditLogger"] = None,
    ):
        self._inner = inner
        self._context = context
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger()

    @property
    def inner(self) -> RowStoreInterface:
        """The wrapped store (reads from it return ciphertext)."""
        return self._inner

    @property
    def context(self) -> CryptoContext:
        return self._context

    def _sensitive_fields(self, table: str, row: Row) -> list[str]:
        schema = self._context.registry.schema_for(table) or {}
        return [f for f in schema if row.get(f) is not None]

    async def _encrypt(
        self,
        table: str,
        row: Row,
        correlation_id: Optional[UUID],
    ) -> Row:
        try:
            return await self._context.encrypt_row(table, row)
        except EncryptionFailed as e:
            self._logger.error("encryption_failed", table=table, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.encryption_failed(
                    table=table,
                    error_message=str(e),
                    correlation_id=correlation_id,
                ))
            raise

    async def _decrypt(
        self,
        table: str,
        rows: list[Row],
        correlation_id: Optional[UUID],
    ) -> list[Row]:
        fallbacks: list[DecryptionFallback] = []
        restored = await self._context.decrypt_rows(table, rows, fallbacks)
        if self._audit_logger:
            for fallback in fallbacks:
                await self._audit_logger.log(AuditEventBuilder.decryption_fallback(
                    table=fallback.table,
                    record_id=fallback.row_id,
                    field=fallback.field,
                    field_type=fallback.field_type.value,
                    error_message=fallback.error,
                    correlation_id=correlation_id,
                ))
        return restored

    async def _log_storage_error(
        self,
        operation: str,
        table: str,
        error: StorageError,
        correlation_id: Optional[UUID],
    ) -> None:
        self._logger.error("storage_error", operation=operation, table=table, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.storage_error(
                operation=operation,
                table=table,
                error_message=str(error),
                correlation_id=correlation_id,
            ))

    async def insert(
        self,
        table: str,
        row: Row,
        correlation_id: Optional[UUID] = None,
    ) -> Row:
        """Encrypt, insert, and return the stored row decrypted."""
        encrypted = await self._encrypt(table, row, correlation_id)
        try:
            stored = await self._inner.insert(table, encrypted)
        except StorageError as e:
            await self._log_storage_error("insert", table, e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.record_created(
                table=table,
                record_id=stored.get("id"),
                encrypted_fields=self._sensitive_fields(table, row),
                correlation_id=correlation_id,
            ))
        restored = await self._decrypt(table, [stored], correlation_id)
        return restored[0]

    async def update(
        self,
        table: str,
        row_id: str,
        patch: Row,
        correlation_id: Optional[UUID] = None,
    ) -> Row:
        """Encrypt the patch, apply it, and return the full row decrypted."""
        encrypted = await self._encrypt(table, patch, correlation_id)
        try:
            stored = await self._inner.update(table, row_id, encrypted)
        except StorageError as e:
            await self._log_storage_error("update", table, e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.record_updated(
                table=table,
                record_id=str(row_id),
                changed_fields=sorted(patch),
                correlation_id=correlation_id,
            ))
        restored = await self._decrypt(table, [stored], correlation_id)
        return restored[0]

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Row]:
        """
        Read rows and decrypt them.

        Raises:
            ValueError: If a filter names a sensitive field
        """
        for field in filters or {}:
            if self._context.registry.is_sensitive(table, field):
                raise ValueError(
                    f"Cannot filter on encrypted field {table}.{field}"
                )

        try:
            rows = await self._inner.select(table, filters, limit)
        except StorageError as e:
            await self._log_storage_error("select", table, e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.records_read(
                table=table,
                result_count=len(rows),
                correlation_id=correlation_id,
            ))
        return await self._decrypt(table, rows, correlation_id)

    async def delete(
        self,
        table: str,
        row_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        try:
            deleted = await self._inner.delete(table, row_id)
        except StorageError as e:
            await self._log_storage_error("delete", table, e, correlation_id)
            raise

        if deleted and self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.record_deleted(
                table=table,
                record_id=str(row_id),
                correlation_id=correlation_id,
            ))
        return deleted

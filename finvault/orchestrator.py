"""
Main Orchestrator for finvault

Ties the components together:
1. Row store (Google Sheets, or in-memory when not configured)
2. Audit trail persisted next to the data
3. Crypto context built from the deployment key
4. Encrypted store in front of the row store
5. RecordFlow - the CRUD surface application code calls

DESIGN DECISION: The orchestrator enforces the boundaries:
- Without a valid key nothing starts (no silent plaintext mode)
- Every write goes through the encrypted store
- Any failure reaches the caller as an AppError with a user-facing message
"""

from typing import Any, Optional
from uuid import UUID

import structlog

from finvault.audit import AuditLogger, create_correlation_id
from finvault.crypto import CryptoContext, CryptoError, InvalidKeyMaterial
from finvault.crypto.schemas import FieldSchemaRegistry
from finvault.errors import AppError, ErrorMessages, message_for
from finvault.services.storage import (
    EncryptedRowStore,
    GoogleSheetsClient,
    GoogleSheetsRowStore,
    InMemoryRowStore,
    RowStoreAuditStorage,
    RowStoreInterface,
    StorageError,
)


logger = structlog.get_logger()


class RecordFlow:
    """
    CRUD operations on finance records.

    Sensitive fields are encrypted/decrypted transparently by the store.
    Every failure is re-raised as AppError so the UI can show one message
    and never assume the record was saved.
    """

    def __init__(
        self,
        store: EncryptedRowStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    @property
    def store(self) -> EncryptedRowStore:
        return self._store

    async def _fail(
        self,
        table: str,
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID],
    ) -> AppError:
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"table": table, "operation": operation},
                correlation_id=correlation_id,
            )
        return AppError(message_for(table, operation), error)

    async def create(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert a record and return it (decrypted, with its id)."""
        correlation_id = create_correlation_id()
        try:
            return await self._store.insert(table, row, correlation_id=correlation_id)
        except (CryptoError, StorageError) as e:
            raise await self._fail(table, "create", e, correlation_id) from e

    async def update(
        self,
        table: str,
        row_id: str,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        """Apply a partial update and return the full record."""
        correlation_id = create_correlation_id()
        try:
            return await self._store.update(table, row_id, patch, correlation_id=correlation_id)
        except (CryptoError, StorageError) as e:
            raise await self._fail(table, "update", e, correlation_id) from e

    async def delete(self, table: str, row_id: str) -> bool:
        correlation_id = create_correlation_id()
        try:
            return await self._store.delete(table, row_id, correlation_id=correlation_id)
        except StorageError as e:
            raise await self._fail(table, "delete", e, correlation_id) from e

    async def list(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """
        List records, decrypted.

        A filter on a sensitive field is rejected by the store and surfaces
        here as RECORDS_LOAD_FAILED like any other load failure.
        """
        correlation_id = create_correlation_id()
        try:
            return await self._store.select(
                table,
                filters,
                limit,
                correlation_id=correlation_id,
            )
        except (StorageError, ValueError) as e:
            raise await self._fail(table, "select", e, correlation_id) from e


def create_row_store(
    use_storage: bool = True,
) -> tuple[RowStoreInterface, Optional[GoogleSheetsClient]]:
    """
    Create the raw row store.

    Falls back to an in-memory store when Google Sheets isn't configured.
    """
    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            return GoogleSheetsRowStore(sheets_client), sheets_client
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
    return InMemoryRowStore(), None


async def create_app_components(
    use_storage: bool = True,
    secret: Optional[str] = None,
    registry: Optional[FieldSchemaRegistry] = None,
) -> tuple[RecordFlow, AuditLogger, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for testing without storage.
        secret: Base64 key; read from FINVAULT_ENCRYPTION_KEY when None
        registry: Sensitive-field registry; the default one when None

    Returns:
        (record_flow, audit_logger, sheets_client)

    Raises:
        AppError: ENCRYPTION_UNAVAILABLE if the key can't be imported
    """
    raw_store, sheets_client = create_row_store(use_storage)
    audit_logger = AuditLogger(RowStoreAuditStorage(raw_store))

    try:
        if secret is not None:
            context = await CryptoContext.from_secret(secret, registry)
        else:
            context = await CryptoContext.from_settings(registry)
    except InvalidKeyMaterial as e:
        await audit_logger.log_key_import_failed(str(e))
        raise AppError(ErrorMessages.ENCRYPTION_UNAVAILABLE, e) from e

    await audit_logger.log_key_imported(context.key.size_bits)

    store = EncryptedRowStore(raw_store, context, audit_logger)
    return RecordFlow(store, audit_logger), audit_logger, sheets_client

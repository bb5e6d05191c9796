"""Services package."""

from finvault.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    EncryptedRowStore,
    GoogleSheetsClient,
    GoogleSheetsRowStore,
    InMemoryRowStore,
    NotFoundError,
    RowStoreAuditStorage,
    RowStoreInterface,
    StorageError,
    StoreConnectionError,
)

__all__ = [
    "AuditStorageInterface",
    "DuplicateError",
    "EncryptedRowStore",
    "GoogleSheetsClient",
    "GoogleSheetsRowStore",
    "InMemoryRowStore",
    "NotFoundError",
    "RowStoreAuditStorage",
    "RowStoreInterface",
    "StorageError",
    "StoreConnectionError",
]

"""
Storage Services Package

Provides abstract interfaces and concrete implementations for row storage.
Implements an in-memory store and Google Sheets as backends, plus the
encrypting wrapper that sits in front of either one.
"""

from finvault.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RowStoreInterface,
    StorageError,
    StoreConnectionError,
)
from finvault.services.storage.memory import InMemoryRowStore
from finvault.services.storage.audit_store import RowStoreAuditStorage
from finvault.services.storage.encrypted import EncryptedRowStore
from finvault.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRowStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RowStoreInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "StoreConnectionError",
    # Implementations
    "EncryptedRowStore",
    "InMemoryRowStore",
    "RowStoreAuditStorage",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsRowStore",
]

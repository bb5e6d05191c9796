"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for testing
3. Wrap any store with transparent field encryption
4. Keep business logic decoupled from storage implementation

The interface is intentionally simple - a generic row store, not an ORM.
Rows are plain dicts; each row carries a string "id".
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from finvault.models.audit import AuditEvent


Row = dict[str, Any]


class RowStoreInterface(ABC):
    """
    Abstract interface for table/row storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """
        Insert a row into a table.

        Args:
            table: Table name
            row: Field values. An "id" is assigned if missing.

        Returns:
            The row as stored (including its id)

        Raises:
            DuplicateError: If a row with the same id exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, table: str, row_id: str, patch: Row) -> Row:
        """
        Apply a partial update to one row.

        Args:
            table: Table name
            row_id: The row's id
            patch: Fields to overwrite; other fields are kept

        Returns:
            The full row after the update

        Raises:
            NotFoundError: If the row doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[Row]:
        """
        Read rows, optionally filtered by field equality.

        Args:
            table: Table name
            filters: {field: value} that every returned row must match
            limit: Maximum number of rows to return

        Returns:
            Matching rows in insertion order (empty if the table is unknown)
        """
        pass

    @abstractmethod
    async def delete(self, table: str, row_id: str) -> bool:
        """
        Delete one row.

        Returns:
            True if a row was deleted, False if it didn't exist
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one migration run).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_record(
        self,
        table: str,
        record_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific row.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StoreConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass

"""
In-Memory Storage Implementation

Keeps tables as ordered dicts of rows. Used by the tests and for local runs
without a backend. Rows are copied on the way in and out, so callers never
hold a reference to stored state.
"""

from typing import Any, Optional
from uuid import uuid4

from finvault.services.storage.interface import (
    DuplicateError,
    NotFoundError,
    Row,
    RowStoreInterface,
    StorageError,
)


def _matches(row: Row, filters: Optional[dict[str, Any]]) -> bool:
    if not filters:
        return True
    return all(row.get(field) == value for field, value in filters.items())


class InMemoryRowStore(RowStoreInterface):
    """Row store backed by Python dicts."""

    def __init__(self):
        self._tables: dict[str, dict[str, Row]] = {}

    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row, assigning a uuid4 id if it has none."""
        stored = dict(row)
        row_id = stored.get("id")
        stored["id"] = str(row_id) if row_id is not None else str(uuid4())

        rows = self._tables.setdefault(table, {})
        if stored["id"] in rows:
            raise DuplicateError(f"Row {stored['id']} already exists in {table}")
        rows[stored["id"]] = stored
        return dict(stored)

    async def update(self, table: str, row_id: str, patch: Row) -> Row:
        """Merge a patch into an existing row."""
        if "id" in patch and str(patch["id"]) != str(row_id):
            raise StorageError("Row id cannot be changed by an update")

        rows = self._tables.get(table, {})
        if str(row_id) not in rows:
            raise NotFoundError(f"Row not found in {table}: {row_id}")
        rows[str(row_id)].update(patch)
        return dict(rows[str(row_id)])

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[Row]:
        """Return copies of matching rows in insertion order."""
        rows = [
            dict(row) for row in self._tables.get(table, {}).values()
            if _matches(row, filters)
        ]
        return rows[:limit] if limit is not None else rows

    async def delete(self, table: str, row_id: str) -> bool:
        return self._tables.get(table, {}).pop(str(row_id), None) is not None

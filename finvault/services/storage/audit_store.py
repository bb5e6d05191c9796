"""
Row-Store-Backed Audit Storage

Persists audit events as rows of an "audit_log" table in whichever row
store the application uses, so the audit trail lives next to the data.
Audit rows contain no sensitive values and are stored without encryption.
"""

import json
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import structlog

from finvault.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finvault.services.storage.interface import (
    AuditStorageInterface,
    Row,
    RowStoreInterface,
    StorageError,
)


AUDIT_TABLE = "audit_log"

logger = structlog.get_logger()


class RowStoreAuditStorage(AuditStorageInterface):
    """
    Audit log kept as rows of a table in any row store.

    Audit events are append-only.
    """

    def __init__(self, store: RowStoreInterface, table: str = AUDIT_TABLE):
        self._store = store
        self._table = table

    def _row_to_event(self, row: Row) -> AuditEvent:
        """Convert a stored row back into an AuditEvent."""
        details = row.get("details_json")
        correlation_id = row.get("correlation_id")
        return AuditEvent(
            event_id=UUID(row["id"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
            event_type=AuditEventType(row["event_type"]),
            severity=AuditSeverity(row["severity"]),
            table=row.get("table") or None,
            record_id=row.get("record_id") or None,
            correlation_id=UUID(correlation_id) if correlation_id else None,
            description=row.get("description") or "",
            details=json.loads(details) if details else {},
            error_message=row.get("error_message") or None,
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            await self._store.insert(self._table, event.to_row())
            return True
        except StorageError as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def _all_events(self, filters: Optional[dict[str, Any]] = None) -> list[AuditEvent]:
        rows = await self._store.select(self._table, filters)
        return [self._row_to_event(row) for row in rows]

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = await self._all_events({"correlation_id": str(correlation_id)})
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_record(
        self,
        table: str,
        record_id: str,
    ) -> list[AuditEvent]:
        events = await self._all_events({"table": table, "record_id": str(record_id)})
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = await self._all_events()
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

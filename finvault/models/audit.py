"""
Audit Models for finvault

Every write to the store, every key import and every decryption that had
to fall back is recorded as an audit event. This provides:
1. Traceability of who changed which record
2. Early warning of corrupted or mis-keyed ciphertext
3. Evidence that a legacy migration ran and what it touched

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Audit events carry table names, field names and row ids only - never the
values of sensitive fields.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Key lifecycle
    KEY_IMPORTED = "key_imported"
    KEY_IMPORT_FAILED = "key_import_failed"

    # Record persistence
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    RECORDS_READ = "records_read"

    # Transform outcomes
    DECRYPTION_FALLBACK = "decryption_fallback"
    ENCRYPTION_FAILED = "encryption_failed"

    # Maintenance
    MIGRATION_COMPLETED = "migration_completed"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which table / row is this about?
    table: Optional[str] = Field(
        default=None,
        description="Table the event relates to (e.g., 'transactions')"
    )
    record_id: Optional[str] = Field(
        default=None,
        description="ID of the row this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one migration run)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "table": self.table,
            "record_id": self.record_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_row(self) -> dict[str, Any]:
        """
        Flatten into a row for a generic row store.

        Details are JSON-encoded so every value is a scalar.
        """
        return {
            "id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "table": self.table,
            "record_id": self.record_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details_json": json.dumps(self.details) if self.details else None,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("transactions", row_id)
        event = AuditEventBuilder.decryption_fallback("bank_accounts", row_id, "balance", "number")
    """

    @staticmethod
    def key_imported(key_bits: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.KEY_IMPORTED,
            description=f"Encryption key imported (AES-GCM-{key_bits})",
            details={"key_bits": key_bits},
        )

    @staticmethod
    def key_import_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.KEY_IMPORT_FAILED,
            severity=AuditSeverity.CRITICAL,
            description="Encryption key could not be imported",
            error_message=error_message,
        )

    @staticmethod
    def record_created(
        table: str,
        record_id: Optional[str],
        encrypted_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            table=table,
            record_id=record_id,
            correlation_id=correlation_id,
            description=f"Record created in {table}",
            details={"encrypted_fields": encrypted_fields},
        )

    @staticmethod
    def record_updated(
        table: str,
        record_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            table=table,
            record_id=record_id,
            correlation_id=correlation_id,
            description=f"Record updated in {table}",
            details={"changed_fields": changed_fields},
        )

    @staticmethod
    def record_deleted(
        table: str,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            table=table,
            record_id=record_id,
            correlation_id=correlation_id,
            description=f"Record deleted from {table}",
        )

    @staticmethod
    def records_read(
        table: str,
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_READ,
            severity=AuditSeverity.DEBUG,
            table=table,
            correlation_id=correlation_id,
            description=f"Read {result_count} records from {table}",
            details={"result_count": result_count},
        )

    @staticmethod
    def decryption_fallback(
        table: str,
        record_id: Optional[str],
        field: str,
        field_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DECRYPTION_FALLBACK,
            severity=AuditSeverity.WARNING,
            table=table,
            record_id=record_id,
            correlation_id=correlation_id,
            description=f"Could not decrypt {table}.{field}; kept best-effort value",
            details={"field": field, "field_type": field_type},
            error_message=error_message,
        )

    @staticmethod
    def encryption_failed(
        table: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENCRYPTION_FAILED,
            severity=AuditSeverity.ERROR,
            table=table,
            correlation_id=correlation_id,
            description=f"Encryption failed; write to {table} aborted",
            error_message=error_message,
        )

    @staticmethod
    def migration_completed(
        table: str,
        rows_scanned: int,
        rows_migrated: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MIGRATION_COMPLETED,
            table=table,
            correlation_id=correlation_id,
            description=f"Encrypted {rows_migrated} of {rows_scanned} legacy rows in {table}",
            details={
                "rows_scanned": rows_scanned,
                "rows_migrated": rows_migrated,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        table: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            table=table,
            correlation_id=correlation_id,
            description=f"Storage error during {operation} on {table}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

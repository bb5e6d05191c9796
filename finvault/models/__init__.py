"""
Data Models Package

Pydantic models for the audit trail. Finance records themselves are plain
dicts whose sensitive fields are described by the crypto registry.
"""

from finvault.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

"""
Tests for finvault models and error messages

Test strategy:
1. Unit tests for individual components (models, error mapping)
2. Integration tests for flows live in test_orchestrator.py
3. No real API calls in tests (use fakes)
"""

import json
from datetime import timedelta
from uuid import uuid4

import pytest

from finvault.errors import (
    AppError,
    ErrorMessages,
    get_error_message,
    message_for,
)
from finvault.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finvault.services.storage import InMemoryRowStore, RowStoreAuditStorage


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            description="Test",
            table="transactions",
            record_id="t1",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "record_updated"
        assert log_dict["table"] == "transactions"
        assert "event_id" in log_dict
        assert "timestamp" in log_dict

    def test_audit_event_to_row(self):
        """Test flattening into a storable row."""
        correlation_id = uuid4()
        event = AuditEventBuilder.decryption_fallback(
            table="bank_accounts",
            record_id="acc-1",
            field="balance",
            field_type="number",
            error_message="Authentication tag mismatch",
            correlation_id=correlation_id,
        )
        row = event.to_row()
        assert set(row) == {
            "id", "timestamp", "event_type", "severity", "table", "record_id",
            "correlation_id", "description", "details_json", "error_message",
        }
        assert row["severity"] == "warning"
        assert row["correlation_id"] == str(correlation_id)
        assert json.loads(row["details_json"]) == {"field": "balance", "field_type": "number"}

    def test_description_length_limit(self):
        """Test overly long descriptions are rejected."""
        with pytest.raises(ValueError):
            AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="x" * 501)

    def test_audit_event_builder_key_import_failed(self):
        """Test AuditEventBuilder.key_import_failed."""
        event = AuditEventBuilder.key_import_failed("Key must be 16, 24 or 32 bytes")
        assert event.event_type == AuditEventType.KEY_IMPORT_FAILED
        assert event.severity == AuditSeverity.CRITICAL
        assert event.error_message is not None

    def test_audit_event_builder_migration_completed(self):
        """Test AuditEventBuilder.migration_completed."""
        event = AuditEventBuilder.migration_completed("transactions", 10, 4)
        assert event.details == {"rows_scanned": 10, "rows_migrated": 4}
        assert "4 of 10" in event.description


class TestRowStoreAuditStorage:
    """Tests for audit persistence on a row store."""

    async def test_round_trip_through_rows(self):
        storage = RowStoreAuditStorage(InMemoryRowStore())
        correlation_id = uuid4()
        original = AuditEventBuilder.record_created(
            "transactions", "t1", ["amount"], correlation_id=correlation_id,
        )

        assert await storage.append_event(original) is True
        [restored] = await storage.get_events_by_correlation_id(correlation_id)
        assert restored == original

    async def test_recent_events_newest_first(self):
        storage = RowStoreAuditStorage(InMemoryRowStore())
        first = AuditEventBuilder.record_deleted("transactions", "t1")
        second = AuditEventBuilder.record_deleted("transactions", "t2")
        second.timestamp = first.timestamp + timedelta(seconds=1)
        await storage.append_event(first)
        await storage.append_event(second)

        events = await storage.get_recent_events(limit=1)
        assert [e.record_id for e in events] == ["t2"]

    async def test_append_twice_is_rejected_quietly(self):
        """Test a duplicate event id returns False instead of raising."""
        storage = RowStoreAuditStorage(InMemoryRowStore())
        event = AuditEventBuilder.key_imported(256)
        assert await storage.append_event(event) is True
        assert await storage.append_event(event) is False


class TestErrorMessages:
    """Tests for user-facing error mapping."""

    @pytest.mark.parametrize("table, operation, expected", [
        ("transactions", "create", ErrorMessages.TRANSACTION_CREATE_FAILED),
        ("transaction_items", "delete", ErrorMessages.TRANSACTION_DELETE_FAILED),
        ("bank_accounts", "update", ErrorMessages.BANK_ACCOUNT_UPDATE_FAILED),
        ("credit_cards", "delete", ErrorMessages.CREDIT_CARD_DELETE_FAILED),
        ("category_budgets", "update", ErrorMessages.BUDGET_UPDATE_FAILED),
        ("recurring_templates", "create", ErrorMessages.RECURRING_CREATE_FAILED),
        ("investments", "select", ErrorMessages.RECORDS_LOAD_FAILED),
    ])
    def test_message_for(self, table, operation, expected):
        assert message_for(table, operation) == expected

    def test_message_for_falls_back_to_generic(self):
        """Test tables/operations without a specific entry."""
        assert message_for("investments", "create") == ErrorMessages.GENERIC_ERROR
        assert message_for("category_budgets", "delete") == ErrorMessages.GENERIC_ERROR

    def test_get_error_message(self):
        error = AppError(ErrorMessages.CREDIT_CARD_CREATE_FAILED, RuntimeError("sheet locked"))
        assert get_error_message(error) == "Could not create the credit card"
        assert get_error_message(Exception("Not authenticated")) == ErrorMessages.NOT_AUTHENTICATED.value
        assert get_error_message(KeyError("x")) == ErrorMessages.GENERIC_ERROR.value

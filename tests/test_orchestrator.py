"""
Integration tests for the orchestrator, settings-driven key import and the CLI.

Everything runs against the in-memory store; no Google API calls.
"""

from unittest.mock import AsyncMock, patch

import pytest

from finvault.__main__ import main
from finvault.config import get_settings, validate_all_settings
from finvault.crypto import CryptoContext, EncryptionFailed, InvalidKeyMaterial
from finvault.errors import AppError, ErrorMessages
from finvault.orchestrator import create_app_components, create_row_store
from finvault.services.storage import InMemoryRowStore, NotFoundError, StorageError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without deployment configuration."""
    for name in (
        "FINVAULT_ENCRYPTION_KEY",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def components(secret):
    return await create_app_components(use_storage=False, secret=secret)


class TestCreateAppComponents:
    """Tests for create_app_components."""

    async def test_builds_in_memory_components(self, components):
        records, audit_logger, sheets_client = components
        assert sheets_client is None
        assert isinstance(records.store.inner, InMemoryRowStore)

    async def test_key_import_is_audited(self, components):
        records, _, _ = components
        audit_rows = await records.store.inner.select("audit_log")
        assert [r["event_type"] for r in audit_rows] == ["key_imported"]

    async def test_invalid_secret_is_fatal(self):
        with pytest.raises(AppError) as exc_info:
            await create_app_components(use_storage=False, secret="AAAAAAAAAAAAAA==")
        assert exc_info.value.key == ErrorMessages.ENCRYPTION_UNAVAILABLE
        assert isinstance(exc_info.value.original_error, InvalidKeyMaterial)

    async def test_missing_key_is_fatal(self):
        with pytest.raises(AppError) as exc_info:
            await create_app_components(use_storage=False)
        assert exc_info.value.key == ErrorMessages.ENCRYPTION_UNAVAILABLE

    async def test_key_from_environment(self, monkeypatch, secret):
        monkeypatch.setenv("FINVAULT_ENCRYPTION_KEY", secret)
        records, _, _ = await create_app_components(use_storage=False)
        saved = await records.create("bank_accounts", {"name": "Checking", "balance": 100})
        assert saved["balance"] == 100

    def test_row_store_falls_back_to_memory(self):
        """Test an unconfigured Google Sheets backend degrades to memory."""
        store, client = create_row_store(use_storage=True)
        assert isinstance(store, InMemoryRowStore)
        assert client is None


class TestRecordFlow:
    """Tests for RecordFlow CRUD and error mapping."""

    async def test_create_and_list(self, components):
        records, _, _ = components
        await records.create("transactions", {"amount": 150.5, "description": "Lunch", "category": "food"})
        await records.create("transactions", {"amount": 12, "description": "Bus", "category": "transport"})

        rows = await records.list("transactions", {"category": "food"})
        assert len(rows) == 1
        assert rows[0]["amount"] == 150.5
        assert rows[0]["description"] == "Lunch"

    async def test_update_and_delete(self, components):
        records, _, _ = components
        saved = await records.create("recurring_templates", {"amount": 49.9, "description": "Gym"})

        updated = await records.update("recurring_templates", saved["id"], {"amount": 59.9})
        assert updated["amount"] == 59.9
        assert updated["description"] == "Gym"

        assert await records.delete("recurring_templates", saved["id"]) is True
        assert await records.list("recurring_templates") == []

    async def test_update_missing_row(self, components):
        records, _, _ = components
        with pytest.raises(AppError) as exc_info:
            await records.update("transactions", "missing", {"amount": 1})
        assert exc_info.value.key == ErrorMessages.TRANSACTION_UPDATE_FAILED
        assert isinstance(exc_info.value.original_error, NotFoundError)
        assert str(exc_info.value) == "Could not update the transaction"

    async def test_encryption_failure_maps_to_create_failed(self, components):
        records, _, _ = components
        with patch(
            "finvault.crypto.transform.encrypt_field",
            AsyncMock(side_effect=EncryptionFailed("boom")),
        ):
            with pytest.raises(AppError) as exc_info:
                await records.create("bank_accounts", {"balance": 10})
        assert exc_info.value.key == ErrorMessages.BANK_ACCOUNT_CREATE_FAILED
        assert await records.store.inner.select("bank_accounts") == []

    async def test_load_failure(self, components):
        records, _, _ = components
        records.store.inner.select = AsyncMock(side_effect=StorageError("offline"))
        with pytest.raises(AppError) as exc_info:
            await records.list("transactions")
        assert exc_info.value.key == ErrorMessages.RECORDS_LOAD_FAILED

    async def test_failures_are_audited(self, components):
        records, _, _ = components
        with pytest.raises(AppError):
            await records.update("credit_cards", "x", {"credit_limit": 1})

        audit_rows = await records.store.inner.select("audit_log", {"event_type": "system_error"})
        assert len(audit_rows) == 1
        assert "NotFoundError" in audit_rows[0]["description"]

    async def test_sensitive_filter_is_rejected(self, components):
        """Test a filter on an encrypted field surfaces as a load failure."""
        records, _, _ = components
        with pytest.raises(AppError) as exc_info:
            await records.list("transactions", {"amount": 150.5})
        assert exc_info.value.key == ErrorMessages.RECORDS_LOAD_FAILED
        assert isinstance(exc_info.value.original_error, ValueError)


class TestCryptoContextFromSettings:
    """Tests for CryptoContext.from_settings."""

    async def test_reads_key_from_environment(self, monkeypatch, secret):
        monkeypatch.setenv("FINVAULT_ENCRYPTION_KEY", secret)
        context = await CryptoContext.from_settings()
        assert context.key.size_bits == 256
        assert "transactions" in context.registry

    async def test_missing_key(self):
        with pytest.raises(InvalidKeyMaterial, match="not configured"):
            await CryptoContext.from_settings()

    def test_validate_all_settings_reports_missing_key(self):
        results = validate_all_settings()
        assert results["crypto"] is False
        assert results["google_sheets"] is False


class TestCli:
    """Tests for the command-line entry point."""

    def test_keygen(self, capsys):
        assert main(["keygen", "--size", "16"]) == 0
        secret = capsys.readouterr().out.strip()
        assert len(secret) == 24

    def test_check_without_key(self, capsys):
        assert main(["check"]) == 1
        assert "crypto: False" in capsys.readouterr().out

    def test_check_with_key(self, monkeypatch, capsys, secret):
        monkeypatch.setenv("FINVAULT_ENCRYPTION_KEY", secret)
        assert main(["check"]) == 0

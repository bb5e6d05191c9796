"""
Legacy Row Migration

Backfills encryption for rows written before field encryption existed.

Reads go through a migration-safe heuristic, but that heuristic is fuzzy:
a long plaintext note made only of base64 characters is mistaken for
ciphertext. Running this migration removes the ambiguity for existing data,
because each candidate value is checked with a real decryption attempt:

- value decrypts under the key -> already encrypted, left alone
- value is plaintext -> encrypted and written back
- number field that is neither a number nor valid ciphertext -> left alone
  and reported as unrecoverable
- string field holding a ciphertext-sized blob that does not decrypt (written
  under another key) -> left alone and reported as unrecoverable

A row with any unrecoverable field, or without an id, is not written at all.

The migration works against the RAW store (not EncryptedRowStore) and is
idempotent: a second run finds nothing to do.
"""

import base64
import binascii
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from finvault.audit import AuditLogger, create_correlation_id
from finvault.crypto import (
    CryptoContext,
    DecryptionFailed,
    FieldType,
    decrypt_field,
    looks_encrypted,
    parse_number,
)
from finvault.crypto.cipher import NONCE_LENGTH, TAG_LENGTH
from finvault.services.storage import RowStoreInterface, StorageError


logger = structlog.get_logger()


class MigrationReport(BaseModel):
    """Outcome of migrating one table."""
    table: str
    rows_scanned: int = 0
    rows_migrated: int = 0
    fields_encrypted: int = 0
    unrecoverable: list[str] = Field(
        default_factory=list,
        description="'<row_id>.<field>' entries that could not be classified"
    )
    failed: list[str] = Field(
        default_factory=list,
        description="Row ids whose write-back raised a storage error"
    )
    dry_run: bool = False


def _is_ciphertext_blob(value: str) -> bool:
    """True when the value base64-decodes to at least nonce + tag bytes."""
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return len(raw) >= NONCE_LENGTH + TAG_LENGTH


async def _is_plaintext(
    context: CryptoContext,
    field_type: FieldType,
    value: Any,
) -> Optional[bool]:
    """
    Classify a stored value.

    Returns True for plaintext, False for ciphertext under this key, None
    when the value can't be classified: a number field holding neither, or
    a string field holding a blob that only another key could decrypt.
    """
    if not isinstance(value, str):
        return True
    if field_type == FieldType.NUMBER and "=" not in value and parse_number(value) is not None:
        return True
    if field_type == FieldType.STRING and not looks_encrypted(value):
        return True

    try:
        await decrypt_field(value, context.key)
        return False
    except DecryptionFailed:
        if field_type == FieldType.STRING and not _is_ciphertext_blob(value):
            return True
        return None


async def migrate_table(
    store: RowStoreInterface,
    context: CryptoContext,
    table: str,
    audit_logger: Optional[AuditLogger] = None,
    correlation_id: Optional[UUID] = None,
    dry_run: bool = False,
) -> MigrationReport:
    """
    Encrypt every plaintext sensitive value in one table.

    Args:
        store: The raw store holding the rows
        context: Key and registry
        table: Table to migrate
        audit_logger: Optional audit trail
        correlation_id: Groups the audit events of one run
        dry_run: Only count what would change

    Returns:
        A MigrationReport for the table
    """
    report = MigrationReport(table=table, dry_run=dry_run)
    schema = context.registry.schema_for(table)
    if not schema:
        return report

    rows = await store.select(table)
    for row in rows:
        report.rows_scanned += 1
        row_id = row.get("id")
        if row_id is None:
            report.unrecoverable.append(f"<row {report.rows_scanned}>.id")
            continue

        plain: dict[str, Any] = {}
        unrecoverable = False
        for field, field_type in schema.items():
            value = row.get(field)
            if value is None:
                continue
            verdict = await _is_plaintext(context, field_type, value)
            if verdict is None:
                report.unrecoverable.append(f"{row_id}.{field}")
                unrecoverable = True
            elif verdict:
                plain[field] = value

        if not plain or unrecoverable:
            continue

        if not dry_run:
            patch = await context.encrypt_row(table, plain)
            try:
                await store.update(table, row_id, patch)
            except StorageError as e:
                logger.warning(
                    "migration_row_failed",
                    table=table,
                    row_id=str(row_id),
                    error=str(e),
                )
                report.failed.append(str(row_id))
                continue
        report.rows_migrated += 1
        report.fields_encrypted += len(plain)

    logger.info(
        "migration_table_done",
        table=table,
        rows_scanned=report.rows_scanned,
        rows_migrated=report.rows_migrated,
        unrecoverable=len(report.unrecoverable),
        failed=len(report.failed),
        dry_run=dry_run,
    )
    if audit_logger and not dry_run:
        await audit_logger.log_migration_completed(
            table=table,
            rows_scanned=report.rows_scanned,
            rows_migrated=report.rows_migrated,
            correlation_id=correlation_id,
        )
    return report


async def migrate_all(
    store: RowStoreInterface,
    context: CryptoContext,
    audit_logger: Optional[AuditLogger] = None,
    dry_run: bool = False,
) -> list[MigrationReport]:
    """Migrate every table in the registry, one after another."""
    correlation_id = create_correlation_id()
    reports = []
    for table in context.registry.tables:
        reports.append(await migrate_table(
            store,
            context,
            table,
            audit_logger=audit_logger,
            correlation_id=correlation_id,
            dry_run=dry_run,
        ))
    return reports

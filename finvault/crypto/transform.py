"""
Row Transform

Encrypts the sensitive fields of a record before it is written and restores
them after it is read. Which fields are sensitive is decided by the
FieldSchemaRegistry; everything else is copied through untouched.

DESIGN DECISION: Reads are migration-safe. Rows written before encryption was
introduced still hold plaintext, so decrypt_row inspects each value first:

1. Number field holding a clean numeric string without "=" -> plaintext,
   coerced directly, the cipher is never called.
2. String field that does not look like base64 ciphertext -> plaintext,
   left as is.
3. Anything else is decrypted. If that fails, number fields fall back to
   number(value) or 0, string fields are left as read and a data-integrity
   warning is logged.

A failure on one field never aborts the other fields or sibling rows.
Encryption failures, on the other hand, always propagate.
"""

import asyncio
import math
import re
from typing import Any, Optional, Union

import structlog
from pydantic import BaseModel

from finvault.crypto.cipher import decrypt_field, encrypt_field
from finvault.crypto.exceptions import DecryptionFailed
from finvault.crypto.keys import CryptoKey
from finvault.crypto.schemas import FieldSchemaRegistry, FieldType


Row = dict[str, Any]
Number = Union[int, float]

logger = structlog.get_logger()

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+=*$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

# Shortest string we treat as possible ciphertext
MIN_CIPHERTEXT_LENGTH = 20


class DecryptionFallback(BaseModel):
    """A sensitive field that could not be decrypted and what was kept instead."""
    table: str
    field: str
    row_id: Optional[str] = None
    field_type: FieldType
    recovered_value: Optional[Union[int, float, str]] = None
    error: str


def looks_encrypted(value: str) -> bool:
    """
    Heuristic: base64 ciphertext is 20+ chars of the base64 alphabet.

    Plaintext descriptions rarely match; a long single-word note can.
    """
    if len(value) < MIN_CIPHERTEXT_LENGTH:
        return False
    return bool(_BASE64_RE.match(value))


def parse_number(text: str) -> Optional[Number]:
    """
    Parse a stored string back into a number.

    Integral strings become int, other decimals float. An empty string is 0.
    Returns None when the text is not a finite decimal number.
    """
    stripped = text.strip()
    if not stripped:
        return 0
    if _INTEGER_RE.match(stripped):
        return int(stripped)
    if not _DECIMAL_RE.match(stripped):
        return None
    value = float(stripped)
    if not math.isfinite(value):
        return None
    return value


def stringify(value: Any) -> str:
    """String form a value is encrypted as."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _row_id(row: Row) -> Optional[str]:
    row_id = row.get("id")
    return str(row_id) if row_id is not None else None


async def encrypt_row(
    registry: FieldSchemaRegistry,
    table: str,
    row: Row,
    key: CryptoKey,
) -> Row:
    """
    Encrypt the sensitive fields of a row before writing it.

    Returns a new dict with the same keys. None and missing values are
    left alone; unregistered tables come back as an unchanged copy.

    Raises:
        EncryptionFailed: If any field fails to encrypt
    """
    result = dict(row)
    schema = registry.schema_for(table)
    if not schema:
        return result

    fields = [f for f in schema if result.get(f) is not None]
    ciphertexts = await asyncio.gather(
        *(encrypt_field(stringify(result[f]), key) for f in fields)
    )
    result.update(zip(fields, ciphertexts))
    return result


async def encrypt_rows(
    registry: FieldSchemaRegistry,
    table: str,
    rows: list[Row],
    key: CryptoKey,
) -> list[Row]:
    """Encrypt a batch of rows. Order is preserved."""
    return list(await asyncio.gather(
        *(encrypt_row(registry, table, row, key) for row in rows)
    ))


async def _decrypt_value(
    table: str,
    field: str,
    field_type: FieldType,
    value: str,
    key: CryptoKey,
    row_id: Optional[str],
    fallbacks: Optional[list[DecryptionFallback]],
) -> Union[Number, str]:
    if field_type == FieldType.NUMBER and "=" not in value:
        plain_number = parse_number(value)
        if plain_number is not None:
            return plain_number

    if field_type == FieldType.STRING and not looks_encrypted(value):
        return value

    try:
        decrypted = await decrypt_field(value, key)
    except DecryptionFailed as e:
        if field_type == FieldType.NUMBER:
            recovered = parse_number(value) or 0
            logger.warning(
                "decryption_fallback",
                table=table,
                field=field,
                row_id=row_id,
                error=str(e),
            )
        else:
            # Known gap: a long base64-looking plaintext note lands here too
            recovered = value
            logger.warning(
                "decryption_failed_string_field",
                table=table,
                field=field,
                row_id=row_id,
                error=str(e),
            )
        if fallbacks is not None:
            fallbacks.append(DecryptionFallback(
                table=table,
                field=field,
                row_id=row_id,
                field_type=field_type,
                recovered_value=recovered,
                error=str(e),
            ))
        return recovered

    if field_type == FieldType.STRING:
        return decrypted

    number = parse_number(decrypted)
    if number is None:
        logger.warning(
            "decrypted_value_not_numeric",
            table=table,
            field=field,
            row_id=row_id,
        )
        return 0
    return number


async def decrypt_row(
    registry: FieldSchemaRegistry,
    table: str,
    row: Row,
    key: CryptoKey,
    fallbacks: Optional[list[DecryptionFallback]] = None,
) -> Row:
    """
    Decrypt the sensitive fields of a row after reading it.

    Args:
        registry: Which fields are sensitive, per table
        table: Table the row was read from
        row: The stored row
        key: Key handle from import_key
        fallbacks: If given, every field that failed to decrypt is
            appended to it

    Returns:
        A new dict with numbers and strings restored. Never raises for
        a single bad field.
    """
    result = dict(row)
    schema = registry.schema_for(table)
    if not schema:
        return result

    row_id = _row_id(result)
    fields = [
        (name, kind) for name, kind in schema.items()
        if isinstance(result.get(name), str)
    ]
    values = await asyncio.gather(*(
        _decrypt_value(table, name, kind, result[name], key, row_id, fallbacks)
        for name, kind in fields
    ))
    result.update(zip((name for name, _ in fields), values))
    return result


async def decrypt_rows(
    registry: FieldSchemaRegistry,
    table: str,
    rows: list[Row],
    key: CryptoKey,
    fallbacks: Optional[list[DecryptionFallback]] = None,
) -> list[Row]:
    """
    Decrypt a batch of rows concurrently.

    Rows are independent: order is preserved and a corrupted field in one
    row does not affect the others.
    """
    return list(await asyncio.gather(
        *(decrypt_row(registry, table, row, key, fallbacks) for row in rows)
    ))

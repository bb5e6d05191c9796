"""
Command-line entry points.

    python -m finvault keygen [--size 32]
    python -m finvault migrate [--dry-run]
    python -m finvault check
"""

import argparse
import asyncio
import sys

from finvault.audit import AuditLogger, configure_logging
from finvault.config import get_settings, validate_all_settings
from finvault.crypto import DEFAULT_KEY_SIZE, CryptoContext, generate_key_secret
from finvault.migration import migrate_all
from finvault.orchestrator import create_row_store
from finvault.services.storage import RowStoreAuditStorage


async def _migrate(dry_run: bool) -> int:
    context = await CryptoContext.from_settings()
    store, _ = create_row_store(use_storage=True)
    audit_logger = AuditLogger(RowStoreAuditStorage(store))
    reports = await migrate_all(store, context, audit_logger, dry_run=dry_run)
    for report in reports:
        print(
            f"{report.table}: {report.rows_migrated}/{report.rows_scanned} rows, "
            f"{report.fields_encrypted} fields"
            + (f", {len(report.unrecoverable)} unrecoverable" if report.unrecoverable else "")
            + (f", {len(report.failed)} failed" if report.failed else "")
        )
    return 1 if any(r.unrecoverable or r.failed for r in reports) else 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="finvault")
    sub = parser.add_subparsers(dest="command", required=True)

    keygen = sub.add_parser("keygen", help="Print a new base64 encryption key")
    keygen.add_argument("--size", type=int, default=DEFAULT_KEY_SIZE, choices=(16, 24, 32))

    migrate = sub.add_parser("migrate", help="Encrypt legacy plaintext rows")
    migrate.add_argument("--dry-run", action="store_true")

    sub.add_parser("check", help="Validate configuration")

    args = parser.parse_args(argv)
    configure_logging(get_settings().app.log_level)

    if args.command == "keygen":
        print(generate_key_secret(args.size))
        return 0
    if args.command == "migrate":
        return asyncio.run(_migrate(args.dry_run))

    results = validate_all_settings()
    for name, value in results.items():
        print(f"{name}: {value}")
    return 0 if results.get("crypto") else 1


if __name__ == "__main__":
    sys.exit(main())

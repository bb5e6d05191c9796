"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets can serve as a lightweight hosted row store:
1. No database setup required
2. Built-in backup (Google's infrastructure)
3. Easy to export/migrate later

Each table is a worksheet. Row 1 holds the column names; a column is added
the first time a row brings a field the sheet has not seen.

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (we handle this with careful ordering)
- Every cell comes back as a string; empty cells come back as None
- Limited query capabilities (we filter in Python)

Sensitive fields arrive here already encrypted, so the sheet never shows
amounts, balances or notes in plaintext.
"""

from typing import Any, Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finvault.config import get_settings
from finvault.services.storage.interface import (
    DuplicateError,
    NotFoundError,
    Row,
    RowStoreInterface,
    StorageError,
    StoreConnectionError,
)


ID_COLUMN = "id"


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_table_sheet(self, table: str) -> gspread.Worksheet:
        """Get or create the worksheet for a table."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(table)
        except gspread.WorksheetNotFound:
            # New table: header row with just the id column
            sheet = spreadsheet.add_worksheet(
                title=table,
                rows=self._settings.initial_rows,
                cols=1,
            )
            sheet.append_row([ID_COLUMN])
        return sheet


def _to_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _from_cell(value: str) -> Optional[str]:
    return value if value != "" else None


class GoogleSheetsRowStore(RowStoreInterface):
    """
    Google Sheets implementation of the row store.

    One worksheet per table, one row per record.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read_table(
        self,
        sheet: gspread.Worksheet,
    ) -> tuple[list[str], list[tuple[int, Row]]]:
        """
        Return (header, [(sheet_row_number, row), ...]) for a worksheet.

        Sheet row numbers are 1-based and the header is row 1. Empty rows
        are skipped.
        """
        values = sheet.get_all_values()
        if not values:
            return [ID_COLUMN], []
        header = values[0]
        records = []
        for idx, raw in enumerate(values[1:], start=2):
            if not raw or not any(raw):
                continue
            padded = raw + [""] * (len(header) - len(raw))
            records.append((idx, {
                column: _from_cell(cell)
                for column, cell in zip(header, padded)
            }))
        return header, records

    def _ensure_columns(
        self,
        sheet: gspread.Worksheet,
        header: list[str],
        fields: list[str],
    ) -> list[str]:
        """Append header cells for fields the sheet doesn't have yet."""
        missing = [f for f in fields if f not in header]
        if not missing:
            return header
        new_header = header + missing
        if sheet.col_count < len(new_header):
            sheet.add_cols(len(new_header) - sheet.col_count)
        sheet.update(
            range_name=f"{rowcol_to_a1(1, 1)}:{rowcol_to_a1(1, len(new_header))}",
            values=[new_header],
        )
        return new_header

    def _find_record(
        self,
        records: list[tuple[int, Row]],
        row_id: str,
    ) -> tuple[Optional[int], Optional[Row]]:
        for idx, row in records:
            if row.get(ID_COLUMN) == str(row_id):
                return idx, row
        return None, None

    @retry(
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def insert(self, table: str, row: Row) -> Row:
        """Append a row to the table's worksheet."""
        stored = dict(row)
        row_id = stored.get(ID_COLUMN)
        stored[ID_COLUMN] = str(row_id) if row_id is not None else str(uuid4())
        try:
            sheet = self._client.get_table_sheet(table)
            header, records = self._read_table(sheet)
            idx, _ = self._find_record(records, stored[ID_COLUMN])
            if idx is not None:
                raise DuplicateError(f"Row {stored[ID_COLUMN]} already exists in {table}")
            header = self._ensure_columns(sheet, header, list(stored))
            sheet.append_row(
                [_to_cell(stored.get(column)) for column in header],
                value_input_option="RAW",
            )
            return {column: _from_cell(_to_cell(stored.get(column))) for column in header}
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert into {table}: {e}")

    @retry(
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def update(self, table: str, row_id: str, patch: Row) -> Row:
        """Rewrite one row with the patch merged in."""
        try:
            sheet = self._client.get_table_sheet(table)
            header, records = self._read_table(sheet)
            idx, current = self._find_record(records, row_id)
            if idx is None:
                raise NotFoundError(f"Row not found in {table}: {row_id}")

            merged = dict(current)
            merged.update(patch)
            merged[ID_COLUMN] = str(row_id)
            header = self._ensure_columns(sheet, header, list(merged))
            sheet.update(
                range_name=f"{rowcol_to_a1(idx, 1)}:{rowcol_to_a1(idx, len(header))}",
                values=[[_to_cell(merged.get(column)) for column in header]],
                value_input_option="RAW",
            )
            return {column: _from_cell(_to_cell(merged.get(column))) for column in header}
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {table}: {e}")

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[Row]:
        """List rows, filtering in Python on the string form of each value."""
        try:
            sheet = self._client.get_table_sheet(table)
            _, records = self._read_table(sheet)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {table}: {e}")

        rows = [row for _, row in records]
        if filters:
            wanted = {field: _from_cell(_to_cell(value)) for field, value in filters.items()}
            rows = [
                row for row in rows
                if all(row.get(field) == value for field, value in wanted.items())
            ]
        return rows[:limit] if limit is not None else rows

    async def delete(self, table: str, row_id: str) -> bool:
        """Delete a row by ID."""
        try:
            sheet = self._client.get_table_sheet(table)
            _, records = self._read_table(sheet)
            idx, _ = self._find_record(records, row_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete from {table}: {e}")

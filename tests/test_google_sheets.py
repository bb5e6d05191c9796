"""
Tests for the Google Sheets row store.

No real API calls: the worksheet is an in-memory fake that mimics the
handful of gspread.Worksheet methods the store uses.
"""

import pytest
from gspread.utils import a1_to_rowcol

from finvault.crypto import looks_encrypted
from finvault.services.storage import (
    DuplicateError,
    EncryptedRowStore,
    GoogleSheetsRowStore,
    NotFoundError,
    StorageError,
)


class FakeWorksheet:
    """Cells as a list of rows of strings, row 1 first."""

    def __init__(self, title: str):
        self.title = title
        self.values = [["id"]]
        self.col_count = 1

    def get_all_values(self):
        return [list(row) for row in self.values]

    def append_row(self, values, value_input_option=None):
        self.values.append([str(v) for v in values])

    def add_cols(self, cols):
        self.col_count += cols

    def update(self, range_name=None, values=None, value_input_option=None):
        start_row, start_col = a1_to_rowcol(range_name.split(":")[0])
        for offset, new_cells in enumerate(values):
            index = start_row - 1 + offset
            while len(self.values) <= index:
                self.values.append([])
            line = self.values[index]
            needed = start_col - 1 + len(new_cells)
            line.extend([""] * (needed - len(line)))
            line[start_col - 1:needed] = [str(v) for v in new_cells]

    def delete_rows(self, index):
        del self.values[index - 1]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient; creates worksheets on demand."""

    def __init__(self):
        self.sheets: dict[str, FakeWorksheet] = {}

    def get_table_sheet(self, table):
        if table not in self.sheets:
            self.sheets[table] = FakeWorksheet(table)
        return self.sheets[table]


class BrokenSheetsClient:
    def get_table_sheet(self, table):
        raise RuntimeError("quota exceeded")


@pytest.fixture
def sheets_client():
    return FakeSheetsClient()


@pytest.fixture
def sheets_store(sheets_client):
    return GoogleSheetsRowStore(sheets_client)


class TestGoogleSheetsRowStore:
    """Tests for GoogleSheetsRowStore against a fake worksheet."""

    async def test_insert_adds_columns_and_row(self, sheets_store, sheets_client):
        saved = await sheets_store.insert("transactions", {"id": "t1", "category": "food", "amount": 12})

        assert saved == {"id": "t1", "category": "food", "amount": "12"}
        assert sheets_client.sheets["transactions"].values == [
            ["id", "category", "amount"],
            ["t1", "food", "12"],
        ]

    async def test_insert_assigns_id(self, sheets_store):
        saved = await sheets_store.insert("transactions", {"category": "food"})
        assert saved["id"]
        assert (await sheets_store.select("transactions"))[0]["id"] == saved["id"]

    async def test_insert_duplicate(self, sheets_store):
        await sheets_store.insert("transactions", {"id": "t1"})
        with pytest.raises(DuplicateError):
            await sheets_store.insert("transactions", {"id": "t1"})

    async def test_empty_cells_read_as_none(self, sheets_store):
        await sheets_store.insert("transactions", {"id": "t1", "notes": None, "category": "food"})
        await sheets_store.insert("transactions", {"id": "t2", "paid": True})

        rows = await sheets_store.select("transactions")
        assert rows[0] == {"id": "t1", "notes": None, "category": "food", "paid": None}
        assert rows[1] == {"id": "t2", "notes": None, "category": None, "paid": "true"}

    async def test_select_filters_on_string_form(self, sheets_store):
        await sheets_store.insert("transactions", {"id": "t1", "installment": 1})
        await sheets_store.insert("transactions", {"id": "t2", "installment": 2})

        rows = await sheets_store.select("transactions", {"installment": 2})
        assert [r["id"] for r in rows] == ["t2"]

    async def test_select_limit(self, sheets_store):
        for i in range(4):
            await sheets_store.insert("transactions", {"id": f"t{i}"})
        rows = await sheets_store.select("transactions", limit=3)
        assert [r["id"] for r in rows] == ["t0", "t1", "t2"]

    async def test_update_merges_patch(self, sheets_store, sheets_client):
        await sheets_store.insert("bank_accounts", {"id": "a1", "name": "Checking"})
        await sheets_store.insert("bank_accounts", {"id": "a2", "name": "Savings"})

        updated = await sheets_store.update("bank_accounts", "a2", {"bank": "Nubank"})

        assert updated == {"id": "a2", "name": "Savings", "bank": "Nubank"}
        assert sheets_client.sheets["bank_accounts"].values == [
            ["id", "name", "bank"],
            ["a1", "Checking"],
            ["a2", "Savings", "Nubank"],
        ]

    async def test_update_missing_row(self, sheets_store):
        with pytest.raises(NotFoundError):
            await sheets_store.update("bank_accounts", "missing", {"name": "x"})

    async def test_delete(self, sheets_store):
        await sheets_store.insert("transactions", {"id": "t1"})
        await sheets_store.insert("transactions", {"id": "t2"})

        assert await sheets_store.delete("transactions", "t1") is True
        assert await sheets_store.delete("transactions", "t1") is False
        assert [r["id"] for r in await sheets_store.select("transactions")] == ["t2"]

    async def test_api_failure_wrapped(self):
        store = GoogleSheetsRowStore(BrokenSheetsClient())
        with pytest.raises(StorageError, match="quota exceeded"):
            await store.select("transactions")


class TestEncryptedSheets:
    """The sheet must never hold sensitive values in plaintext."""

    async def test_cells_hold_ciphertext(self, sheets_store, sheets_client, context):
        store = EncryptedRowStore(sheets_store, context)

        saved = await store.insert(
            "transactions",
            {"amount": 150.5, "description": "Lunch", "category": "food"},
        )

        sheet = sheets_client.sheets["transactions"]
        header, cells = sheet.values[0], sheet.values[1]
        stored = dict(zip(header, cells))
        assert stored["category"] == "food"
        assert looks_encrypted(stored["amount"])
        assert looks_encrypted(stored["description"])
        assert "Lunch" not in cells

        assert saved["amount"] == 150.5
        [row] = await store.select("transactions", {"category": "food"})
        assert row["description"] == "Lunch"
        assert row["amount"] == 150.5

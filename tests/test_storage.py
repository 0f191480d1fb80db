"""Tests for storage implementations."""

import pytest
from datetime import date
from decimal import Decimal

from budget_forecast.models.ledger import Account, RecurringTransaction, TransactionType
from budget_forecast.services.storage import (
    DuplicateError,
    GoogleSheetsStorage,
    InMemoryStorage,
    NotFoundError,
)
from budget_forecast.services.storage.google_sheets import (
    ACCOUNT_COLUMNS,
    TRANSACTION_COLUMNS,
    row_to_account,
    row_to_transaction,
    transaction_to_row,
)


def make_rule(**overrides) -> RecurringTransaction:
    data = {
        "id": "t1",
        "name": "Rent",
        "amount": Decimal("100"),
        "type": TransactionType.EXPENSE,
        "frequency": "Monthly",
        "account_id": "a1",
        "category": "Mortgage",
        "start_date": date(2025, 1, 15),
    }
    data.update(overrides)
    return RecurringTransaction(**data)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage backend."""

    def __init__(self, header):
        self.rows = [list(header)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def update_cell(self, row, col, value):
        self.rows[row - 1][col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]

    def clear(self):
        self.rows = []


class FakeSheetsClient:
    def __init__(self):
        self.accounts = FakeWorksheet(ACCOUNT_COLUMNS)
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS)

    def get_accounts_sheet(self):
        return self.accounts

    def get_transactions_sheet(self):
        return self.transactions


@pytest.fixture(params=["memory", "sheets"])
def storage(request):
    if request.param == "memory":
        return InMemoryStorage()
    return GoogleSheetsStorage(client=FakeSheetsClient())


class TestStorageContract:
    """Behaviour every storage backend must share."""

    @pytest.mark.asyncio
    async def test_add_and_list_accounts(self, storage):
        """Test accounts come back in creation order."""
        await storage.add_account(Account(id="a1", name="Checking", balance=Decimal("10.50")))
        await storage.add_account(Account(id="a2", name="Savings"))
        accounts = await storage.get_all_accounts()
        assert [a.id for a in accounts] == ["a1", "a2"]
        assert accounts[0].balance == Decimal("10.50")

    @pytest.mark.asyncio
    async def test_duplicate_account(self, storage):
        """Test adding the same id twice is rejected."""
        await storage.add_account(Account(id="a1", name="Checking"))
        with pytest.raises(DuplicateError):
            await storage.add_account(Account(id="a1", name="Again"))

    @pytest.mark.asyncio
    async def test_update_account(self, storage):
        """Test updating replaces the record."""
        await storage.add_account(Account(id="a1", name="Checking"))
        assert await storage.update_account(Account(id="a1", name="Main", balance=Decimal("5")))
        accounts = await storage.get_all_accounts()
        assert accounts[0].name == "Main"
        assert accounts[0].balance == Decimal("5")

    @pytest.mark.asyncio
    async def test_update_missing_account(self, storage):
        """Test updating a missing account raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await storage.update_account(Account(id="nope", name="X"))

    @pytest.mark.asyncio
    async def test_delete_account(self, storage):
        """Test delete reports whether anything was removed."""
        await storage.add_account(Account(id="a1", name="Checking"))
        assert await storage.delete_account("a1") is True
        assert await storage.delete_account("a1") is False
        assert await storage.get_all_accounts() == []

    @pytest.mark.asyncio
    async def test_transactions_round_trip(self, storage):
        """Test a stored rule reads back unchanged."""
        rule = make_rule(end_date=date(2025, 12, 31))
        await storage.add_transaction(rule)
        assert await storage.get_all_transactions() == [rule]

    @pytest.mark.asyncio
    async def test_update_and_delete_transaction(self, storage):
        """Test rule update and delete."""
        await storage.add_transaction(make_rule())
        await storage.update_transaction(make_rule(amount=Decimal("120")))
        assert (await storage.get_all_transactions())[0].amount == Decimal("120")
        assert await storage.delete_transaction("t1") is True
        assert await storage.delete_transaction("t1") is False
        with pytest.raises(NotFoundError):
            await storage.update_transaction(make_rule())

    @pytest.mark.asyncio
    async def test_transactions_by_account(self, storage):
        """Test filtering and cascading by account."""
        await storage.add_transaction(make_rule(id="t1"))
        await storage.add_transaction(make_rule(id="t2", account_id="a2"))
        await storage.add_transaction(make_rule(id="t3"))

        assert [t.id for t in await storage.get_transactions_by_account_id("a1")] == ["t1", "t3"]
        assert await storage.delete_transactions_by_account_id("a1") == 2
        assert [t.id for t in await storage.get_all_transactions()] == ["t2"]

    @pytest.mark.asyncio
    async def test_delete_all_data(self, storage):
        """Test bulk clear."""
        await storage.add_account(Account(id="a1", name="Checking"))
        await storage.add_transaction(make_rule())
        await storage.delete_all_data()
        assert await storage.get_all_accounts() == []
        assert await storage.get_all_transactions() == []


class TestInMemoryStorage:
    """Tests specific to the in-memory backend."""

    @pytest.mark.asyncio
    async def test_returns_copies(self):
        """Test callers cannot mutate stored records."""
        storage = InMemoryStorage()
        await storage.add_account(Account(id="a1", name="Checking"))
        listed = await storage.get_all_accounts()
        listed[0].name = "Changed"
        assert (await storage.get_all_accounts())[0].name == "Checking"


class TestSheetRows:
    """Tests for spreadsheet row conversion."""

    def test_transaction_row_columns(self):
        """Test the row layout matches the header."""
        row = transaction_to_row(make_rule())
        assert len(row) == len(TRANSACTION_COLUMNS)
        assert row[TRANSACTION_COLUMNS.index("type")] == "expense"
        assert row[TRANSACTION_COLUMNS.index("end_date")] == ""

    def test_row_to_transaction_short_row(self):
        """Test trailing empty cells may be missing."""
        rule = row_to_transaction(["t1", "Rent", "100", "expense", "Monthly", "a1"])
        assert rule.start_date is None
        assert rule.category == ""

    def test_row_to_account_default_balance(self):
        """Test an empty balance cell reads as zero."""
        assert row_to_account(["a1", "Cash"]).balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self):
        """Test unreadable rows are skipped instead of failing the read."""
        client = FakeSheetsClient()
        client.accounts.rows.append(["a1", "Good", "1"])
        client.accounts.rows.append(["a2", "Bad", "not-a-number"])
        client.accounts.rows.append(["", "", ""])
        storage = GoogleSheetsStorage(client=client)
        assert [a.id for a in await storage.get_all_accounts()] == ["a1"]

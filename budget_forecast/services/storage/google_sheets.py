"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a storage backend because:
1. Users can view and fix their accounts and rules directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (cascades are done row by row)
- No query capabilities (we filter in Python)

The implementation follows the abstract interface, so the app can run
on the in-memory backend without changing any flow.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budget_forecast.config import get_settings
from budget_forecast.models.ledger import Account, RecurringTransaction, TransactionType
from budget_forecast.services.storage.interface import (
    DuplicateError,
    ForecastStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)


# Column mappings for Accounts sheet
ACCOUNT_COLUMNS = [
    "id",
    "name",
    "balance",
]

# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "name",
    "amount",
    "type",
    "frequency",
    "account_id",
    "category",
    "start_date",
    "end_date",
]

_ACCOUNT_ID_COLUMN = TRANSACTION_COLUMNS.index("account_id")

logger = structlog.get_logger(__name__)


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
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_accounts_sheet(self) -> gspread.Worksheet:
        """Get or create the Accounts worksheet."""
        return self._get_or_create_sheet(
            self._settings.accounts_sheet_name, ACCOUNT_COLUMNS
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS
        )


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def account_to_row(account: Account) -> list:
    """Convert an Account to a spreadsheet row."""
    return [
        account.id,
        account.name,
        str(account.balance),
    ]


def row_to_account(row: list) -> Account:
    """Convert a spreadsheet row to an Account."""
    return Account(
        id=_safe_get(row, 0),
        name=_safe_get(row, 1),
        balance=Decimal(_safe_get(row, 2, "0")),
    )


def transaction_to_row(transaction: RecurringTransaction) -> list:
    """Convert a RecurringTransaction to a spreadsheet row."""
    return [
        transaction.id,
        transaction.name,
        str(transaction.amount),
        transaction.type.value,
        transaction.frequency,
        transaction.account_id,
        transaction.category,
        transaction.start_date.isoformat() if transaction.start_date else "",
        transaction.end_date.isoformat() if transaction.end_date else "",
    ]


def row_to_transaction(row: list) -> RecurringTransaction:
    """Convert a spreadsheet row to a RecurringTransaction."""
    return RecurringTransaction(
        id=_safe_get(row, 0),
        name=_safe_get(row, 1),
        amount=Decimal(_safe_get(row, 2, "0")),
        type=TransactionType(_safe_get(row, 3)),
        frequency=_safe_get(row, 4),
        account_id=_safe_get(row, 5),
        category=_safe_get(row, 6),
        start_date=date.fromisoformat(_safe_get(row, 7)) if _safe_get(row, 7) else None,
        end_date=date.fromisoformat(_safe_get(row, 8)) if _safe_get(row, 8) else None,
    )


class GoogleSheetsStorage(ForecastStorageInterface):
    """
    Google Sheets implementation of forecast storage.

    One worksheet per collection, a header row, then one record per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _find_row(sheet: gspread.Worksheet, record_id: str) -> Optional[int]:
        """1-based sheet row index of a record, or None."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and row[0] == record_id:
                return idx
        return None

    @staticmethod
    def _replace_row(sheet: gspread.Worksheet, idx: int, values: list) -> None:
        for col_idx, value in enumerate(values, start=1):
            sheet.update_cell(idx, col_idx, value)

    @staticmethod
    def _load(sheet: gspread.Worksheet, parse, kind: str) -> list:
        records = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(parse(row))
            except (ValueError, ArithmeticError) as e:
                logger.warning("malformed_row_skipped", kind=kind, row_id=row[0], error=str(e))
        return records

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def get_all_accounts(self) -> list[Account]:
        try:
            sheet = self._client.get_accounts_sheet()
            return self._load(sheet, row_to_account, "account")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list accounts: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def add_account(self, account: Account) -> str:
        try:
            sheet = self._client.get_accounts_sheet()
            if self._find_row(sheet, account.id) is not None:
                raise DuplicateError(f"Account already exists: {account.id}")
            sheet.append_row(account_to_row(account), value_input_option="RAW")
            return account.id
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save account: {e}") from e

    async def update_account(self, account: Account) -> bool:
        try:
            sheet = self._client.get_accounts_sheet()
            idx = self._find_row(sheet, account.id)
            if idx is None:
                raise NotFoundError(f"Account not found: {account.id}")
            self._replace_row(sheet, idx, account_to_row(account))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update account: {e}") from e

    async def delete_account(self, account_id: str) -> bool:
        try:
            sheet = self._client.get_accounts_sheet()
            idx = self._find_row(sheet, account_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete account: {e}") from e

    # -------------------------------------------------------------------------
    # Recurring transactions
    # -------------------------------------------------------------------------

    async def get_all_transactions(self) -> list[RecurringTransaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            return self._load(sheet, row_to_transaction, "transaction")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def add_transaction(self, transaction: RecurringTransaction) -> str:
        try:
            sheet = self._client.get_transactions_sheet()
            if self._find_row(sheet, transaction.id) is not None:
                raise DuplicateError(f"Transaction already exists: {transaction.id}")
            sheet.append_row(transaction_to_row(transaction), value_input_option="RAW")
            return transaction.id
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}") from e

    async def update_transaction(self, transaction: RecurringTransaction) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            idx = self._find_row(sheet, transaction.id)
            if idx is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")
            self._replace_row(sheet, idx, transaction_to_row(transaction))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}") from e

    async def delete_transaction(self, transaction_id: str) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            idx = self._find_row(sheet, transaction_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}") from e

    async def get_transactions_by_account_id(
        self,
        account_id: str,
    ) -> list[RecurringTransaction]:
        transactions = await self.get_all_transactions()
        return [t for t in transactions if t.account_id == account_id]

    async def delete_transactions_by_account_id(self, account_id: str) -> int:
        try:
            sheet = self._client.get_transactions_sheet()
            rows = sheet.get_all_values()
            doomed = [
                idx
                for idx, row in enumerate(rows[1:], start=2)
                if row and _safe_get(row, _ACCOUNT_ID_COLUMN) == account_id
            ]
            # Bottom-up so earlier indexes stay valid
            for idx in reversed(doomed):
                sheet.delete_rows(idx)
            return len(doomed)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete transactions: {e}") from e

    # -------------------------------------------------------------------------
    # Bulk
    # -------------------------------------------------------------------------

    async def delete_all_data(self) -> None:
        try:
            for sheet, columns in (
                (self._client.get_accounts_sheet(), ACCOUNT_COLUMNS),
                (self._client.get_transactions_sheet(), TRANSACTION_COLUMNS),
            ):
                sheet.clear()
                sheet.append_row(columns)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to clear data: {e}") from e

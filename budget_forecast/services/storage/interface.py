"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the forecast engine decoupled from storage entirely

The interface is a plain record store over two collections: accounts and
recurring transactions. No querying beyond "by account".
"""

from abc import ABC, abstractmethod

from budget_forecast.models.ledger import Account, RecurringTransaction


class ForecastStorageInterface(ABC):
    """
    Abstract interface for account and transaction storage.

    Any storage implementation (Google Sheets, SQLite, etc.)
    must implement these methods.
    """

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_all_accounts(self) -> list[Account]:
        """
        Retrieve every account, in creation order.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def add_account(self, account: Account) -> str:
        """
        Persist a new account.

        Args:
            account: The account to save

        Returns:
            The account's ID

        Raises:
            DuplicateError: If an account with the same ID exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_account(self, account: Account) -> bool:
        """
        Replace an existing account.

        Raises:
            NotFoundError: If the account doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_account(self, account_id: str) -> bool:
        """
        Delete an account by ID.

        Dependent transactions are NOT touched here; cascading is a
        policy of the caller.

        Returns:
            True if deleted, False if it did not exist
        """
        pass

    # -------------------------------------------------------------------------
    # Recurring transactions
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_all_transactions(self) -> list[RecurringTransaction]:
        """Retrieve every recurring transaction, in creation order."""
        pass

    @abstractmethod
    async def add_transaction(self, transaction: RecurringTransaction) -> str:
        """
        Persist a new recurring transaction.

        Returns:
            The transaction's ID

        Raises:
            DuplicateError: If a transaction with the same ID exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: RecurringTransaction) -> bool:
        """
        Replace an existing recurring transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a recurring transaction by ID.

        Returns:
            True if deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def get_transactions_by_account_id(
        self,
        account_id: str,
    ) -> list[RecurringTransaction]:
        """All recurring transactions booked against one account."""
        pass

    @abstractmethod
    async def delete_transactions_by_account_id(self, account_id: str) -> int:
        """
        Delete all recurring transactions booked against one account.

        Returns:
            Number of transactions deleted
        """
        pass

    # -------------------------------------------------------------------------
    # Bulk
    # -------------------------------------------------------------------------

    @abstractmethod
    async def delete_all_data(self) -> None:
        """Remove every account and transaction."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass

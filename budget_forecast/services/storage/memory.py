"""
In-Memory Storage Implementation

Dict-backed storage used by tests and by the app when no external
backend is configured. Records are copied on the way in and out so
callers can never mutate stored state by accident.
"""

from budget_forecast.models.ledger import Account, RecurringTransaction
from budget_forecast.services.storage.interface import (
    DuplicateError,
    ForecastStorageInterface,
    NotFoundError,
)


class InMemoryStorage(ForecastStorageInterface):
    """
    In-memory implementation of forecast storage.

    Dicts preserve insertion order, which doubles as creation order.
    """

    def __init__(self):
        self._accounts: dict[str, Account] = {}
        self._transactions: dict[str, RecurringTransaction] = {}

    async def get_all_accounts(self) -> list[Account]:
        return [a.model_copy() for a in self._accounts.values()]

    async def add_account(self, account: Account) -> str:
        if account.id in self._accounts:
            raise DuplicateError(f"Account already exists: {account.id}")
        self._accounts[account.id] = account.model_copy()
        return account.id

    async def update_account(self, account: Account) -> bool:
        if account.id not in self._accounts:
            raise NotFoundError(f"Account not found: {account.id}")
        self._accounts[account.id] = account.model_copy()
        return True

    async def delete_account(self, account_id: str) -> bool:
        return self._accounts.pop(account_id, None) is not None

    async def get_all_transactions(self) -> list[RecurringTransaction]:
        return [t.model_copy() for t in self._transactions.values()]

    async def add_transaction(self, transaction: RecurringTransaction) -> str:
        if transaction.id in self._transactions:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        self._transactions[transaction.id] = transaction.model_copy()
        return transaction.id

    async def update_transaction(self, transaction: RecurringTransaction) -> bool:
        if transaction.id not in self._transactions:
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        self._transactions[transaction.id] = transaction.model_copy()
        return True

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self._transactions.pop(transaction_id, None) is not None

    async def get_transactions_by_account_id(
        self,
        account_id: str,
    ) -> list[RecurringTransaction]:
        return [
            t.model_copy()
            for t in self._transactions.values()
            if t.account_id == account_id
        ]

    async def delete_transactions_by_account_id(self, account_id: str) -> int:
        doomed = [
            tid for tid, t in self._transactions.items()
            if t.account_id == account_id
        ]
        for tid in doomed:
            del self._transactions[tid]
        return len(doomed)

    async def delete_all_data(self) -> None:
        self._accounts.clear()
        self._transactions.clear()

"""
Export / Import Models

The export record format is shared with other tools, so key names are
camelCase on the wire:

    {
        "version": "1.0",
        "exportDate": "2025-01-01T12:00:00+00:00",
        "accounts": [{"id": ..., "name": ..., "balance": ...}],
        "transactions": [{"id": ..., "accountId": ..., "startDate": ..., ...}]
    }
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from budget_forecast.models.ledger import Account, RecurringTransaction


EXPORT_FORMAT_VERSION = "1.0"


def money_to_number(value: Decimal) -> Union[int, float]:
    """Money as a JSON number: integers stay integers."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


class ExportBundle(BaseModel):
    """A full snapshot of accounts and rules."""
    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(
        default=EXPORT_FORMAT_VERSION,
        description="Record format version"
    )
    export_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="exportDate",
        description="When the snapshot was taken"
    )
    accounts: list[Account] = Field(default_factory=list)
    transactions: list[RecurringTransaction] = Field(default_factory=list)

    @field_serializer("accounts", when_used="json")
    def _accounts_on_wire(self, accounts: list[Account]) -> list[dict[str, Any]]:
        records = []
        for account in accounts:
            record = account.model_dump(mode="json", by_alias=True)
            record["balance"] = money_to_number(account.balance)
            records.append(record)
        return records

    @field_serializer("transactions", when_used="json")
    def _transactions_on_wire(
        self, transactions: list[RecurringTransaction]
    ) -> list[dict[str, Any]]:
        records = []
        for transaction in transactions:
            record = transaction.model_dump(mode="json", by_alias=True)
            record["amount"] = money_to_number(transaction.amount)
            records.append(record)
        return records

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialize using the wire key names."""
        return self.model_dump_json(by_alias=True, indent=indent)


class SkippedTransaction(BaseModel):
    """A transaction that could not be imported."""

    transaction_id: str
    name: str
    account_id: str
    reason: str


class ImportReport(BaseModel):
    """Outcome of an import."""

    accounts_imported: int = Field(default=0, ge=0)
    transactions_imported: int = Field(default=0, ge=0)
    skipped_transactions: list[SkippedTransaction] = Field(default_factory=list)
    account_id_map: dict[str, str] = Field(
        default_factory=dict,
        description="Old account id -> newly assigned id"
    )

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_transactions)

"""
Export / Import Service

Snapshots the whole store into the shared record format and restores it.

On import every account gets a NEW id. Transactions are re-pointed at the
new ids; a transaction whose account is not part of the bundle is skipped
and reported, never fatal.
"""

from typing import Union

import structlog
from pydantic import ValidationError

from budget_forecast.models.backup import (
    EXPORT_FORMAT_VERSION,
    ExportBundle,
    ImportReport,
    SkippedTransaction,
)
from budget_forecast.models.ledger import new_id
from budget_forecast.services.storage.interface import ForecastStorageInterface


SUPPORTED_VERSIONS = {EXPORT_FORMAT_VERSION}

logger = structlog.get_logger(__name__)


class ImportFormatError(Exception):
    """The payload is not a readable export bundle."""
    pass


async def export_data(storage: ForecastStorageInterface) -> ExportBundle:
    """Take a snapshot of every account and transaction."""
    accounts = await storage.get_all_accounts()
    transactions = await storage.get_all_transactions()
    return ExportBundle(accounts=accounts, transactions=transactions)


async def export_json(storage: ForecastStorageInterface, indent: int = 2) -> str:
    """Snapshot serialized with the wire key names."""
    bundle = await export_data(storage)
    return bundle.to_json(indent=indent)


def parse_bundle(payload: Union[ExportBundle, dict, str, bytes]) -> ExportBundle:
    """
    Read an export bundle from a model, a decoded dict or raw JSON.

    Raises:
        ImportFormatError: payload is malformed or of an unsupported version
    """
    if isinstance(payload, ExportBundle):
        bundle = payload
    else:
        try:
            if isinstance(payload, (str, bytes)):
                bundle = ExportBundle.model_validate_json(payload)
            elif isinstance(payload, dict):
                bundle = ExportBundle.model_validate(payload)
            else:
                raise ImportFormatError(
                    f"Unsupported payload type: {type(payload).__name__}"
                )
        except ValidationError as e:
            raise ImportFormatError(f"Malformed export data: {e}") from e

    if bundle.version not in SUPPORTED_VERSIONS:
        raise ImportFormatError(f"Unsupported export version: {bundle.version}")
    return bundle


async def import_data(
    storage: ForecastStorageInterface,
    payload: Union[ExportBundle, dict, str, bytes],
    replace: bool = True,
) -> ImportReport:
    """
    Restore a bundle into storage.

    Args:
        storage: Target store
        payload: Bundle as model, dict or JSON
        replace: Clear the store first

    Returns:
        ImportReport with counts, the old -> new account id map and
        the skipped transactions

    Raises:
        ImportFormatError: payload is malformed or of an unsupported version
        StorageError: the store failed mid-import
    """
    # Storage stays untouched when the payload is rejected
    bundle = parse_bundle(payload)

    if replace:
        await storage.delete_all_data()

    report = ImportReport()

    for account in bundle.accounts:
        fresh = account.model_copy(update={"id": new_id()})
        await storage.add_account(fresh)
        report.account_id_map[account.id] = fresh.id
        report.accounts_imported += 1

    for transaction in bundle.transactions:
        mapped = report.account_id_map.get(transaction.account_id)
        if mapped is None:
            report.skipped_transactions.append(SkippedTransaction(
                transaction_id=transaction.id,
                name=transaction.name,
                account_id=transaction.account_id,
                reason="account not found in import",
            ))
            logger.warning(
                "import_transaction_skipped",
                transaction_id=transaction.id,
                account_id=transaction.account_id,
            )
            continue
        await storage.add_transaction(
            transaction.model_copy(update={"id": new_id(), "account_id": mapped})
        )
        report.transactions_imported += 1

    return report

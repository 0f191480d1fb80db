"""
Main Orchestrator for Budget Forecast

This module ties together all the components and defines the
end-to-end flows for:
1. Account management (create, edit, delete with cascade)
2. Recurring transaction management (create, edit, per-occurrence edit)
3. Forecast requests (ledger, grouped ledger, chart, upcoming list)
4. Backup (export and import)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches storage without passing validation
- The forecast engine only ever sees a snapshot read for one request
- Every mutation is audited

The engine itself stays pure; all I/O, settings and logging live here.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel

from budget_forecast.audit import AuditLogger, configure_logging, create_correlation_id
from budget_forecast.config import get_settings
from budget_forecast.config.settings import ForecastSettings
from budget_forecast.forecast import (
    compute_forecast,
    expand_all,
    is_known_frequency,
    project_series,
)
from budget_forecast.models.backup import ExportBundle, ImportReport
from budget_forecast.models.ledger import (
    DEFAULT_CATEGORIES,
    Account,
    AccountDraft,
    ChartPoint,
    ForecastMode,
    ForecastRow,
    Frequency,
    Occurrence,
    PeriodGroup,
    RecurringTransaction,
    TransactionDraft,
    TransactionType,
    ValidationResult,
)
from budget_forecast.services.backup import export_data, import_data
from budget_forecast.services.storage import (
    ForecastStorageInterface,
    GoogleSheetsStorage,
    InMemoryStorage,
    NotFoundError,
    StorageError,
)
from budget_forecast.validation import (
    AccountValidator,
    RuleValidator,
    get_user_friendly_summary,
)


class ValidationFailedError(Exception):
    """Input was rejected by validation. Carries the full result."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(get_user_friendly_summary(result))


class UnsupportedEditError(Exception):
    """The requested edit cannot be represented by a rule."""
    pass


class AccountDeletion(BaseModel):
    """Outcome of deleting an account."""

    account_id: str
    transactions_deleted: int


def _issues_for_log(result: ValidationResult) -> list[dict]:
    return [
        {"field": i.field, "type": i.issue_type, "message": i.message}
        for i in result.issues
    ]


class AccountFlow:
    """
    Orchestrates account management.

    Deleting an account deletes every rule that books against it.
    """

    def __init__(
        self,
        storage: ForecastStorageInterface,
        validator: Optional[AccountValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or AccountValidator()
        self._audit_logger = audit_logger

    def _check(self, draft: AccountDraft, correlation_id: Optional[UUID]) -> None:
        result = self._validator.validate(draft)
        if not result.is_valid:
            if self._audit_logger:
                self._audit_logger.log_validation_failed(
                    entity_type="account",
                    stage="schema",
                    issues=_issues_for_log(result),
                    correlation_id=correlation_id,
                )
            raise ValidationFailedError(result)

    async def _get(self, account_id: str) -> Account:
        for account in await self._storage.get_all_accounts():
            if account.id == account_id:
                return account
        raise NotFoundError(f"Account not found: {account_id}")

    async def list_accounts(self) -> list[Account]:
        return await self._storage.get_all_accounts()

    async def create_account(
        self,
        name: Optional[str],
        balance: Union[Decimal, int, str, None] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        """
        Validate and persist a new account.

        Raises:
            ValidationFailedError: name missing or balance not a number
        """
        correlation_id = correlation_id or create_correlation_id()
        draft = AccountDraft(name=name, balance=balance)
        self._check(draft, correlation_id)

        account = Account(name=draft.name, balance=draft.balance or Decimal("0"))
        await self._storage.add_account(account)

        if self._audit_logger:
            self._audit_logger.log_account_created(
                account.id, account.name, correlation_id
            )
        return account

    async def update_account(
        self,
        account_id: str,
        name: Optional[str] = None,
        balance: Union[Decimal, int, str, None] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        """
        Change the name and/or balance of an account.

        Raises:
            NotFoundError: no such account
            ValidationFailedError: resulting account is invalid
        """
        correlation_id = correlation_id or create_correlation_id()
        current = await self._get(account_id)

        draft = AccountDraft(
            name=current.name if name is None else name,
            balance=current.balance if balance is None else balance,
        )
        self._check(draft, correlation_id)

        updated = current.model_copy(update={"name": draft.name, "balance": draft.balance})
        await self._storage.update_account(updated)

        if self._audit_logger:
            self._audit_logger.log_account_updated(
                updated.id, updated.name, correlation_id
            )
        return updated

    async def dependent_transactions(self, account_id: str) -> list[RecurringTransaction]:
        """Rules that would be removed together with the account."""
        return await self._storage.get_transactions_by_account_id(account_id)

    async def delete_account(
        self,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AccountDeletion:
        """
        Delete an account and all of its rules.

        Raises:
            NotFoundError: no such account
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._get(account_id)

        removed = await self._storage.delete_transactions_by_account_id(account_id)
        await self._storage.delete_account(account_id)

        if self._audit_logger:
            self._audit_logger.log_account_deleted(account_id, removed, correlation_id)
        return AccountDeletion(account_id=account_id, transactions_deleted=removed)


class TransactionFlow:
    """
    Orchestrates recurring transaction management.

    Edits always apply to the whole rule. There is no storage for
    per-occurrence overrides, so a single-occurrence edit is refused.
    """

    # Fields an occurrence edit may change on its rule
    EDITABLE_FIELDS = {"name", "amount", "type", "category", "frequency", "end_date"}

    def __init__(
        self,
        storage: ForecastStorageInterface,
        validator: Optional[RuleValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        categories: Optional[list[str]] = None,
    ):
        self._storage = storage
        self._validator = validator or RuleValidator()
        self._audit_logger = audit_logger
        self._categories = list(categories if categories is not None else DEFAULT_CATEGORIES)

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    def categories(self) -> list[str]:
        return list(self._categories)

    def add_category(self, name: str) -> list[str]:
        """
        Add a category if it is not already known.

        Raises:
            ValueError: blank name
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Category name is required")
        if name not in self._categories:
            self._categories.append(name)
        return self.categories()

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    async def _validate(
        self,
        draft: TransactionDraft,
        correlation_id: Optional[UUID],
    ) -> ValidationResult:
        accounts = await self._storage.get_all_accounts()
        result = self._validator.validate(draft, {a.id for a in accounts})
        if not result.is_valid:
            if self._audit_logger:
                stage = "schema" if not result.schema_valid else "semantic"
                self._audit_logger.log_validation_failed(
                    entity_type="transaction",
                    stage=stage,
                    issues=_issues_for_log(result),
                    correlation_id=correlation_id,
                )
            raise ValidationFailedError(result)
        return result

    async def _get(self, transaction_id: str) -> RecurringTransaction:
        for rule in await self._storage.get_all_transactions():
            if rule.id == transaction_id:
                return rule
        raise NotFoundError(f"Transaction not found: {transaction_id}")

    async def list_transactions(self) -> list[RecurringTransaction]:
        return await self._storage.get_all_transactions()

    async def create_transaction(
        self,
        name: Optional[str],
        amount: Union[Decimal, int, str, None],
        type: Union[TransactionType, str, None],
        account_id: Optional[str],
        start_date: Optional[date],
        frequency: Union[Frequency, str] = Frequency.MONTHLY,
        category: Optional[str] = None,
        end_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringTransaction:
        """
        Validate and persist a new recurring rule.

        A category that is not yet known is added to the category list.

        Raises:
            ValidationFailedError: required field missing, negative amount,
                unknown frequency
        """
        correlation_id = correlation_id or create_correlation_id()
        draft = TransactionDraft(
            name=name,
            amount=amount,
            type=type,
            frequency=frequency,
            account_id=account_id,
            category=category,
            start_date=start_date,
            end_date=end_date,
        )
        await self._validate(draft, correlation_id)

        rule = RecurringTransaction(
            name=draft.name,
            amount=draft.amount,
            type=draft.type,
            frequency=draft.frequency,
            account_id=draft.account_id,
            category=draft.category or "Other/Miscellaneous",
            start_date=draft.start_date,
            end_date=draft.end_date,
        )
        await self._storage.add_transaction(rule)
        if rule.category not in self._categories:
            self._categories.append(rule.category)

        if self._audit_logger:
            self._audit_logger.log_transaction_created(rule.id, rule.name, correlation_id)
        return rule

    async def update_transaction(
        self,
        rule: RecurringTransaction,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringTransaction:
        """
        Replace a stored rule. All of its occurrences change with it.

        Raises:
            NotFoundError: no such rule
            ValidationFailedError: the new rule is invalid
        """
        correlation_id = correlation_id or create_correlation_id()
        draft = TransactionDraft(
            name=rule.name,
            amount=rule.amount,
            type=rule.type,
            frequency=rule.frequency,
            account_id=rule.account_id,
            category=rule.category,
            start_date=rule.start_date,
            end_date=rule.end_date,
        )
        await self._validate(draft, correlation_id)
        await self._storage.update_transaction(rule)

        if self._audit_logger:
            self._audit_logger.log_transaction_updated(rule.id, rule.name, correlation_id)
        return rule

    async def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        correlation_id = correlation_id or create_correlation_id()
        try:
            name = (await self._get(transaction_id)).name
        except NotFoundError:
            return False

        deleted = await self._storage.delete_transaction(transaction_id)
        if deleted and self._audit_logger:
            self._audit_logger.log_transaction_deleted(transaction_id, name, correlation_id)
        return deleted

    async def edit_occurrence(
        self,
        occurrence: Occurrence,
        changes: dict[str, Any],
        scope: str = "future",
        correlation_id: Optional[UUID] = None,
    ) -> RecurringTransaction:
        """
        Apply an edit made on one occurrence.

        Args:
            occurrence: The occurrence the user edited
            changes: New field values, e.g. {"amount": Decimal("120")}
            scope: "future" rewrites the generating rule, which changes
                every occurrence of it; "single" is not supported

        Raises:
            UnsupportedEditError: scope is "single"
            ValueError: unknown scope or a field that cannot be edited
            NotFoundError: the generating rule no longer exists
        """
        correlation_id = correlation_id or create_correlation_id()

        if scope == "single":
            if self._audit_logger:
                self._audit_logger.log_occurrence_edit_rejected(
                    occurrence.base_id, occurrence.date.isoformat(), correlation_id
                )
            raise UnsupportedEditError(
                "Editing a single occurrence is not supported; "
                "edit all future occurrences instead"
            )
        if scope != "future":
            raise ValueError(f"Unknown edit scope: {scope}")

        unknown = set(changes) - self.EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")

        rule = await self._get(occurrence.base_id)
        # model_validate re-runs field validation on the merged values
        updated = RecurringTransaction.model_validate(
            {**rule.model_dump(), **changes}
        )
        return await self.update_transaction(updated, correlation_id)


class ForecastFlow:
    """
    Orchestrates forecast requests.

    Each request reads one snapshot of accounts and rules from storage
    and hands it to the pure engine together with the configured limits.
    """

    def __init__(
        self,
        storage: ForecastStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        forecast_settings: Optional[ForecastSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = forecast_settings or get_settings().forecast

    async def _snapshot(
        self,
        correlation_id: UUID,
    ) -> tuple[list[Account], list[RecurringTransaction]]:
        try:
            accounts = await self._storage.get_all_accounts()
            rules = await self._storage.get_all_transactions()
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_storage_error("forecast_snapshot", str(e), correlation_id)
            raise
        if self._audit_logger:
            for rule in rules:
                if not is_known_frequency(rule.frequency):
                    self._audit_logger.log_unknown_frequency(
                        rule.id, rule.frequency, correlation_id
                    )
        return accounts, rules

    def default_window(self, today: Optional[date] = None) -> tuple[date, date]:
        """Window used when none was picked: today and the following days, inclusive."""
        today = today or date.today()
        return today, today + timedelta(days=self._settings.default_window_days - 1)

    async def compute_forecast(
        self,
        window_start: date,
        window_end: date,
        mode: Union[ForecastMode, str] = ForecastMode.DETAILED,
        correlation_id: Optional[UUID] = None,
    ) -> Union[list[ForecastRow], list[PeriodGroup]]:
        """
        Detailed or grouped forecast for the window.

        Raises:
            ForecastTooLargeError: the window and rules exceed the
                configured occurrence limit
            StorageError: storage could not be read
        """
        correlation_id = correlation_id or create_correlation_id()
        accounts, rules = await self._snapshot(correlation_id)
        return self._compute(accounts, rules, window_start, window_end, mode, correlation_id)

    def _compute(
        self,
        accounts: list[Account],
        rules: list[RecurringTransaction],
        window_start: date,
        window_end: date,
        mode: Union[ForecastMode, str],
        correlation_id: UUID,
    ) -> Union[list[ForecastRow], list[PeriodGroup]]:
        mode = ForecastMode(mode)
        result = compute_forecast(
            accounts,
            rules,
            window_start,
            window_end,
            mode,
            max_occurrences=self._settings.max_occurrences,
            epoch=self._settings.epoch,
        )

        if self._audit_logger:
            self._audit_logger.log_forecast_computed(
                mode.value,
                window_start.isoformat(),
                window_end.isoformat(),
                len(result),
                correlation_id,
            )
        return result

    async def chart(
        self,
        window_start: date,
        window_end: date,
        mode: Union[ForecastMode, str] = ForecastMode.DETAILED,
        correlation_id: Optional[UUID] = None,
    ) -> list[ChartPoint]:
        """Balance of every account at each date (or period) of the forecast."""
        correlation_id = correlation_id or create_correlation_id()
        accounts, rules = await self._snapshot(correlation_id)
        result = self._compute(accounts, rules, window_start, window_end, mode, correlation_id)
        return project_series(result, accounts)

    async def upcoming_occurrences(
        self,
        today: Optional[date] = None,
        months: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Occurrence]:
        """Every occurrence from today through the same day N months ahead, by date."""
        correlation_id = correlation_id or create_correlation_id()
        today = today or date.today()
        months = months if months is not None else self._settings.upcoming_months
        until = today + relativedelta(months=months)

        _, rules = await self._snapshot(correlation_id)
        occurrences = list(expand_all(rules, today, until))
        occurrences.sort(key=lambda o: o.date)
        return occurrences


class BackupFlow:
    """Orchestrates export and import with auditing."""

    def __init__(
        self,
        storage: ForecastStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def export_data(self, correlation_id: Optional[UUID] = None) -> ExportBundle:
        correlation_id = correlation_id or create_correlation_id()
        bundle = await export_data(self._storage)
        if self._audit_logger:
            self._audit_logger.log_data_exported(
                len(bundle.accounts), len(bundle.transactions), correlation_id
            )
        return bundle

    async def export_json(self, correlation_id: Optional[UUID] = None) -> str:
        bundle = await self.export_data(correlation_id)
        return bundle.to_json()

    async def import_data(
        self,
        payload: Union[ExportBundle, dict, str, bytes],
        replace: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> ImportReport:
        """
        Restore a bundle.

        Raises:
            ImportFormatError: unreadable payload; storage is untouched
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            report = await import_data(self._storage, payload, replace=replace)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_storage_error("import", str(e), correlation_id)
            raise

        if self._audit_logger:
            for skipped in report.skipped_transactions:
                self._audit_logger.log_transaction_import_skipped(
                    skipped.transaction_id,
                    skipped.account_id,
                    skipped.reason,
                    correlation_id,
                )
            self._audit_logger.log_data_imported(
                report.accounts_imported,
                report.transactions_imported,
                report.skipped_count,
                correlation_id,
            )
        return report


def create_storage(backend: Optional[str] = None) -> ForecastStorageInterface:
    """Build the configured storage backend."""
    backend = backend or get_settings().app.storage_backend
    if backend == "google_sheets":
        return GoogleSheetsStorage()
    if backend == "memory":
        return InMemoryStorage()
    raise ValueError(f"Unknown storage backend: {backend}")


def create_app_components(
    storage: Optional[ForecastStorageInterface] = None,
) -> tuple[AccountFlow, TransactionFlow, ForecastFlow, BackupFlow]:
    """
    Factory function to create all application components.

    Args:
        storage: Storage to use. Built from AppSettings.storage_backend
                 when not given.

    Returns:
        (account_flow, transaction_flow, forecast_flow, backup_flow)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    storage = storage or create_storage(settings.app.storage_backend)
    audit_logger = AuditLogger()

    account_flow = AccountFlow(storage, audit_logger=audit_logger)
    transaction_flow = TransactionFlow(storage, audit_logger=audit_logger)
    forecast_flow = ForecastFlow(
        storage,
        audit_logger=audit_logger,
        forecast_settings=settings.forecast,
    )
    backup_flow = BackupFlow(storage, audit_logger=audit_logger)

    return account_flow, transaction_flow, forecast_flow, backup_flow

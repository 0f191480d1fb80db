"""
Ledger Aggregator

Merges the occurrences of every rule, orders them chronologically and
threads a running balance per account through them.

Two views are produced:
1. Detailed: one ForecastRow per occurrence in the window
2. Grouped: one PeriodGroup per calendar month or year of the window,
   with per-rule totals and carried-forward end-of-period balances

OPENING BALANCES: Account.balance is the balance "now", not a dated
snapshot. Every rule is therefore expanded from EPOCH, and all occurrences
before the window start are applied first. The visible window opens on
the resulting balances.

GUARANTEES:
- Pure: no I/O, no state kept between calls
- Deterministic: stable sort, ties keep generation order (rule order)
- Never fails on a missing account or a non-finite balance
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Sequence, Union

from budget_forecast.forecast.periods import iter_periods, period_label
from budget_forecast.forecast.recurrence import expand_all
from budget_forecast.models.ledger import (
    Account,
    ForecastMode,
    ForecastRow,
    Granularity,
    Occurrence,
    PeriodBalance,
    PeriodGroup,
    RecurringTransaction,
    SummaryEntry,
)


EPOCH = date(1900, 1, 1)
DEFAULT_MAX_OCCURRENCES = 1_000_000
UNKNOWN_ACCOUNT_LABEL = "Unknown Account ({account_id})"

ZERO = Decimal("0")


class ForecastTooLargeError(Exception):
    """The request would generate more occurrences than allowed."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"Forecast would generate more than {limit} occurrences; "
            "narrow the window or the rules"
        )


def normalize_balance(value) -> Decimal:
    """Coerce missing or non-finite numbers to zero."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return ZERO
    if not value.is_finite():
        return ZERO
    return value


def unknown_account_label(account_id: str) -> str:
    return UNKNOWN_ACCOUNT_LABEL.format(account_id=account_id)


class _RunningBalances:
    """Per-account balances for the duration of one call."""

    def __init__(self, accounts: Iterable[Account]):
        self._names: dict[str, str] = {}
        self._balances: dict[str, Decimal] = {}
        for account in accounts:
            if account.id in self._balances:
                continue
            self._names[account.id] = account.name
            self._balances[account.id] = normalize_balance(account.balance)

    def name_of(self, account_id: str) -> str:
        return self._names.get(account_id) or unknown_account_label(account_id)

    def apply(self, occurrence: Occurrence) -> Decimal:
        """Book one occurrence and return the account's new balance."""
        current = self._balances.get(occurrence.account_id, ZERO)
        updated = normalize_balance(current + normalize_balance(occurrence.signed_amount))
        self._balances[occurrence.account_id] = updated
        return updated

    def as_dict(self) -> dict[str, Decimal]:
        return dict(self._balances)

    def snapshot(self) -> list[PeriodBalance]:
        # Known accounts first (input order), then unknown ids as first touched
        return [
            PeriodBalance(
                account_id=account_id,
                account_name=self.name_of(account_id),
                balance=balance,
            )
            for account_id, balance in self._balances.items()
        ]


def _require_collections(accounts, rules) -> None:
    if accounts is None:
        raise TypeError("accounts collection is required")
    if rules is None:
        raise TypeError("rules collection is required")


def _collect_sorted(
    rules: Iterable[RecurringTransaction],
    window_end: date,
    max_occurrences: int,
    epoch: date,
) -> list[Occurrence]:
    occurrences: list[Occurrence] = []
    for occurrence in expand_all(rules, epoch, window_end):
        occurrences.append(occurrence)
        if len(occurrences) > max_occurrences:
            raise ForecastTooLargeError(max_occurrences)
    # list.sort is stable: same-day occurrences keep generation order
    occurrences.sort(key=lambda o: o.date)
    return occurrences


def opening_balances(
    accounts: Sequence[Account],
    rules: Sequence[RecurringTransaction],
    window_start: date,
    *,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    epoch: date = EPOCH,
) -> dict[str, Decimal]:
    """Balance per account id just before window_start."""
    _require_collections(accounts, rules)
    balances = _RunningBalances(accounts)
    before_window = [
        o for o in _collect_sorted(rules, window_start, max_occurrences, epoch)
        if o.date < window_start
    ]
    for occurrence in before_window:
        balances.apply(occurrence)
    return balances.as_dict()


def build_ledger(
    accounts: Sequence[Account],
    rules: Sequence[RecurringTransaction],
    window_start: date,
    window_end: date,
    *,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    epoch: date = EPOCH,
) -> list[ForecastRow]:
    """
    Detailed forecast: one row per occurrence within the window.

    Each row carries the balance of its account right after the
    occurrence is applied. An empty list is returned for a reversed
    window.

    Raises:
        TypeError: accounts or rules is None
        ForecastTooLargeError: more than max_occurrences would be generated
    """
    _require_collections(accounts, rules)
    if window_end < window_start:
        return []

    occurrences = _collect_sorted(rules, window_end, max_occurrences, epoch)
    balances = _RunningBalances(accounts)

    rows = []
    for occurrence in occurrences:
        balance = balances.apply(occurrence)
        if occurrence.date < window_start:
            continue
        rows.append(ForecastRow(
            date=occurrence.date,
            amount=occurrence.amount,
            type=occurrence.type,
            account_id=occurrence.account_id,
            category=occurrence.category,
            base_id=occurrence.base_id,
            account_name=balances.name_of(occurrence.account_id),
            balance=balance,
        ))
    return rows


def _summarize(
    occurrences: Sequence[Occurrence],
    balances: _RunningBalances,
) -> list[SummaryEntry]:
    totals: dict[tuple, dict] = {}
    for occurrence in occurrences:
        key = (
            occurrence.account_id,
            occurrence.category,
            occurrence.type,
            occurrence.base_id,
        )
        if key not in totals:
            totals[key] = {
                "total": ZERO,
                "count": 0,
                "base_amount": normalize_balance(occurrence.amount),
            }
        totals[key]["total"] += normalize_balance(occurrence.amount)
        totals[key]["count"] += 1

    return [
        SummaryEntry(
            account_id=account_id,
            account_name=balances.name_of(account_id),
            category=category,
            type=tx_type,
            base_id=base_id,
            total=data["total"],
            occurrence_count=data["count"],
            base_amount=data["base_amount"],
        )
        for (account_id, category, tx_type, base_id), data in totals.items()
    ]


def build_grouped_ledger(
    accounts: Sequence[Account],
    rules: Sequence[RecurringTransaction],
    window_start: date,
    window_end: date,
    granularity: Union[Granularity, str],
    *,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    epoch: date = EPOCH,
) -> list[PeriodGroup]:
    """
    Grouped forecast: one PeriodGroup per calendar month or year.

    Periods are contiguous and clipped to the window. Balances are seeded
    exactly as in build_ledger() and carried from one period to the next.

    Raises:
        TypeError: accounts or rules is None
        ValueError: unknown granularity
        ForecastTooLargeError: more than max_occurrences would be generated
    """
    _require_collections(accounts, rules)
    granularity = Granularity(granularity)
    if window_end < window_start:
        return []

    occurrences = _collect_sorted(rules, window_end, max_occurrences, epoch)
    balances = _RunningBalances(accounts)

    idx = 0
    total = len(occurrences)
    while idx < total and occurrences[idx].date < window_start:
        balances.apply(occurrences[idx])
        idx += 1

    groups = []
    for period_start, period_end in iter_periods(window_start, window_end, granularity):
        in_period = []
        while idx < total and occurrences[idx].date <= period_end:
            in_period.append(occurrences[idx])
            idx += 1

        summary = _summarize(in_period, balances)
        for occurrence in in_period:
            balances.apply(occurrence)

        groups.append(PeriodGroup(
            label=period_label(period_start, granularity),
            start=period_start,
            end=period_end,
            summary_entries=summary,
            end_of_period_balances=balances.snapshot(),
        ))
    return groups


def compute_forecast(
    accounts: Sequence[Account],
    rules: Sequence[RecurringTransaction],
    window_start: date,
    window_end: date,
    mode: Union[ForecastMode, str] = ForecastMode.DETAILED,
    *,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    epoch: date = EPOCH,
) -> Union[list[ForecastRow], list[PeriodGroup]]:
    """Dispatch to the detailed or grouped ledger based on mode."""
    mode = ForecastMode(mode)
    granularity: Optional[Granularity] = mode.granularity
    if granularity is None:
        return build_ledger(
            accounts, rules, window_start, window_end,
            max_occurrences=max_occurrences, epoch=epoch,
        )
    return build_grouped_ledger(
        accounts, rules, window_start, window_end, granularity,
        max_occurrences=max_occurrences, epoch=epoch,
    )

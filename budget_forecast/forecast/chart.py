"""
Chart Projector

Reduces a detailed or grouped ledger to a balance matrix: one point per
date (detailed) or per period (grouped), with the balance of every
account at that point.

Every account appears in every point, even without activity. Accounts
that are referenced by rules but no longer exist are not charted.
"""

from decimal import Decimal
from itertools import groupby
from typing import Iterable, Sequence, Union

from budget_forecast.forecast.ledger import normalize_balance
from budget_forecast.models.ledger import Account, ChartPoint, ForecastRow, PeriodGroup


def _seed(accounts: Sequence[Account]) -> dict[str, Decimal]:
    return {account.id: normalize_balance(account.balance) for account in accounts}


def _point(label: str, accounts: Sequence[Account], balances: dict[str, Decimal]) -> ChartPoint:
    return ChartPoint(
        label=label,
        balances={account.name: balances[account.id] for account in accounts},
    )


def _project_rows(rows: Sequence[ForecastRow], accounts: Sequence[Account]) -> list[ChartPoint]:
    balances = _seed(accounts)
    points = []
    for day, rows_on_day in groupby(sorted(rows, key=lambda r: r.date), key=lambda r: r.date):
        for row in rows_on_day:
            if row.account_id in balances:
                balances[row.account_id] = row.balance
        points.append(_point(day.isoformat(), accounts, balances))
    return points


def _project_groups(groups: Sequence[PeriodGroup], accounts: Sequence[Account]) -> list[ChartPoint]:
    balances = _seed(accounts)
    points = []
    for group in groups:
        for entry in group.end_of_period_balances:
            if entry.account_id in balances:
                balances[entry.account_id] = entry.balance
        points.append(_point(group.label, accounts, balances))
    return points


def project_series(
    rows_or_groups: Iterable[Union[ForecastRow, PeriodGroup]],
    accounts: Sequence[Account],
) -> list[ChartPoint]:
    """
    Build chart points from ledger output.

    Args:
        rows_or_groups: output of build_ledger() or build_grouped_ledger()
        accounts: the accounts to chart, in legend order

    Raises:
        TypeError: a mix of rows and groups, or anything else
    """
    items = list(rows_or_groups)
    if not items:
        return []
    accounts = list(accounts)

    if all(isinstance(item, PeriodGroup) for item in items):
        return _project_groups(items, accounts)
    if all(isinstance(item, ForecastRow) for item in items):
        return _project_rows(items, accounts)
    raise TypeError("expected only ForecastRow or only PeriodGroup items")

"""
Forecast Engine Package

Pure, synchronous computation: recurrence expansion, ledger aggregation
and chart projection. Nothing in this package performs I/O.
"""

from budget_forecast.forecast.chart import project_series
from budget_forecast.forecast.ledger import (
    DEFAULT_MAX_OCCURRENCES,
    EPOCH,
    ForecastTooLargeError,
    build_grouped_ledger,
    build_ledger,
    compute_forecast,
    normalize_balance,
    opening_balances,
    unknown_account_label,
)
from budget_forecast.forecast.periods import (
    is_known_frequency,
    iter_periods,
    period_label,
)
from budget_forecast.forecast.recurrence import (
    expand,
    expand_all,
    generate_occurrences,
)

__all__ = [
    "DEFAULT_MAX_OCCURRENCES",
    "EPOCH",
    "ForecastTooLargeError",
    "build_grouped_ledger",
    "build_ledger",
    "compute_forecast",
    "expand",
    "expand_all",
    "generate_occurrences",
    "is_known_frequency",
    "iter_periods",
    "normalize_balance",
    "opening_balances",
    "period_label",
    "project_series",
    "unknown_account_label",
]

"""
Calendar Helpers

Frequency stepping and period partitioning shared by the recurrence
expander and the ledger aggregator.

MONTH-END POLICY: month and year steps are always computed from the
rule's start date (start + n * step), never from the previous occurrence.
relativedelta clamps to the last valid day of the target month, so a rule
starting on Jan 31 lands on Feb 28 (or 29), Mar 31, Apr 30, ... and a
rule starting on Feb 29 lands on Feb 28 in non-leap years. The day of
month never drifts.
"""

from datetime import date
from typing import Iterator, Optional

from dateutil.relativedelta import relativedelta

from budget_forecast.models.ledger import Frequency, Granularity


FREQUENCY_STEPS: dict[str, relativedelta] = {
    Frequency.DAILY.value: relativedelta(days=1),
    Frequency.WEEKLY.value: relativedelta(days=7),
    Frequency.BIWEEKLY.value: relativedelta(days=14),
    Frequency.MONTHLY.value: relativedelta(months=1),
    Frequency.BIMONTHLY.value: relativedelta(months=2),
    Frequency.ANNUALLY.value: relativedelta(years=1),
}


def is_known_frequency(frequency: str) -> bool:
    return frequency == Frequency.ONCE.value or frequency in FREQUENCY_STEPS


def step_for(frequency: str) -> Optional[relativedelta]:
    """Calendar increment for a repeating frequency, None otherwise."""
    return FREQUENCY_STEPS.get(frequency)


def nth_step(anchor: date, step: relativedelta, n: int) -> date:
    """The n-th step after anchor (n=0 is the anchor itself)."""
    return anchor + step * n


def month_start(d: date) -> date:
    return d.replace(day=1)


def month_end(d: date) -> date:
    # day=31 is absolute in relativedelta and clamps to the month's last day
    return d + relativedelta(day=31)


def period_bounds(d: date, granularity: Granularity) -> tuple[date, date]:
    """Unclipped calendar period containing d."""
    if granularity == Granularity.ANNUAL:
        return date(d.year, 1, 1), date(d.year, 12, 31)
    return month_start(d), month_end(d)


def iter_periods(
    window_start: date,
    window_end: date,
    granularity: Granularity,
) -> Iterator[tuple[date, date]]:
    """
    Contiguous calendar periods covering [window_start, window_end].

    The first period starts at window_start and the last one ends at
    window_end; everything in between is a full month or year.
    """
    granularity = Granularity(granularity)
    cursor = window_start
    while cursor <= window_end:
        _, end = period_bounds(cursor, granularity)
        end = min(end, window_end)
        yield cursor, end
        cursor = end + relativedelta(days=1)


def period_label(period_start: date, granularity: Granularity) -> str:
    """'January 2025' for months, '2025' for years."""
    if Granularity(granularity) == Granularity.ANNUAL:
        return str(period_start.year)
    return period_start.strftime("%B %Y")

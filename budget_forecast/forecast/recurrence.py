"""
Recurrence Expander

Turns one recurring transaction rule plus a date window into the dated
occurrences that fall inside the window.

Expansion is lazy and pure. Steps that fall before the window are
walked but not emitted, so later occurrences land on the right calendar
date.
"""

from datetime import date
from typing import Iterable, Iterator

from budget_forecast.forecast.periods import nth_step, step_for
from budget_forecast.models.ledger import Frequency, Occurrence, RecurringTransaction


def _occurrence(rule: RecurringTransaction, on: date) -> Occurrence:
    return Occurrence(
        date=on,
        amount=rule.amount,
        type=rule.type,
        account_id=rule.account_id,
        category=rule.category,
        base_id=rule.id,
    )


def expand(
    rule: RecurringTransaction,
    window_start: date,
    window_end: date,
) -> Iterator[Occurrence]:
    """
    Yield the occurrences of a rule within [window_start, window_end].

    - No start date: nothing.
    - The rule's end date (if any) further limits the window end.
    - Once: a single occurrence on the start date, if it is in range.
    - Unknown frequency: like Once. The start date is yielded if in range,
      then expansion stops.
    """
    start = rule.start_date
    if start is None:
        return

    effective_end = min(rule.end_date or window_end, window_end)

    if rule.frequency == Frequency.ONCE.value:
        if window_start <= start <= effective_end:
            yield _occurrence(rule, start)
        return

    step = step_for(rule.frequency)
    if step is None:
        if window_start <= start <= effective_end:
            yield _occurrence(rule, start)
        return

    n = 0
    cursor = start
    while cursor <= effective_end:
        if cursor >= window_start:
            yield _occurrence(rule, cursor)
        n += 1
        cursor = nth_step(start, step, n)


def generate_occurrences(
    rule: RecurringTransaction,
    window_start: date,
    window_end: date,
) -> list[Occurrence]:
    """Eager version of expand()."""
    return list(expand(rule, window_start, window_end))


def expand_all(
    rules: Iterable[RecurringTransaction],
    window_start: date,
    window_end: date,
) -> Iterator[Occurrence]:
    """Occurrences of every rule, rule by rule, in input order (unsorted)."""
    for rule in rules:
        yield from expand(rule, window_start, window_end)

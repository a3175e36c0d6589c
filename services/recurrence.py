"""
services/recurrence.py
----------------------
The recurrence engine: the one place that knows how far apart two
occurrences of a template are.

Everything here is pure. Bill generation, income generation and the
on-demand "check recurring" pass all call ``compute_occurrences`` and
never do interval math of their own.
"""

from datetime import date, datetime, timedelta
from typing import Union

from dateutil.relativedelta import relativedelta

from models.recurring import Frequency, RecurringTemplate

MAX_ITERATIONS = 10_000

_DAY_STEPS = {
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
}

_MONTH_STEPS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.BIANNUAL: 6,
    Frequency.ANNUAL: 12,
}


def interval_for(frequency: Frequency) -> Union[timedelta, relativedelta, None]:
    """Return the step for ``frequency``; None for ONE_TIME."""
    frequency = Frequency(frequency)
    if frequency in _DAY_STEPS:
        return timedelta(days=_DAY_STEPS[frequency])
    if frequency in _MONTH_STEPS:
        return relativedelta(months=_MONTH_STEPS[frequency])
    return None


def next_occurrence(previous: date, frequency: Frequency, anchor_day: int) -> date | None:
    """
    Advance ``previous`` by one interval.

    Month-based steps land on ``anchor_day``, clamped to the last day of
    the target month: anchored on the 31st, Jan 31 -> Feb 29 (2024) -> Mar 31.

    Returns:
        The next date, or None for ONE_TIME.
    """
    frequency = Frequency(frequency)
    if frequency in _DAY_STEPS:
        return previous + timedelta(days=_DAY_STEPS[frequency])
    if frequency in _MONTH_STEPS:
        # relativedelta clamps an absolute day= to the month's length
        return previous + relativedelta(months=_MONTH_STEPS[frequency], day=anchor_day)
    return None


def compute_occurrences(
    template: RecurringTemplate,
    horizon_end: date,
    after_date: date | None = None,
    max_iterations: int = MAX_ITERATIONS,
) -> list[date]:
    """
    Project a template into the due dates that follow ``after_date``.

    Args:
        template: Source of frequency and anchor (start_date).
        horizon_end: Exclusive upper bound for generated dates.
        after_date: Latest already-generated due date; the anchor when None.
            The date itself is never part of the result.
        max_iterations: Guard against a step that does not advance.

    Returns:
        Strictly increasing dates, each one interval after the previous,
        all ``>= template.start_date`` and ``< horizon_end``. Empty for ONE_TIME.
    """
    anchor = template.start_date
    current = max(after_date, anchor) if after_date else anchor
    occurrences: list[date] = []

    for _ in range(max_iterations):
        nxt = next_occurrence(current, template.frequency, anchor.day)
        if nxt is None or nxt <= current or nxt >= horizon_end:
            break
        occurrences.append(nxt)
        current = nxt

    return occurrences


def horizon_from(today: date | datetime, months: int = 12) -> date:
    """The generation horizon: ``months`` calendar months after today."""
    if isinstance(today, datetime):
        today = today.date()
    return today + relativedelta(months=months)

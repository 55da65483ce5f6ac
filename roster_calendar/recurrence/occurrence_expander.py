"""Expansion of recurrence rules into concrete occurrence dates."""

import logging
from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from ..models import RecurrenceFrequency, RecurrenceRule, Weekday

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100


def _week_starts_after(cursor: date, window_end: date) -> bool:
    """Whether the Sunday-start week of ``cursor`` begins after ``window_end``."""
    return (cursor - window_end).days > Weekday.of(cursor)


def _period_date(rule: RecurrenceRule, anchor: date, period: int) -> date:
    """Cursor date of the ``period``-th interval-sized step from the anchor."""
    steps = period * rule.interval
    if rule.frequency == RecurrenceFrequency.DAILY:
        return anchor + timedelta(days=steps)
    if rule.frequency == RecurrenceFrequency.WEEKLY:
        return anchor + timedelta(weeks=steps)
    # Always offset from the anchor so a 31st clamps per month without drifting
    return anchor + relativedelta(months=steps)


def _first_period(rule: RecurrenceRule, anchor: date, window_start: date) -> int:
    """Number of whole interval-sized periods that can be skipped before the window.

    Rounds down so the resulting cursor never lands after ``window_start``.
    """
    if anchor >= window_start:
        return 0
    if rule.frequency == RecurrenceFrequency.DAILY:
        units = (window_start - anchor).days
    elif rule.frequency == RecurrenceFrequency.WEEKLY:
        units = (window_start - anchor).days // 7
    else:
        units = (window_start.year - anchor.year) * 12 + (window_start.month - anchor.month)
    return max(0, units // rule.interval)


def _week_candidates(cursor: date, by_day: frozenset[Weekday]) -> list[date]:
    """BYDAY dates in the Sunday-start week of ``cursor``.

    Days falling outside the representable date range are left out.
    """
    offset = Weekday.of(cursor)
    candidates = []
    for day in sorted(by_day):
        try:
            candidates.append(cursor + timedelta(days=int(day) - offset))
        except OverflowError:
            continue
    return candidates


def expand_occurrences(
    rule: Optional[RecurrenceRule],
    anchor: date,
    window_start: date,
    window_end: date,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> list[date]:
    """Expand a rule into the occurrence dates inside an inclusive window.

    Args:
        rule: Parsed rule; None (an invalid rule) yields no occurrences
        anchor: First date from which occurrences are computed
        window_start: First date of the window (inclusive)
        window_end: Last date of the window (inclusive)
        max_iterations: Hard cap on the number of period steps

    Returns:
        Ascending, duplicate-free dates ``d`` with
        ``max(anchor, window_start) <= d <= window_end``
    """
    if rule is None or window_end < window_start:
        return []

    lower = max(anchor, window_start)
    weekly_by_day = rule.frequency == RecurrenceFrequency.WEEKLY and rule.by_day is not None

    occurrences: set[date] = set()
    period = _first_period(rule, anchor, window_start)
    iterations = 0

    while iterations < max_iterations:
        try:
            cursor = _period_date(rule, anchor, period)
        except (OverflowError, ValueError):
            # stepped past date.max
            break
        if weekly_by_day:
            # The whole Sunday-start week of the cursor is in play
            if _week_starts_after(cursor, window_end):
                break
            candidates = _week_candidates(cursor, rule.by_day or frozenset())
        else:
            if cursor > window_end:
                break
            candidates = [cursor]

        for candidate in candidates:
            if lower <= candidate <= window_end:
                occurrences.add(candidate)

        period += 1
        iterations += 1
    else:
        logger.debug(
            "Expansion stopped at %d iterations (rule=%s, anchor=%s, window=%s..%s)",
            max_iterations,
            rule.frequency.value,
            anchor,
            window_start,
            window_end,
        )

    return sorted(occurrences)

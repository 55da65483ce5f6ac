"""Day-of-week expansion of work schedules with override and leave exclusion."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import NamedTuple, Optional

from ..models import (
    InstanceKey,
    LeaveRequest,
    OneOffSchedule,
    ScheduleOverride,
    Weekday,
    WeeklySchedule,
)
from .effective_time import resolve_effective_times, schedule_defaults, schedule_override

logger = logging.getLogger(__name__)


class LeaveDay(NamedTuple):
    user_id: str
    day: date


@dataclass(frozen=True)
class ScheduleOccurrence:
    """One concrete shift produced from a weekly or one-off schedule."""

    schedule_id: str
    user_id: str
    occurrence_date: date
    start: datetime
    end: datetime
    override: Optional[ScheduleOverride] = None
    is_one_off: bool = False


def _leave_dates(request: LeaveRequest) -> Iterable[date]:
    if request.uses_selected_dates:
        return request.selected_dates or []
    if request.start_date is None or request.end_date is None:
        return []
    span = (request.end_date - request.start_date).days
    return (request.start_date + timedelta(days=offset) for offset in range(span + 1))


def build_leave_days(requests: Iterable[LeaveRequest]) -> set[LeaveDay]:
    """Collect (user, date) pairs covered by approved leave."""
    leave_days: set[LeaveDay] = set()
    for request in requests:
        if not request.is_approved:
            continue
        leave_days.update(LeaveDay(request.user_id, day) for day in _leave_dates(request))
    return leave_days


def index_schedule_overrides(
    overrides: Iterable[ScheduleOverride],
) -> dict[InstanceKey, ScheduleOverride]:
    return {override.key: override for override in overrides}


def _matching_dates(day_of_week: int, window_start: date, window_end: date) -> Iterable[date]:
    offset = (day_of_week - Weekday.of(window_start)) % 7
    if (window_end - window_start).days < offset:
        return
    current = window_start + timedelta(days=offset)
    while True:
        yield current
        # only step when the next week is still inside the window
        if (window_end - current).days < 7:
            return
        current += timedelta(weeks=1)


def expand_weekly_schedule(
    schedule: WeeklySchedule,
    window_start: date,
    window_end: date,
    overrides: Mapping[InstanceKey, ScheduleOverride],
    leave_days: set[LeaveDay],
) -> list[ScheduleOccurrence]:
    """Expand a weekly schedule over an inclusive window.

    Dates on approved leave are dropped first, then cancelled overrides;
    remaining dates take override times where set, else schedule defaults.
    """
    if not schedule.is_active:
        return []

    defaults = schedule_defaults(schedule)
    occurrences: list[ScheduleOccurrence] = []

    for day in _matching_dates(schedule.day_of_week, window_start, window_end):
        if LeaveDay(schedule.user_id, day) in leave_days:
            logger.debug("Schedule %s suppressed on %s by leave", schedule.id, day)
            continue

        override = overrides.get(InstanceKey(schedule.id, day))
        if override is not None and override.is_cancelled:
            continue

        times = resolve_effective_times(defaults, schedule_override(override), day)
        occurrences.append(
            ScheduleOccurrence(
                schedule_id=schedule.id,
                user_id=schedule.user_id,
                occurrence_date=day,
                start=times.start,
                end=times.end,
                override=override,
            )
        )

    return occurrences


def expand_one_off_schedule(
    schedule: OneOffSchedule,
    window_start: date,
    window_end: date,
    leave_days: set[LeaveDay],
) -> Optional[ScheduleOccurrence]:
    """Return the single occurrence of a one-off schedule, or None."""
    day = schedule.schedule_date
    if not window_start <= day <= window_end:
        return None
    if LeaveDay(schedule.user_id, day) in leave_days:
        logger.debug("One-off schedule %s suppressed on %s by leave", schedule.id, day)
        return None

    times = resolve_effective_times(schedule_defaults(schedule), None, day)
    return ScheduleOccurrence(
        schedule_id=schedule.id,
        user_id=schedule.user_id,
        occurrence_date=day,
        start=times.start,
        end=times.end,
        is_one_off=True,
    )

"""Effective time resolution shared by task and schedule expansion.

Every instance's start/end comes from one place: the definition's defaults,
replaced by an instance override where one applies.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from ..core.config_manager import EngineConfig
from ..models import OneOffSchedule, ScheduleOverride, TaskDefinition, TimeOverride, WeeklySchedule


@dataclass(frozen=True)
class TimeDefaults:
    """Definition-level timing before any override."""

    start: Optional[time]
    end: Optional[time]
    all_day: bool = False


@dataclass(frozen=True)
class TimeOverrideValues:
    """Instance-level replacement times; ``start``/``end`` are used only as a pair."""

    single: Optional[time] = None
    start: Optional[time] = None
    end: Optional[time] = None
    use_pair: bool = False


@dataclass(frozen=True)
class EffectiveTimes:
    start: datetime
    end: datetime
    all_day: bool
    overridden: bool


def task_defaults(task: TaskDefinition, config: Optional[EngineConfig] = None) -> TimeDefaults:
    """Default times of a task definition.

    All-day tasks have no clock time; activities use their start/end when
    both are set; everything else uses the due time, falling back to the
    configured 09:00 start and 10:00 end.
    """
    if task.is_all_day:
        return TimeDefaults(start=None, end=None, all_day=True)
    if task.is_activity and task.start_time is not None and task.end_time is not None:
        return TimeDefaults(start=task.start_time, end=task.end_time)
    config = config or EngineConfig()
    return TimeDefaults(
        start=task.due_time or config.default_due,
        end=task.due_time or config.default_end,
    )


def task_override(task: TaskDefinition, override: Optional[TimeOverride]) -> Optional[TimeOverrideValues]:
    """Override values applicable to a task instance, or None."""
    if override is None:
        return None
    if (
        task.is_activity
        and override.override_start_time is not None
        and override.override_end_time is not None
    ):
        return TimeOverrideValues(
            start=override.override_start_time, end=override.override_end_time, use_pair=True
        )
    if override.override_time is not None:
        return TimeOverrideValues(single=override.override_time)
    return None


def schedule_defaults(schedule: Union[WeeklySchedule, OneOffSchedule]) -> TimeDefaults:
    return TimeDefaults(start=schedule.start_time, end=schedule.end_time)


def schedule_override(override: Optional[ScheduleOverride]) -> Optional[TimeOverrideValues]:
    """Schedule overrides replace start and end independently."""
    if override is None or (override.start_time is None and override.end_time is None):
        return None
    return TimeOverrideValues(start=override.start_time, end=override.end_time, use_pair=True)


def roll_to_next_day(moment: datetime) -> datetime:
    """``moment`` one day later, pinned to ``datetime.max`` at the top of the range."""
    try:
        return moment + timedelta(days=1)
    except OverflowError:
        return datetime.max


def resolve_effective_times(
    defaults: TimeDefaults,
    override: Optional[TimeOverrideValues],
    on_date: date,
) -> EffectiveTimes:
    """Combine defaults and an optional override into concrete datetimes for one date.

    All-day definitions ignore overrides and span midnight to midnight of
    ``on_date`` (start == end). An end before the start rolls to the next day.
    """
    if defaults.all_day:
        midnight = datetime.combine(on_date, time.min)
        return EffectiveTimes(start=midnight, end=midnight, all_day=True, overridden=False)

    start_time = defaults.start or time.min
    end_time = defaults.end or start_time
    overridden = False

    if override is not None:
        if override.single is not None:
            start_time = end_time = override.single
            overridden = True
        elif override.use_pair:
            start_time = override.start or start_time
            end_time = override.end or end_time
            overridden = override.start is not None or override.end is not None

    start = datetime.combine(on_date, start_time)
    end = datetime.combine(on_date, end_time)
    if end < start:
        end = roll_to_next_day(end)
    return EffectiveTimes(start=start, end=end, all_day=False, overridden=overridden)

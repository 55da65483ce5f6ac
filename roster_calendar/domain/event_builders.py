"""Construction of CalendarEvent instances for each event source.

Each builder is pure: it takes already-loaded records plus the window and
returns the events that source contributes. Task and schedule builders run
the expansion, exception and visibility stages; leave, log and important
date builders map records directly.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from dateutil.relativedelta import relativedelta

from ..core.config_manager import EngineConfig
from ..models import (
    CalendarEvent,
    ChildLog,
    EventSourceType,
    ImportantDate,
    ImportantDatePayload,
    InstanceKey,
    LeavePayload,
    LeaveRequest,
    LeaveType,
    LogCategory,
    LogPayload,
    OneOffSchedule,
    ScheduleOverride,
    SchedulePayload,
    TaskDefinition,
    TaskPayload,
    TaskStatus,
    WeeklySchedule,
)
from ..recurrence.occurrence_expander import expand_occurrences
from ..recurrence.rule_parser import parse_rule
from .effective_time import resolve_effective_times, roll_to_next_day, task_defaults
from .exception_resolver import ExceptionTables, resolve_instances
from .schedule_expander import (
    LeaveDay,
    ScheduleOccurrence,
    expand_one_off_schedule,
    expand_weekly_schedule,
)
from .visibility import Visibility, VisibilityFilter

logger = logging.getLogger(__name__)

DEFAULT_TASK_COLOR = "#60a5fa"
HOLIDAY_COLOR = "#fbbf24"
VACATION_COLOR = "#67e8f9"
SICK_COLOR = "#fca5a5"
IMPORTANT_DATE_COLOR = "#f9a8d4"
SCHEDULE_COLOR = "#94a3b8"

LOG_COLORS: dict[LogCategory, str] = {
    LogCategory.SLEEP: "#c4b5fd",
    LogCategory.FOOD: "#fdba74",
    LogCategory.POOP: "#d6d3d1",
    LogCategory.SHOWER: "#6ee7b7",
}

LOG_EMOJIS: dict[LogCategory, str] = {
    LogCategory.SLEEP: "\U0001f4a4",
    LogCategory.FOOD: "\U0001f37d\ufe0f",
    LogCategory.POOP: "\U0001f4a9",
    LogCategory.SHOWER: "\U0001f6bf",
}

IMPORTANT_DATE_EMOJI = "\U0001f382"
FALLBACK_NAME = "Employee"


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min)


# Tasks


def _task_payload(
    task: TaskDefinition,
    visibility: Visibility,
    status: Optional[TaskStatus] = None,
    **fields: Any,
) -> TaskPayload:
    return TaskPayload(
        task_id=task.id,
        status=status or task.status,
        priority=task.priority,
        category=task.category.name if task.category else None,
        is_activity=task.is_activity,
        is_view_only=visibility == Visibility.VIEW_ONLY,
        assignees=[label for label in (a.label for a in task.assignments) if label],
        **fields,
    )


def _task_color(task: TaskDefinition) -> str:
    if task.category and task.category.color:
        return task.category.color
    return DEFAULT_TASK_COLOR


def _recurring_task_events(
    task: TaskDefinition,
    visibility: Visibility,
    window_start: date,
    window_end: date,
    tables: ExceptionTables,
    config: EngineConfig,
) -> list[CalendarEvent]:
    rule = parse_rule(task.recurrence_rule)
    if rule is None:
        logger.debug("Task %s has malformed rule %r; excluded", task.id, task.recurrence_rule)
        return []

    dates = expand_occurrences(
        rule,
        task.due_date,
        window_start,
        window_end,
        max_iterations=config.max_expansion_iterations,
    )

    events = []
    for instance in resolve_instances(task, dates, tables, config):
        day = instance.occurrence_date
        events.append(
            CalendarEvent(
                id=f"task-{task.id}-{day.isoformat()}",
                source_type=EventSourceType.TASK,
                title=task.title,
                start=instance.start,
                end=instance.end,
                all_day=instance.all_day,
                color=_task_color(task),
                resource_id=task.id,
                payload=_task_payload(
                    task,
                    visibility,
                    status=instance.status,
                    is_recurring=True,
                    instance_date=day,
                    has_time_override=instance.has_time_override,
                    original_due_time=task.due_time,
                    original_start_time=task.start_time,
                    original_end_time=task.end_time,
                ),
            )
        )
    return events


def _one_off_task_event(
    task: TaskDefinition,
    visibility: Visibility,
    window_start: date,
    window_end: date,
    config: EngineConfig,
) -> Optional[CalendarEvent]:
    if not window_start <= task.due_date <= window_end:
        return None
    times = resolve_effective_times(task_defaults(task, config), None, task.due_date)
    return CalendarEvent(
        id=f"task-{task.id}",
        source_type=EventSourceType.TASK,
        title=task.title,
        start=times.start,
        end=times.end,
        all_day=times.all_day,
        color=_task_color(task),
        resource_id=task.id,
        payload=_task_payload(task, visibility),
    )


def build_task_events(
    tasks: Iterable[TaskDefinition],
    window_start: date,
    window_end: date,
    tables: ExceptionTables,
    visibility_filter: VisibilityFilter,
    config: Optional[EngineConfig] = None,
) -> list[CalendarEvent]:
    """Expand, resolve and filter every task definition into events.

    A definition that fails to build is logged and left out; the other
    definitions are unaffected.
    """
    config = config or EngineConfig()
    events: list[CalendarEvent] = []

    for task in tasks:
        visibility = visibility_filter.evaluate(task.assignments, task.viewers)
        if not visibility.is_visible:
            continue
        try:
            if task.is_recurring_series:
                events.extend(
                    _recurring_task_events(task, visibility, window_start, window_end, tables, config)
                )
            else:
                event = _one_off_task_event(task, visibility, window_start, window_end, config)
                if event is not None:
                    events.append(event)
        except (ValueError, OverflowError):
            logger.warning("Failed to build events for task %s; excluded", task.id, exc_info=True)

    return events


# Leave


def _leave_style(request: LeaveRequest) -> tuple[str, str]:
    """Return (title suffix, color) for a leave request."""
    if request.is_holiday:
        return request.holiday_name or "Holiday", HOLIDAY_COLOR
    if request.leave_type == LeaveType.VACATION:
        return "Vacation", VACATION_COLOR
    return "Sick", SICK_COLOR


def _consecutive_runs(days: Iterable[date]) -> list[tuple[date, date]]:
    """Group dates into (first, last) runs of consecutive days."""
    runs: list[tuple[date, date]] = []
    for day in sorted(set(days)):
        if runs and runs[-1][1] + timedelta(days=1) == day:
            runs[-1] = (runs[-1][0], day)
        else:
            runs.append((day, day))
    return runs


def build_leave_events(
    requests: Iterable[LeaveRequest],
    window_start: date,
    window_end: date,
    viewer_id: Optional[str] = None,
) -> list[CalendarEvent]:
    """All-day events for approved leave overlapping the window.

    End datetimes are exclusive (the day after the last day of leave).
    """
    events: list[CalendarEvent] = []

    for request in requests:
        if not request.is_approved:
            continue
        if viewer_id is not None and request.user_id != viewer_id:
            continue

        suffix, color = _leave_style(request)
        payload = LeavePayload(
            leave_id=request.id,
            leave_type=LeaveType.HOLIDAY if request.is_holiday else request.leave_type,
            user_id=request.user_id,
            user_name=request.user_name,
            total_days=request.total_days,
            is_holiday=request.is_holiday,
            holiday_name=request.holiday_name,
        )
        title = f"{request.user_name or FALLBACK_NAME} - {suffix}"

        if request.uses_selected_dates:
            spans = [
                (f"leave-{request.id}-{first.isoformat()}", first, last)
                for first, last in _consecutive_runs(request.selected_dates or [])
            ]
        elif request.start_date is not None and request.end_date is not None:
            spans = [(f"leave-{request.id}", request.start_date, request.end_date)]
        else:
            spans = []

        for event_id, first, last in spans:
            if last < window_start or first > window_end:
                continue
            events.append(
                CalendarEvent(
                    id=event_id,
                    source_type=EventSourceType.LEAVE,
                    title=title,
                    start=_midnight(first),
                    end=roll_to_next_day(_midnight(last)),
                    all_day=True,
                    color=color,
                    resource_id=request.id,
                    payload=payload,
                )
            )

    return events


# Logs


def build_log_events(
    logs: Iterable[ChildLog],
    window_start: date,
    window_end: date,
    categories: set[LogCategory],
) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []

    for log in logs:
        if log.category not in categories:
            continue
        if not window_start <= log.log_date <= window_end:
            continue

        start = end = datetime.combine(log.log_date, log.log_time)
        if log.category == LogCategory.SLEEP and log.start_time and log.end_time:
            start = datetime.combine(log.log_date, log.start_time)
            end = datetime.combine(log.log_date, log.end_time)
            if end < start:
                # overnight sleep
                end = roll_to_next_day(end)

        events.append(
            CalendarEvent(
                id=f"log-{log.id}",
                source_type=EventSourceType.LOG,
                title=f"{LOG_EMOJIS[log.category]} {log.child} - {log.category.value.capitalize()}",
                start=start,
                end=end,
                color=LOG_COLORS[log.category],
                resource_id=log.id,
                payload=LogPayload(
                    log_id=log.id,
                    log_category=log.category,
                    child=log.child,
                    description=log.description,
                    logged_by=log.logged_by,
                    start_time=log.start_time,
                    end_time=log.end_time,
                ),
            )
        )

    return events


# Important dates


def important_date_in_year(stored: date, year: int) -> date:
    """Anniversary of ``stored`` in ``year``.

    Feb 29 falls on Feb 28 in common years so the date stays in its own
    month; this intentionally differs from rolling over to Mar 1.
    """
    return stored + relativedelta(year=year)


def build_important_date_events(
    records: Iterable[ImportantDate],
    window_start: date,
    window_end: date,
) -> list[CalendarEvent]:
    """Yearly all-day events for every year the window touches."""
    events: list[CalendarEvent] = []

    for record in records:
        for year in range(window_start.year, window_end.year + 1):
            day = important_date_in_year(record.date, year)
            if not window_start <= day <= window_end:
                continue
            events.append(
                CalendarEvent(
                    id=f"important-{record.user_id}-{record.date.isoformat()}-{year}",
                    source_type=EventSourceType.IMPORTANT_DATE,
                    title=f"{IMPORTANT_DATE_EMOJI} {record.label} ({record.user_name})",
                    start=_midnight(day),
                    end=_midnight(day),
                    all_day=True,
                    color=IMPORTANT_DATE_COLOR,
                    resource_id=record.user_id,
                    payload=ImportantDatePayload(
                        label=record.label,
                        employee_id=record.user_id,
                        employee_name=record.user_name,
                        original_date=record.date,
                    ),
                )
            )

    return events


# Schedules


def _schedule_event(
    occurrence: ScheduleOccurrence,
    user_name: Optional[str],
    avatar_url: Optional[str],
    weekly: Optional[WeeklySchedule] = None,
) -> CalendarEvent:
    day = occurrence.occurrence_date
    if occurrence.is_one_off:
        event_id = f"one-off-schedule-{occurrence.schedule_id}"
    else:
        event_id = f"schedule-{occurrence.schedule_id}-{day.isoformat()}"

    override = occurrence.override
    return CalendarEvent(
        id=event_id,
        source_type=EventSourceType.SCHEDULE,
        title=user_name or FALLBACK_NAME,
        start=occurrence.start,
        end=occurrence.end,
        color=SCHEDULE_COLOR,
        resource_id=occurrence.schedule_id,
        payload=SchedulePayload(
            schedule_id=occurrence.schedule_id,
            schedule_date=day,
            user_id=occurrence.user_id,
            user_name=user_name,
            avatar_url=avatar_url,
            is_one_off=occurrence.is_one_off,
            day_of_week=weekly.day_of_week if weekly else None,
            original_start_time=weekly.start_time if weekly else None,
            original_end_time=weekly.end_time if weekly else None,
            has_override=override is not None,
            override_notes=override.notes if override else None,
        ),
    )


def build_schedule_events(
    weekly_schedules: Iterable[WeeklySchedule],
    one_off_schedules: Iterable[OneOffSchedule],
    overrides: Mapping[InstanceKey, ScheduleOverride],
    leave_days: set[LeaveDay],
    window_start: date,
    window_end: date,
    visibility_filter: VisibilityFilter,
) -> list[CalendarEvent]:
    """Weekly and one-off schedule events visible to the filter's viewer.

    A weekly schedule that fails to expand is logged and left out; the
    other schedules are unaffected.
    """
    events: list[CalendarEvent] = []

    for schedule in weekly_schedules:
        if not visibility_filter.owns(schedule.user_id).is_visible:
            continue
        try:
            occurrences = expand_weekly_schedule(schedule, window_start, window_end, overrides, leave_days)
        except (ValueError, OverflowError):
            logger.warning("Failed to expand schedule %s; excluded", schedule.id, exc_info=True)
            continue
        events.extend(
            _schedule_event(occurrence, schedule.user_name, schedule.avatar_url, schedule)
            for occurrence in occurrences
        )

    for one_off in one_off_schedules:
        if not visibility_filter.owns(one_off.user_id).is_visible:
            continue
        occurrence = expand_one_off_schedule(one_off, window_start, window_end, leave_days)
        if occurrence is not None:
            events.append(_schedule_event(occurrence, one_off.user_name, one_off.avatar_url))

    return events

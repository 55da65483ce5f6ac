"""Data-access boundary for the aggregation engine.

The engine never talks to storage itself; it awaits a CalendarDataSource
for each record category. SnapshotDataSource serves an in-memory
CalendarSnapshot, typically loaded from a JSON document.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Protocol, Union, runtime_checkable

from pydantic import ValidationError

from .exceptions import SnapshotLoadError
from .models import (
    CalendarSnapshot,
    ChildLog,
    CompletionRecord,
    ImportantDate,
    LeaveRequest,
    LogCategory,
    OneOffSchedule,
    ScheduleOverride,
    SkippedInstance,
    TaskDefinition,
    TimeOverride,
    WeeklySchedule,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class CalendarDataSource(Protocol):
    """Async reads of every record category the engine consumes.

    Implementations may return supersets of what the window needs; the
    engine applies its own window filtering.
    """

    async def fetch_tasks(self, window_start: date, window_end: date) -> list[TaskDefinition]: ...

    async def fetch_task_exceptions(
        self, window_start: date, window_end: date
    ) -> tuple[list[SkippedInstance], list[CompletionRecord], list[TimeOverride]]: ...

    async def fetch_leave_requests(self, window_start: date, window_end: date) -> list[LeaveRequest]: ...

    async def fetch_logs(
        self, window_start: date, window_end: date, categories: set[LogCategory]
    ) -> list[ChildLog]: ...

    async def fetch_important_dates(self) -> list[ImportantDate]: ...

    async def fetch_weekly_schedules(self) -> list[WeeklySchedule]: ...

    async def fetch_schedule_overrides(
        self, window_start: date, window_end: date
    ) -> list[ScheduleOverride]: ...

    async def fetch_one_off_schedules(self, window_start: date, window_end: date) -> list[OneOffSchedule]: ...


def _in_window(day: date, window_start: date, window_end: date) -> bool:
    return window_start <= day <= window_end


class SnapshotDataSource:
    """CalendarDataSource backed by one immutable CalendarSnapshot."""

    def __init__(self, snapshot: CalendarSnapshot):
        self.snapshot = snapshot

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SnapshotDataSource":
        """Load a snapshot JSON document.

        Raises:
            SnapshotLoadError: If the file cannot be read or does not validate
        """
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SnapshotLoadError(f"Cannot read snapshot {path}: {e}", path=str(path)) from e
        try:
            snapshot = CalendarSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise SnapshotLoadError(
                f"Invalid snapshot {path}: {e.error_count()} validation error(s)\n{e}",
                path=str(path),
            ) from e
        logger.debug(
            "Loaded snapshot %s: %d tasks, %d leave requests, %d schedules",
            path,
            len(snapshot.tasks),
            len(snapshot.leave_requests),
            len(snapshot.weekly_schedules),
        )
        return cls(snapshot)

    async def fetch_tasks(self, window_start: date, window_end: date) -> list[TaskDefinition]:
        # Recurring definitions anchored before the window still produce occurrences
        return [
            task
            for task in self.snapshot.tasks
            if task.due_date <= window_end
            and (task.is_recurring_series or task.due_date >= window_start)
        ]

    async def fetch_task_exceptions(
        self, window_start: date, window_end: date
    ) -> tuple[list[SkippedInstance], list[CompletionRecord], list[TimeOverride]]:
        snapshot = self.snapshot
        return (
            [r for r in snapshot.skipped_instances if _in_window(r.skipped_date, window_start, window_end)],
            [r for r in snapshot.completions if _in_window(r.completion_date, window_start, window_end)],
            [r for r in snapshot.time_overrides if _in_window(r.instance_date, window_start, window_end)],
        )

    async def fetch_leave_requests(self, window_start: date, window_end: date) -> list[LeaveRequest]:
        return list(self.snapshot.leave_requests)

    async def fetch_logs(
        self, window_start: date, window_end: date, categories: set[LogCategory]
    ) -> list[ChildLog]:
        return [
            log
            for log in self.snapshot.child_logs
            if log.category in categories and _in_window(log.log_date, window_start, window_end)
        ]

    async def fetch_important_dates(self) -> list[ImportantDate]:
        return list(self.snapshot.important_dates)

    async def fetch_weekly_schedules(self) -> list[WeeklySchedule]:
        return [schedule for schedule in self.snapshot.weekly_schedules if schedule.is_active]

    async def fetch_schedule_overrides(
        self, window_start: date, window_end: date
    ) -> list[ScheduleOverride]:
        return [
            o
            for o in self.snapshot.schedule_overrides
            if _in_window(o.override_date, window_start, window_end)
        ]

    async def fetch_one_off_schedules(self, window_start: date, window_end: date) -> list[OneOffSchedule]:
        return [
            s
            for s in self.snapshot.one_off_schedules
            if _in_window(s.schedule_date, window_start, window_end)
        ]


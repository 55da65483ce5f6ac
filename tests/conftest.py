"""Shared fixtures for roster_calendar tests."""

import os
from collections.abc import Generator
from datetime import date, time
from typing import Any, Callable

import pytest

from roster_calendar.core import async_utils
from roster_calendar.models import (
    AssignmentTarget,
    AssignmentTargetType,
    CalendarSnapshot,
    ChildLog,
    CompletionRecord,
    ImportantDate,
    LeaveRequest,
    LeaveStatus,
    LogCategory,
    OneOffSchedule,
    ScheduleOverride,
    SkippedInstance,
    TaskCategory,
    TaskDefinition,
    TimeOverride,
    WeeklySchedule,
)


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: End-to-end aggregation scenarios")


@pytest.fixture(autouse=True)
def reset_global_orchestrator() -> Generator[None, Any, None]:
    """Give every test a fresh global AsyncOrchestrator."""
    yield
    async_utils.reset_global_orchestrator()


@pytest.fixture(autouse=True)
def clean_rostercal_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, Any, None]:
    """Strip ROSTERCAL_* variables so host settings cannot leak into tests."""
    for key in list(os.environ):
        if key.startswith("ROSTERCAL_"):
            monkeypatch.delenv(key, raising=False)
    yield
    # ConfigManager.load_env_file writes to os.environ directly
    for key in [key for key in os.environ if key.startswith("ROSTERCAL_")]:
        del os.environ[key]


@pytest.fixture
def make_task() -> Callable[..., TaskDefinition]:
    """Factory for task definitions assigned to everyone by default."""

    def _make(**overrides: Any) -> TaskDefinition:
        fields: dict[str, Any] = {
            "id": "t1",
            "title": "Water plants",
            "due_date": date(2024, 1, 1),
            "assignments": [AssignmentTarget(target_type=AssignmentTargetType.ALL)],
        }
        fields.update(overrides)
        return TaskDefinition(**fields)

    return _make


@pytest.fixture
def make_schedule() -> Callable[..., WeeklySchedule]:
    """Factory for a Monday 09:00-17:00 schedule owned by u1."""

    def _make(**overrides: Any) -> WeeklySchedule:
        fields: dict[str, Any] = {
            "id": "s1",
            "user_id": "u1",
            "user_name": "Ana Lima",
            "day_of_week": 1,
            "start_time": time(9, 0),
            "end_time": time(17, 0),
        }
        fields.update(overrides)
        return WeeklySchedule(**fields)

    return _make


@pytest.fixture
def make_leave() -> Callable[..., LeaveRequest]:
    """Factory for an approved one-day vacation of u1 on 2024-01-08."""

    def _make(**overrides: Any) -> LeaveRequest:
        fields: dict[str, Any] = {
            "id": "l1",
            "user_id": "u1",
            "user_name": "Ana Lima",
            "status": LeaveStatus.APPROVED,
            "leave_type": "vacation",
            "start_date": date(2024, 1, 8),
            "end_date": date(2024, 1, 8),
        }
        fields.update(overrides)
        return LeaveRequest(**fields)

    return _make


@pytest.fixture
def sample_snapshot() -> CalendarSnapshot:
    """One week (2024-01-01 Mon .. 2024-01-07 Sun) with every record category."""
    everyone = [AssignmentTarget(target_type=AssignmentTargetType.ALL)]
    return CalendarSnapshot(
        tasks=[
            TaskDefinition(
                id="daily",
                title="Feed the cat",
                due_date=date(2024, 1, 1),
                due_time=time(8, 0),
                is_recurring=True,
                recurrence_rule="FREQ=DAILY",
                category=TaskCategory(name="Pets", color="#22c55e"),
                assignments=everyone,
            ),
            TaskDefinition(
                id="mwf",
                title="Gym run",
                due_date=date(2024, 1, 1),
                is_activity=True,
                start_time=time(15, 0),
                end_time=time(16, 30),
                is_recurring=True,
                recurrence_rule="FREQ=WEEKLY;BYDAY=MO,WE,FR",
                assignments=[
                    AssignmentTarget(target_type=AssignmentTargetType.GROUP, group_id="g1", display_name="Drivers")
                ],
                viewers=[AssignmentTarget(target_type=AssignmentTargetType.USER, user_id="u2")],
            ),
            TaskDefinition(
                id="once",
                title="Buy groceries",
                due_date=date(2024, 1, 3),
                is_all_day=True,
                assignments=[
                    AssignmentTarget(target_type=AssignmentTargetType.USER, user_id="u1", display_name="Ana Lima")
                ],
            ),
            TaskDefinition(
                id="broken",
                title="Malformed",
                due_date=date(2024, 1, 1),
                is_recurring=True,
                recurrence_rule="INTERVAL=2",
                assignments=everyone,
            ),
        ],
        skipped_instances=[SkippedInstance(task_id="daily", skipped_date=date(2024, 1, 2))],
        completions=[CompletionRecord(task_id="daily", completion_date=date(2024, 1, 3))],
        time_overrides=[
            TimeOverride(task_id="daily", instance_date=date(2024, 1, 4), override_time=time(11, 15))
        ],
        leave_requests=[
            LeaveRequest(
                id="l1",
                user_id="u1",
                user_name="Ana Lima",
                status=LeaveStatus.APPROVED,
                leave_type="vacation",
                start_date=date(2024, 1, 5),
                end_date=date(2024, 1, 5),
            ),
            LeaveRequest(
                id="l2",
                user_id="u2",
                user_name="Ben Okafor",
                status=LeaveStatus.PENDING,
                leave_type="sick",
                start_date=date(2024, 1, 2),
                end_date=date(2024, 1, 2),
            ),
        ],
        child_logs=[
            ChildLog(
                id="log1",
                child="Mia",
                category=LogCategory.SLEEP,
                log_date=date(2024, 1, 2),
                log_time=time(13, 0),
                start_time=time(13, 0),
                end_time=time(14, 30),
            ),
            ChildLog(
                id="log2",
                child="Mia",
                category=LogCategory.FOOD,
                log_date=date(2024, 1, 2),
                log_time=time(12, 0),
            ),
        ],
        important_dates=[
            ImportantDate(user_id="u1", user_name="Ana Lima", label="Birthday", date=date(1990, 1, 6))
        ],
        weekly_schedules=[
            WeeklySchedule(
                id="s-mon",
                user_id="u1",
                user_name="Ana Lima",
                day_of_week=1,
                start_time=time(9, 0),
                end_time=time(17, 0),
            ),
            WeeklySchedule(
                id="s-fri",
                user_id="u1",
                user_name="Ana Lima",
                day_of_week=5,
                start_time=time(9, 0),
                end_time=time(13, 0),
            ),
            WeeklySchedule(
                id="s-tue",
                user_id="u2",
                user_name="Ben Okafor",
                day_of_week=2,
                start_time=time(10, 0),
                end_time=time(18, 0),
            ),
        ],
        schedule_overrides=[
            ScheduleOverride(schedule_id="s-tue", override_date=date(2024, 1, 2), start_time=time(12, 0), notes="late start")
        ],
        one_off_schedules=[
            OneOffSchedule(
                id="o1",
                user_id="u2",
                user_name="Ben Okafor",
                schedule_date=date(2024, 1, 6),
                start_time=time(8, 0),
                end_time=time(12, 0),
            )
        ],
    )

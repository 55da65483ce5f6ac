"""Unit tests for EventAggregator."""

import asyncio
import logging
from collections import Counter
from datetime import date, datetime, time

import pytest

from roster_calendar.aggregator import EventAggregator
from roster_calendar.core.async_utils import AsyncTimeoutError
from roster_calendar.core.config_manager import EngineConfig
from roster_calendar.exceptions import AggregationRequestError
from roster_calendar.models import (
    AggregationRequest,
    CalendarFilters,
    CalendarSnapshot,
    EventSourceType,
    Viewer,
)
from roster_calendar.sources import CalendarDataSource, SnapshotDataSource

pytestmark = pytest.mark.unit

WEEK_START = date(2024, 1, 1)
WEEK_END = date(2024, 1, 7)


def week_request(**kwargs):
    return AggregationRequest(window_start=WEEK_START, window_end=WEEK_END, **kwargs)


def count_by_type(events):
    return Counter(event.source_type for event in events)


class FailingLogsSource(SnapshotDataSource):
    async def fetch_logs(self, window_start, window_end, categories):
        raise RuntimeError("log store unavailable")


class SlowTasksSource(SnapshotDataSource):
    async def fetch_tasks(self, window_start, window_end):
        await asyncio.sleep(5)
        return []


class CancelledLogsSource(SnapshotDataSource):
    async def fetch_logs(self, window_start, window_end, categories):
        raise asyncio.CancelledError()


@pytest.fixture
def aggregator(sample_snapshot):
    return EventAggregator(SnapshotDataSource(sample_snapshot))


class TestAggregate:
    """Tests for EventAggregator.aggregate."""

    def test_snapshot_source_satisfies_protocol(self, sample_snapshot):
        assert isinstance(SnapshotDataSource(sample_snapshot), CalendarDataSource)

    @pytest.mark.asyncio
    async def test_admin_sees_every_source(self, aggregator):
        events = await aggregator.aggregate(week_request())
        assert count_by_type(events) == {
            EventSourceType.TASK: 10,
            EventSourceType.LEAVE: 1,
            EventSourceType.LOG: 2,
            EventSourceType.IMPORTANT_DATE: 1,
            EventSourceType.SCHEDULE: 3,
        }
        assert len({event.id for event in events}) == len(events) == 17

    @pytest.mark.asyncio
    async def test_exceptions_are_applied(self, aggregator):
        events = {event.id: event for event in await aggregator.aggregate(week_request())}
        assert "task-daily-2024-01-02" not in events
        assert events["task-daily-2024-01-03"].payload.status.value == "completed"
        assert events["task-daily-2024-01-04"].start.hour == 11
        assert events["task-daily-2024-01-04"].payload.has_time_override is True
        assert "schedule-s-fri-2024-01-05" not in events
        assert events["schedule-s-tue-2024-01-02"].start.hour == 12
        assert events["schedule-s-tue-2024-01-02"].payload.override_notes == "late start"

    @pytest.mark.asyncio
    async def test_employee_view(self, aggregator):
        viewer = Viewer(user_id="u1", group_ids=frozenset())
        events = await aggregator.aggregate(week_request(viewer=viewer))
        assert len(events) == 11
        counts = count_by_type(events)
        assert counts[EventSourceType.IMPORTANT_DATE] == 0
        assert counts[EventSourceType.TASK] == 7
        assert {e.resource_id for e in events if e.source_type == EventSourceType.SCHEDULE} == {"s-mon"}

    @pytest.mark.asyncio
    async def test_view_only_visibility(self, aggregator):
        viewer = Viewer(user_id="u2", group_ids=frozenset())
        events = await aggregator.aggregate(week_request(viewer=viewer))
        assert len(events) == 13
        gym = [e for e in events if e.resource_id == "mwf"]
        assert len(gym) == 3
        assert all(e.payload.is_view_only for e in gym)

    @pytest.mark.asyncio
    async def test_group_member_is_assigned(self, aggregator):
        viewer = Viewer(user_id="u3", group_ids=frozenset({"g1"}))
        events = await aggregator.aggregate(week_request(viewer=viewer))
        gym = [e for e in events if e.resource_id == "mwf"]
        assert len(gym) == 3
        assert not any(e.payload.is_view_only for e in gym)

    @pytest.mark.asyncio
    async def test_filters_disable_sources(self, aggregator):
        filters = CalendarFilters(show_tasks=False, show_sleep=False, show_schedules=False)
        events = await aggregator.aggregate(week_request(filters=filters))
        counts = count_by_type(events)
        assert counts[EventSourceType.TASK] == 0
        assert counts[EventSourceType.SCHEDULE] == 0
        assert counts[EventSourceType.LOG] == 1

    @pytest.mark.asyncio
    async def test_hidden_leave_still_suppresses_schedules(self, aggregator):
        events = await aggregator.aggregate(week_request(filters=CalendarFilters(show_leave=False)))
        ids = {event.id for event in events}
        assert "leave-l1" not in ids
        assert "schedule-s-fri-2024-01-05" not in ids

    @pytest.mark.asyncio
    async def test_repeated_calls_are_identical(self, aggregator):
        first = await aggregator.aggregate(week_request())
        second = await aggregator.aggregate(week_request())
        assert [e.model_dump() for e in first] == [e.model_dump() for e in second]

    @pytest.mark.asyncio
    async def test_missing_window_is_rejected(self, aggregator):
        with pytest.raises(AggregationRequestError):
            await aggregator.aggregate(AggregationRequest(window_start=WEEK_START))

    @pytest.mark.asyncio
    async def test_inverted_window_returns_nothing(self, aggregator, caplog):
        with caplog.at_level(logging.WARNING):
            events = await aggregator.aggregate(AggregationRequest(window_start=WEEK_END, window_end=WEEK_START))
        assert events == []
        assert "Inverted window" in caplog.text

    @pytest.mark.asyncio
    async def test_failing_source_is_isolated(self, sample_snapshot, caplog):
        aggregator = EventAggregator(FailingLogsSource(sample_snapshot))
        with caplog.at_level(logging.ERROR):
            events = await aggregator.aggregate(week_request())
        counts = count_by_type(events)
        assert counts[EventSourceType.LOG] == 0
        assert counts[EventSourceType.TASK] == 10
        assert len(events) == 15
        assert "Source logs failed" in caplog.text

    @pytest.mark.asyncio
    async def test_source_timeout_aborts_call(self, sample_snapshot):
        aggregator = EventAggregator(SlowTasksSource(sample_snapshot), config=EngineConfig(source_timeout_seconds=0.05))
        with pytest.raises(AsyncTimeoutError):
            await aggregator.aggregate(week_request())

    @pytest.mark.asyncio
    async def test_cancelled_source_propagates(self, sample_snapshot):
        aggregator = EventAggregator(CancelledLogsSource(sample_snapshot))
        with pytest.raises(asyncio.CancelledError):
            await aggregator.aggregate(week_request())

    @pytest.mark.asyncio
    async def test_caller_cancellation_propagates(self, sample_snapshot):
        aggregator = EventAggregator(SlowTasksSource(sample_snapshot))
        task = asyncio.ensure_future(aggregator.aggregate(week_request()))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


def test_aggregate_sync(aggregator):
    """Test the blocking wrapper from synchronous code."""
    events = aggregator.aggregate_sync(week_request())
    assert len(events) == 17


def test_max_iterations_config_is_honored(sample_snapshot):
    """Test the expansion cap flows from EngineConfig into task expansion."""
    aggregator = EventAggregator(SnapshotDataSource(sample_snapshot), config=EngineConfig(max_expansion_iterations=2))
    events = aggregator.aggregate_sync(week_request(filters=CalendarFilters(show_leave=False, show_schedules=False)))
    daily = [e for e in events if e.resource_id == "daily"]
    # 2024-01-01 and 2024-01-02 (skipped) before the cap
    assert [e.id for e in daily] == ["task-daily-2024-01-01"]


@pytest.mark.asyncio
async def test_window_at_end_of_date_range(make_task, make_schedule, make_leave):
    """Test every source still contributes when the window ends on date.max."""
    snapshot = CalendarSnapshot(
        tasks=[
            make_task(id="daily", due_date=date(9999, 12, 1), is_recurring=True, recurrence_rule="FREQ=DAILY"),
            make_task(id="once", due_date=date(9999, 12, 30)),
        ],
        weekly_schedules=[make_schedule(day_of_week=5, start_time=time(22, 0), end_time=time(6, 0))],
        leave_requests=[
            make_leave(id="l2", user_id="u2", start_date=date(9999, 12, 30), end_date=date.max),
        ],
    )
    aggregator = EventAggregator(SnapshotDataSource(snapshot))

    events = await aggregator.aggregate(AggregationRequest(window_start=date(9999, 12, 25), window_end=date.max))

    ids = {event.id for event in events}
    assert "task-once" in ids
    assert {f"task-daily-9999-12-{day}" for day in range(25, 32)} <= ids
    assert "schedule-s1-9999-12-31" in ids
    by_id = {event.id: event for event in events}
    assert by_id["leave-l2"].end == datetime.max
    assert by_id["schedule-s1-9999-12-31"].end == datetime.max

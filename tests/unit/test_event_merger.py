"""Unit tests for event merging and display ordering."""

import logging
from datetime import datetime

import pytest

from roster_calendar.domain.event_merger import EventMerger, sort_events
from roster_calendar.models import CalendarEvent, EventSourceType, LogCategory, LogPayload

pytestmark = pytest.mark.unit


def make_event(event_id, start, all_day=False, child="Mia"):
    return CalendarEvent(
        id=event_id,
        source_type=EventSourceType.LOG,
        title=event_id,
        start=start,
        end=start,
        all_day=all_day,
        color="#000000",
        payload=LogPayload(log_id=event_id, log_category=LogCategory.FOOD, child=child),
    )


class TestEventMerger:
    def test_preserves_batch_order(self):
        a = make_event("a", datetime(2024, 1, 3))
        b = make_event("b", datetime(2024, 1, 1))
        c = make_event("c", datetime(2024, 1, 2))
        assert [e.id for e in EventMerger().merge([[a, b], [c]])] == ["a", "b", "c"]

    def test_first_occurrence_of_duplicate_id_wins(self, caplog):
        first = make_event("dup", datetime(2024, 1, 1), child="first")
        second = make_event("dup", datetime(2024, 1, 2), child="second")
        with caplog.at_level(logging.WARNING):
            merged = EventMerger().merge([[first], [second]])
        assert len(merged) == 1
        assert merged[0].payload.child == "first"
        assert "duplicate event id dup" in caplog.text

    def test_empty_batches(self):
        assert EventMerger().merge([[], []]) == []


def test_sort_events_orders_all_day_first_then_id():
    timed = make_event("b-timed", datetime(2024, 1, 1))
    all_day = make_event("z-all-day", datetime(2024, 1, 1), all_day=True)
    later = make_event("a-later", datetime(2024, 1, 2))
    same = make_event("a-timed", datetime(2024, 1, 1))
    assert [e.id for e in sort_events([later, timed, same, all_day])] == ["z-all-day", "a-timed", "b-timed", "a-later"]

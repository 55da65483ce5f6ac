"""iCalendar export of aggregated timelines for calendar subscriptions."""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from icalendar import Calendar as iCalendar
from icalendar import Event as iEvent

from .models import CalendarEvent, TaskPayload, TaskStatus

logger = logging.getLogger(__name__)

PRODID = "-//roster-calendar//Timeline Export//EN"
COMPLETED_PREFIX = "✓ "


def _summary(event: CalendarEvent) -> str:
    if isinstance(event.payload, TaskPayload) and event.payload.status == TaskStatus.COMPLETED:
        return f"{COMPLETED_PREFIX}{event.title}"
    return event.title


def event_to_vevent(event: CalendarEvent, stamp: datetime) -> iEvent:
    """Convert one timeline event to a VEVENT component.

    All-day events use DATE values with an exclusive DTEND at least one day
    after DTSTART; timed events use floating local datetimes.
    """
    vevent = iEvent()
    vevent.add("uid", f"{event.id}@roster-calendar")
    vevent.add("summary", _summary(event))
    vevent.add("dtstamp", stamp)

    if event.all_day:
        start_day = event.start.date()
        end_day = event.end.date()
        if start_day < date.max:
            end_day = max(end_day, start_day + timedelta(days=1))
        vevent.add("dtstart", start_day)
        vevent.add("dtend", end_day)
    else:
        vevent.add("dtstart", event.start)
        vevent.add("dtend", event.end)

    vevent.add("x-rostercal-source-type", event.source_type.value)
    if event.resource_id:
        vevent.add("x-rostercal-source-id", event.resource_id)
    vevent.add("x-rostercal-color", event.color)
    return vevent


def events_to_ical(
    events: Iterable[CalendarEvent],
    calendar_name: str = "Roster Calendar",
    generated_at: Optional[datetime] = None,
) -> str:
    """Render events as a single VCALENDAR document.

    Args:
        events: Timeline events (any order)
        calendar_name: Value for X-WR-CALNAME
        generated_at: DTSTAMP for every VEVENT (current UTC time when None)

    Returns:
        iCalendar text with one VEVENT per event
    """
    stamp = generated_at or datetime.now(timezone.utc)

    cal = iCalendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", calendar_name)

    count = 0
    for event in events:
        cal.add_component(event_to_vevent(event, stamp))
        count += 1

    logger.debug("Exported %d events to iCalendar %r", count, calendar_name)
    return cal.to_ical().decode("utf-8")

"""Merging and deduplication of per-source event batches."""

import logging
from collections.abc import Iterable

from ..models import CalendarEvent

logger = logging.getLogger(__name__)


class EventMerger:
    """Combines per-source batches into one list with unique event IDs."""

    def merge(self, batches: Iterable[Iterable[CalendarEvent]]) -> list[CalendarEvent]:
        """Concatenate batches, keeping the first event seen for each ID.

        Batch order and order within a batch are preserved; no time sorting
        is applied.

        Args:
            batches: Event lists, one per source

        Returns:
            Merged events with unique IDs
        """
        merged: list[CalendarEvent] = []
        seen: set[str] = set()
        duplicates = 0

        for batch in batches:
            for event in batch:
                if event.id in seen:
                    duplicates += 1
                    logger.warning("Dropping duplicate event id %s (%s)", event.id, event.source_type.value)
                    continue
                seen.add(event.id)
                merged.append(event)

        logger.debug("Merged %d events (%d duplicates dropped)", len(merged), duplicates)
        return merged


def sort_events(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    """Order events for display: by start, all-day before timed, then by ID."""
    return sorted(events, key=lambda event: (event.start, not event.all_day, event.id))

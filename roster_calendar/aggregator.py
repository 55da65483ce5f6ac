"""Aggregation of all event sources into one timeline for a date window."""

import asyncio
import logging
import time
from collections.abc import Awaitable
from datetime import date
from typing import Any, Optional

from .core.async_utils import AsyncOrchestrator, get_global_orchestrator
from .core.config_manager import EngineConfig
from .core.request_context import request_scope
from .domain.event_builders import (
    build_important_date_events,
    build_leave_events,
    build_log_events,
    build_schedule_events,
    build_task_events,
)
from .domain.event_merger import EventMerger
from .domain.exception_resolver import ExceptionTables
from .domain.schedule_expander import build_leave_days, index_schedule_overrides
from .domain.visibility import VisibilityFilter
from .exceptions import AggregationRequestError
from .models import AggregationRequest, CalendarEvent
from .sources import CalendarDataSource

logger = logging.getLogger(__name__)


class EventAggregator:
    """Fetches every enabled source concurrently and merges the resulting events.

    Each call is independent: nothing computed for one request is kept for
    the next, so repeated calls over the same data give the same events.
    """

    def __init__(
        self,
        source: CalendarDataSource,
        config: Optional[EngineConfig] = None,
        orchestrator: Optional[AsyncOrchestrator] = None,
    ):
        """Initialize aggregator.

        Args:
            source: Data-access collaborator providing the records
            config: Engine tunables (defaults when None)
            orchestrator: Async orchestrator (global instance when None)
        """
        self.source = source
        self.config = config or EngineConfig()
        self.orchestrator = orchestrator or get_global_orchestrator()
        self.merger = EventMerger()

    async def aggregate(self, request: AggregationRequest) -> list[CalendarEvent]:
        """Produce the merged, uniquely identified events for a request.

        Events are not sorted. A failing source is logged and contributes
        nothing; cancellation or a timeout aborts the whole call.

        Raises:
            AggregationRequestError: If the request has no window
            AsyncTimeoutError: If the sources do not finish within the configured timeout
        """
        if request.window_start is None or request.window_end is None:
            raise AggregationRequestError("Aggregation request requires window_start and window_end")

        if request.is_inverted:
            logger.warning(
                "Inverted window %s..%s; returning no events",
                request.window_start,
                request.window_end,
            )
            return []

        with request_scope() as request_id:
            started = time.monotonic()
            window_start, window_end = request.window_start, request.window_end
            named = self._source_coroutines(request, window_start, window_end)
            logger.debug(
                "Aggregating %s..%s (request %s) from sources: %s",
                window_start,
                window_end,
                request_id,
                ", ".join(named),
            )

            results = await self.orchestrator.gather_with_timeout(
                *named.values(),
                timeout=self.config.source_timeout_seconds,
                return_exceptions=True,
            )

            batches: list[list[CalendarEvent]] = []
            for name, result in zip(named, results):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, Exception):
                    logger.error(
                        "Source %s failed; its events are excluded: %s",
                        name,
                        result,
                        exc_info=(type(result), result, result.__traceback__),
                    )
                    continue
                if isinstance(result, BaseException):
                    raise result
                logger.debug("Source %s produced %d events", name, len(result))
                batches.append(result)

            events = self.merger.merge(batches)
            logger.info(
                "Aggregated %d events for %s..%s in %.1fms",
                len(events),
                window_start,
                window_end,
                (time.monotonic() - started) * 1000,
            )
            return events

    def aggregate_sync(self, request: AggregationRequest) -> list[CalendarEvent]:
        """Blocking wrapper around aggregate() for synchronous callers."""
        return self.orchestrator.run_coroutine_from_sync(lambda: self.aggregate(request))

    def _source_coroutines(
        self, request: AggregationRequest, window_start: date, window_end: date
    ) -> dict[str, Awaitable[list[CalendarEvent]]]:
        filters = request.filters
        coroutines: dict[str, Awaitable[list[CalendarEvent]]] = {}

        if filters.show_tasks:
            coroutines["tasks"] = self._task_events(request, window_start, window_end)
        if filters.show_leave:
            coroutines["leave"] = self._leave_events(request, window_start, window_end)
        if filters.log_categories():
            coroutines["logs"] = self._log_events(request, window_start, window_end)
        if filters.show_important_dates and request.viewer is None:
            coroutines["important_dates"] = self._important_date_events(window_start, window_end)
        if filters.show_schedules:
            coroutines["schedules"] = self._schedule_events(request, window_start, window_end)

        return coroutines

    async def _task_events(
        self, request: AggregationRequest, window_start: date, window_end: date
    ) -> list[CalendarEvent]:
        tasks, (skipped, completions, overrides) = await asyncio.gather(
            self.source.fetch_tasks(window_start, window_end),
            self.source.fetch_task_exceptions(window_start, window_end),
        )
        tables = ExceptionTables.from_records(skipped, completions, overrides)
        return build_task_events(
            tasks,
            window_start,
            window_end,
            tables,
            VisibilityFilter(request.viewer),
            self.config,
        )

    async def _leave_events(
        self, request: AggregationRequest, window_start: date, window_end: date
    ) -> list[CalendarEvent]:
        requests = await self.source.fetch_leave_requests(window_start, window_end)
        viewer_id = request.viewer.user_id if request.viewer else None
        return build_leave_events(requests, window_start, window_end, viewer_id)

    async def _log_events(
        self, request: AggregationRequest, window_start: date, window_end: date
    ) -> list[CalendarEvent]:
        categories = request.filters.log_categories()
        logs = await self.source.fetch_logs(window_start, window_end, categories)
        return build_log_events(logs, window_start, window_end, categories)

    async def _important_date_events(self, window_start: date, window_end: date) -> list[CalendarEvent]:
        records = await self.source.fetch_important_dates()
        return build_important_date_events(records, window_start, window_end)

    async def _schedule_events(
        self, request: AggregationRequest, window_start: date, window_end: date
    ) -> list[CalendarEvent]:
        results: Any = await asyncio.gather(
            self.source.fetch_weekly_schedules(),
            self.source.fetch_one_off_schedules(window_start, window_end),
            self.source.fetch_schedule_overrides(window_start, window_end),
            self.source.fetch_leave_requests(window_start, window_end),
        )
        weekly, one_offs, overrides, leave_requests = results
        # Leave days come from all approved leave, whatever the leave filter or viewer
        leave_days = build_leave_days(leave_requests)
        return build_schedule_events(
            weekly,
            one_offs,
            index_schedule_overrides(overrides),
            leave_days,
            window_start,
            window_end,
            VisibilityFilter(request.viewer),
        )

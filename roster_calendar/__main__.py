"""Command-line entry for roster_calendar.

Loads a snapshot JSON document, aggregates the timeline for a window and
prints it as display JSON or as an iCalendar document.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import date
from pathlib import Path

from . import _init_logging
from .aggregator import EventAggregator
from .core.async_utils import AsyncOrchestrator
from .core.config_manager import ConfigManager
from .domain.event_merger import sort_events
from .exceptions import RosterCalendarError
from .ics_export import events_to_ical
from .logging_config import configure_logging
from .models import AggregationRequest, CalendarFilters, Viewer, ViewerRole
from .sources import SnapshotDataSource

logger = logging.getLogger(__name__)

# --hide choice -> CalendarFilters field
HIDE_CHOICES = {
    "tasks": "show_tasks",
    "leave": "show_leave",
    "sleep": "show_sleep",
    "food": "show_food",
    "poop": "show_poop",
    "shower": "show_shower",
    "important-dates": "show_important_dates",
    "schedules": "show_schedules",
}


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from e


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the roster_calendar CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="roster-calendar",
        description="Expand a roster snapshot into a calendar timeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  roster-calendar snapshot.json --start 2024-01-01 --end 2024-01-31
  roster-calendar snapshot.json --start 2024-01-01 --end 2024-01-07 --viewer-id u1 --viewer-group g1
  roster-calendar snapshot.json --start 2024-01-01 --end 2024-12-31 --hide sleep --format ics
        """,
    )
    parser.add_argument("snapshot", type=Path, help="Snapshot JSON document")
    parser.add_argument("--start", type=_iso_date, required=True, help="First day (YYYY-MM-DD)")
    parser.add_argument("--end", type=_iso_date, required=True, help="Last day, inclusive (YYYY-MM-DD)")
    parser.add_argument("--viewer-id", help="Restrict output to what this user may see")
    parser.add_argument(
        "--viewer-role",
        choices=[role.value for role in ViewerRole],
        default=ViewerRole.EMPLOYEE.value,
        help="Role of the viewer (default: employee)",
    )
    parser.add_argument(
        "--viewer-group",
        action="append",
        default=[],
        metavar="GROUP_ID",
        help="Group membership of the viewer (repeatable)",
    )
    parser.add_argument(
        "--hide",
        action="append",
        default=[],
        choices=sorted(HIDE_CHOICES),
        help="Hide a source category (repeatable)",
    )
    parser.add_argument("--format", choices=["json", "ics"], default="json", help="Output format")
    parser.add_argument("--output", type=Path, help="Write to a file instead of stdout")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def _build_request(args: argparse.Namespace) -> AggregationRequest:
    filters = CalendarFilters(**{HIDE_CHOICES[name]: False for name in args.hide})
    viewer = None
    if args.viewer_id:
        viewer = Viewer(
            user_id=args.viewer_id,
            role=ViewerRole(args.viewer_role),
            group_ids=frozenset(args.viewer_group),
        )
    return AggregationRequest(
        window_start=args.start,
        window_end=args.end,
        filters=filters,
        viewer=viewer,
    )


def main(argv: list[str] | None = None) -> int:
    """Run the roster_calendar CLI and return the exit status."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    _init_logging("DEBUG" if args.debug else os.environ.get("ROSTERCAL_LOG_LEVEL"))
    configure_logging(debug_mode=args.debug)

    if args.end < args.start:
        parser.error("--end must not be before --start")

    try:
        source = SnapshotDataSource.from_file(args.snapshot)
    except RosterCalendarError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    config = ConfigManager().load_engine_config()
    aggregator = EventAggregator(
        source,
        config=config,
        orchestrator=AsyncOrchestrator(default_timeout=config.source_timeout_seconds),
    )
    events = sort_events(aggregator.aggregate_sync(_build_request(args)))

    if args.format == "ics":
        output = events_to_ical(events, calendar_name=args.snapshot.stem)
    else:
        output = json.dumps([event.to_display_dict() for event in events], indent=2, ensure_ascii=False)

    if args.output:
        args.output.write_text(output, encoding="utf-8")
        logger.info("Wrote %d events to %s", len(events), args.output)
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())

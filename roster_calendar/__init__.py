"""roster_calendar - recurrence expansion and calendar aggregation engine.

Turns recurring task definitions, weekly work schedules, leave requests,
personal logs and yearly important dates into one timeline of concrete
events for a date window, applying per-instance exceptions and per-viewer
visibility.
"""

__version__ = "0.1.0"

from typing import Optional

from .aggregator import EventAggregator
from .exceptions import AggregationRequestError, RosterCalendarError, SnapshotLoadError
from .models import AggregationRequest, CalendarEvent, CalendarFilters, CalendarSnapshot, Viewer
from .sources import CalendarDataSource, SnapshotDataSource

__all__ = [
    "AggregationRequest",
    "AggregationRequestError",
    "CalendarDataSource",
    "CalendarEvent",
    "CalendarFilters",
    "CalendarSnapshot",
    "EventAggregator",
    "RosterCalendarError",
    "SnapshotDataSource",
    "SnapshotLoadError",
    "Viewer",
    "__version__",
]


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Installs a colorlog formatter when the root logger has no handlers yet.
    The ROSTERCAL_DEBUG environment variable (truthy values: "1", "true",
    "yes", "on") forces DEBUG verbosity.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    from .logging_config import CorrelationIdFilter

    debug_env = os.environ.get("ROSTERCAL_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   [request-id] logger.name: message
        fmt = (
            "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s "
            "[%(request_id)s] %(name)s: %(message)s"
        )
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        handler.addFilter(CorrelationIdFilter())
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )

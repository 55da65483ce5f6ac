"""
Central logging configuration for roster_calendar.

Keeps engine loggers at DEBUG when troubleshooting while holding noisy
third-party loggers at WARNING, and stamps every record with the current
aggregation correlation ID.
"""

import logging
import os
from typing import Optional

from .core.request_context import get_request_id

ENGINE_LOGGERS = (
    "roster_calendar",
    "roster_calendar.aggregator",
    "roster_calendar.recurrence",
    "roster_calendar.domain",
    "roster_calendar.sources",
)


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


def _has_correlation_filter(handler: logging.Handler) -> bool:
    return any(isinstance(f, CorrelationIdFilter) for f in handler.filters)


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for roster_calendar.

    Args:
        debug_mode: Whether to enable debug logging for roster_calendar modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        ROSTERCAL_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        ROSTERCAL_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("ROSTERCAL_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("ROSTERCAL_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    # Don't use force=True; keep the colorlog handler from _init_logging
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    correlation_filter = CorrelationIdFilter()

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        formatter = logging.Formatter(
            "[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.addFilter(correlation_filter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            if not _has_correlation_filter(existing_handler):
                existing_handler.addFilter(correlation_filter)

    logger_config: dict[str, int] = {
        "asyncio": logging.WARNING,
        "icalendar": logging.INFO,
    }

    engine_level = logging.DEBUG if final_debug else logging.INFO
    for module in ENGINE_LOGGERS:
        logger_config[module] = engine_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.debug("Debug logging enabled for roster_calendar modules")


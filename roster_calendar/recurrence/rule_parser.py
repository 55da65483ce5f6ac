"""Parser for the compact recurrence rule grammar.

    FREQ=<DAILY|WEEKLY|MONTHLY>[;INTERVAL=<n>][;BYDAY=<SU,MO,TU,WE,TH,FR,SA>]

Parsing is lenient: unknown keys and malformed parts are ignored, a bad
INTERVAL falls back to 1 and unknown weekday codes are dropped. Only a
missing or unsupported FREQ makes a rule invalid.
"""

import logging
from typing import Optional

from ..models import RecurrenceFrequency, RecurrenceRule, Weekday

logger = logging.getLogger(__name__)

WEEKDAY_CODES: dict[str, Weekday] = {
    "SU": Weekday.SUNDAY,
    "MO": Weekday.MONDAY,
    "TU": Weekday.TUESDAY,
    "WE": Weekday.WEDNESDAY,
    "TH": Weekday.THURSDAY,
    "FR": Weekday.FRIDAY,
    "SA": Weekday.SATURDAY,
}

# Order used when writing BYDAY back out
_CODE_ORDER = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")


def _split_parts(text: str) -> dict[str, str]:
    parts: dict[str, str] = {}
    for raw in text.split(";"):
        if "=" not in raw:
            continue
        key, value = raw.split("=", 1)
        key = key.strip().upper()
        # First occurrence wins for repeated keys
        if key and key not in parts:
            parts[key] = value.strip()
    return parts


def _parse_interval(value: Optional[str]) -> int:
    if value is None:
        return 1
    try:
        interval = int(value)
    except ValueError:
        logger.debug("Ignoring non-numeric INTERVAL=%r", value)
        return 1
    if interval < 1:
        logger.debug("Ignoring non-positive INTERVAL=%r", value)
        return 1
    return interval


def _parse_by_day(value: Optional[str]) -> Optional[frozenset[Weekday]]:
    """Map BYDAY codes to weekdays.

    Returns None when BYDAY is absent or blank, and an empty set when codes
    were given but none of them is a known weekday.
    """
    if value is None or not value.strip():
        return None
    days = set()
    for code in value.split(","):
        weekday = WEEKDAY_CODES.get(code.strip().upper())
        if weekday is None:
            logger.debug("Dropping unknown BYDAY code %r", code)
            continue
        days.add(weekday)
    return frozenset(days)


def parse_rule(text: Optional[str]) -> Optional[RecurrenceRule]:
    """Parse a rule string.

    Args:
        text: Rule string such as ``FREQ=WEEKLY;INTERVAL=2;BYDAY=TU,TH``

    Returns:
        RecurrenceRule, or None when FREQ is missing or unsupported
    """
    if not text or not text.strip():
        return None

    parts = _split_parts(text)
    freq = parts.get("FREQ", "").upper()
    try:
        frequency = RecurrenceFrequency(freq)
    except ValueError:
        logger.debug("Rule %r has no supported FREQ", text)
        return None

    by_day = _parse_by_day(parts.get("BYDAY"))
    if frequency != RecurrenceFrequency.WEEKLY and by_day is not None:
        # BYDAY only applies to weekly rules
        by_day = None

    return RecurrenceRule(
        frequency=frequency,
        interval=_parse_interval(parts.get("INTERVAL")),
        by_day=by_day,
    )


def format_rule(rule: RecurrenceRule) -> str:
    """Render a rule back to the canonical grammar."""
    parts = [f"FREQ={rule.frequency.value}"]
    if rule.interval > 1:
        parts.append(f"INTERVAL={rule.interval}")
    if rule.by_day:
        codes = [code for code in _CODE_ORDER if WEEKDAY_CODES[code] in rule.by_day]
        parts.append("BYDAY=" + ",".join(codes))
    return ";".join(parts)

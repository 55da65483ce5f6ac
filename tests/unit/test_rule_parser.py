"""Unit tests for the recurrence rule parser."""

import pytest

from roster_calendar.models import RecurrenceFrequency, Weekday
from roster_calendar.recurrence.rule_parser import format_rule, parse_rule

pytestmark = pytest.mark.unit


class TestParseRule:
    """Tests for parse_rule."""

    def test_daily_defaults_interval_to_one(self):
        rule = parse_rule("FREQ=DAILY")
        assert rule is not None
        assert rule.frequency == RecurrenceFrequency.DAILY
        assert rule.interval == 1
        assert rule.by_day is None

    def test_weekly_with_interval_and_byday(self):
        rule = parse_rule("FREQ=WEEKLY;INTERVAL=2;BYDAY=TU,TH")
        assert rule is not None
        assert rule.frequency == RecurrenceFrequency.WEEKLY
        assert rule.interval == 2
        assert rule.by_day == frozenset({Weekday.TUESDAY, Weekday.THURSDAY})

    def test_byday_codes_map_sunday_first(self):
        rule = parse_rule("FREQ=WEEKLY;BYDAY=SU,MO,TU,WE,TH,FR,SA")
        assert rule is not None
        assert sorted(int(day) for day in rule.by_day) == [0, 1, 2, 3, 4, 5, 6]

    def test_monthly(self):
        rule = parse_rule("FREQ=MONTHLY")
        assert rule is not None
        assert rule.frequency == RecurrenceFrequency.MONTHLY

    @pytest.mark.parametrize("text", ["", "   ", None, "INTERVAL=2", "BYDAY=MO", "FREQ=", "FREQ=YEARLY"])
    def test_missing_or_unsupported_freq_is_invalid(self, text):
        assert parse_rule(text) is None

    @pytest.mark.parametrize("interval", ["abc", "0", "-3", ""])
    def test_bad_interval_falls_back_to_one(self, interval):
        rule = parse_rule(f"FREQ=DAILY;INTERVAL={interval}")
        assert rule is not None
        assert rule.interval == 1

    def test_unknown_tokens_are_ignored(self):
        rule = parse_rule("FREQ=DAILY;COUNT=5;WKST=MO;garbage;INTERVAL=3")
        assert rule is not None
        assert rule.interval == 3

    def test_unknown_byday_codes_are_dropped(self):
        rule = parse_rule("FREQ=WEEKLY;BYDAY=MO,XX,1FR")
        assert rule is not None
        assert rule.by_day == frozenset({Weekday.MONDAY})

    def test_byday_with_only_unknown_codes_is_empty_not_absent(self):
        rule = parse_rule("FREQ=WEEKLY;BYDAY=XX,YY")
        assert rule is not None
        assert rule.by_day == frozenset()

    def test_blank_byday_is_absent(self):
        rule = parse_rule("FREQ=WEEKLY;BYDAY=")
        assert rule is not None
        assert rule.by_day is None

    def test_byday_ignored_for_non_weekly(self):
        rule = parse_rule("FREQ=MONTHLY;BYDAY=MO")
        assert rule is not None
        assert rule.by_day is None

    def test_parsing_is_case_and_whitespace_tolerant(self):
        rule = parse_rule(" freq=weekly ; byday = mo, fr ")
        assert rule is not None
        assert rule.frequency == RecurrenceFrequency.WEEKLY
        assert rule.by_day == frozenset({Weekday.MONDAY, Weekday.FRIDAY})

    def test_rule_is_immutable(self):
        rule = parse_rule("FREQ=DAILY")
        with pytest.raises(Exception):
            rule.interval = 5


class TestFormatRule:
    """Tests for format_rule."""

    @pytest.mark.parametrize(
        "text",
        [
            "FREQ=DAILY",
            "FREQ=WEEKLY;BYDAY=MO,WE,FR",
            "FREQ=WEEKLY;INTERVAL=2;BYDAY=TU,TH",
            "FREQ=MONTHLY",
        ],
    )
    def test_canonical_strings_are_preserved(self, text):
        assert format_rule(parse_rule(text)) == text

    def test_interval_one_is_omitted_and_days_are_ordered(self):
        rule = parse_rule("FREQ=WEEKLY;INTERVAL=1;BYDAY=SU,MO")
        assert format_rule(rule) == "FREQ=WEEKLY;BYDAY=MO,SU"

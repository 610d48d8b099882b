"""
Tests for the DateTime Normalizer and the quick-pick presets.

All zones are fixed offsets so results do not depend on the machine running
the tests.
"""

from datetime import date, time, timedelta, timezone

import pytest

from taskcal.schedule.models import RecurrenceTag, ScheduleSpec
from taskcal.schedule.normalizer import (
    add_months,
    event_boundaries,
    format_relative,
    format_time,
    format_wire,
    local_date_of,
    month_bounds,
    parse_freeform_date,
    parse_freeform_time,
    parse_instant,
    parse_wire_datetime,
    recurrence_from_rules,
    recurrence_rules,
    time_of_day_label,
    to_instant,
)
from taskcal.schedule.presets import (
    DATE_PRESETS,
    RECURRENCE_PRESETS,
    TIME_PRESETS,
    describe_preset_date,
    describe_preset_time,
    next_saturday,
)

WEST = timezone(timedelta(hours=-7))
EAST = timezone(timedelta(hours=9))
UTC_ZONE = timezone.utc

MONDAY = date(2025, 10, 20)

# ============================================================
# Wire instants
# ============================================================


class TestToInstant:
    """Encoding local picks as wire instants."""

    def test_all_day_encodes_local_midnight_west(self):
        """West of UTC, local midnight is later the same UTC day."""
        assert to_instant(MONDAY, tz=WEST) == "2025-10-20T07:00:00.000Z"

    def test_all_day_encodes_local_midnight_east(self):
        """East of UTC, local midnight falls on the previous UTC day."""
        assert to_instant(MONDAY, tz=EAST) == "2025-10-19T15:00:00.000Z"

    def test_all_day_in_utc_is_utc_midnight(self):
        assert to_instant(MONDAY, tz=UTC_ZONE) == "2025-10-20T00:00:00.000Z"

    def test_timed_pick(self):
        assert to_instant(MONDAY, time(14, 30), tz=WEST) == "2025-10-20T21:30:00.000Z"

    def test_explicit_all_day_ignores_time(self):
        assert to_instant(MONDAY, time(14, 30), is_all_day=True, tz=UTC_ZONE) == "2025-10-20T00:00:00.000Z"

    def test_timed_without_time_raises(self):
        with pytest.raises(ValueError):
            to_instant(MONDAY, None, is_all_day=False, tz=UTC_ZONE)

    def test_format_wire_keeps_milliseconds(self):
        moment = parse_wire_datetime("2025-10-20T10:15:30.123456+00:00")
        assert format_wire(moment) == "2025-10-20T10:15:30.123Z"


class TestParseInstant:
    """Decoding wire instants back into local picks."""

    @pytest.mark.parametrize("tz", [WEST, EAST, UTC_ZONE])
    def test_all_day_round_trip_keeps_date(self, tz):
        """All-day encodings reproduce the same calendar date in every zone."""
        for day in (date(2025, 1, 1), MONDAY, date(2025, 12, 31), date(2024, 2, 29)):
            assert parse_instant(to_instant(day, tz=tz), tz) == (day, None)

    @pytest.mark.parametrize("tz", [WEST, EAST, UTC_ZONE])
    def test_timed_round_trip_is_lossless(self, tz):
        for at in (time(0, 1), time(9, 0), time(14, 30), time(23, 59)):
            assert parse_instant(to_instant(MONDAY, at, tz=tz), tz) == (MONDAY, at)

    def test_date_only_string(self):
        assert parse_instant("2025-10-20") == (MONDAY, None)

    def test_local_midnight_reads_as_all_day(self):
        assert parse_instant("2025-10-20T07:00:00.000Z", WEST) == (MONDAY, None)

    @pytest.mark.parametrize("tz", [WEST, EAST, UTC_ZONE])
    def test_timed_midnight_reads_as_all_day(self, tz):
        """Midnight shares the all-day encoding, so the time is not recovered."""
        wire = to_instant(MONDAY, time(0, 0), False, tz)
        assert wire == to_instant(MONDAY, tz=tz)
        assert parse_instant(wire, tz) == (MONDAY, None)

    def test_same_instant_in_another_zone(self):
        """An instant decoded in a different zone lands on that zone's clock."""
        assert parse_instant("2025-10-20T21:30:00.000Z", EAST) == (date(2025, 10, 21), time(6, 30))

    def test_local_date_of(self):
        moment = parse_wire_datetime("2025-10-20T23:30:00Z")
        assert local_date_of(moment, EAST) == date(2025, 10, 21)
        assert local_date_of(moment, WEST) == MONDAY
        assert local_date_of(MONDAY, EAST) == MONDAY


# ============================================================
# Calendar boundaries
# ============================================================


class TestEventBoundaries:
    """Start/end payloads sent to the calendar store."""

    def test_all_day_uses_exclusive_next_day(self):
        start, end = event_boundaries(ScheduleSpec.all_day(MONDAY))
        assert start == {"date": "2025-10-20"}
        assert end == {"date": "2025-10-21"}

    def test_timed_defaults_to_one_hour(self):
        start, end = event_boundaries(ScheduleSpec.at(MONDAY, time(14, 0)), tz=WEST)
        assert start == {"dateTime": "2025-10-20T21:00:00.000Z"}
        assert end == {"dateTime": "2025-10-20T22:00:00.000Z"}

    def test_timed_custom_duration(self):
        _, end = event_boundaries(ScheduleSpec.at(MONDAY, time(23, 30)), 90, tz=UTC_ZONE)
        assert end == {"dateTime": "2025-10-21T01:00:00.000Z"}

    def test_month_bounds_wrap_year(self):
        first, following = month_bounds(2025, 12, UTC_ZONE)
        assert first.date() == date(2025, 12, 1)
        assert following.date() == date(2026, 1, 1)

    def test_add_months_clamps_to_month_end(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2025, 12, 15), 1) == date(2026, 1, 15)


class TestScheduleSpec:
    """The all-day invariant and recurrence coercion."""

    def test_all_day_with_time_raises(self):
        with pytest.raises(ValueError):
            ScheduleSpec(date=MONDAY, time=time(9, 0), is_all_day=True)

    def test_timed_without_time_raises(self):
        with pytest.raises(ValueError):
            ScheduleSpec(date=MONDAY, time=None, is_all_day=False)

    def test_recurrence_none_tag_becomes_none(self):
        assert ScheduleSpec(date=MONDAY, recurrence="none").recurrence is None

    def test_recurrence_string_becomes_tag(self):
        assert ScheduleSpec.all_day(MONDAY, "weekly").recurrence == RecurrenceTag.WEEKLY


# ============================================================
# Display
# ============================================================


class TestFormatRelative:
    """Relative due labels."""

    def test_adjacent_days(self):
        assert format_relative(MONDAY, reference=MONDAY) == "Today"
        assert format_relative(date(2025, 10, 21), reference=MONDAY) == "Tomorrow"
        assert format_relative(date(2025, 10, 19), reference=MONDAY) == "Yesterday"

    def test_future_day_count(self):
        assert format_relative(date(2025, 10, 25), reference=MONDAY) == "Oct 25 (5d from now)"

    def test_past_day_count(self):
        assert format_relative(date(2025, 10, 17), reference=MONDAY) == "Oct 17 (3d ago)"

    def test_recurrence_suffix(self):
        assert format_relative(date(2025, 10, 21), "weekly", reference=MONDAY) == "Tomorrow [weekly]"

    def test_never_mixes_word_and_count(self):
        for offset in range(-10, 11):
            day = date.fromordinal(MONDAY.toordinal() + offset)
            label = format_relative(day, reference=MONDAY)
            has_word = label in ("Today", "Tomorrow", "Yesterday")
            has_count = "d from now" in label or "d ago" in label
            assert has_word != has_count

    def test_format_time(self):
        assert format_time(0, 5) == "12:05 AM"
        assert format_time(12, 0) == "12:00 PM"
        assert format_time(14, 5) == "2:05 PM"

    def test_time_of_day_label(self):
        assert time_of_day_label(9) == "morning"
        assert time_of_day_label(14) == "afternoon"
        assert time_of_day_label(21) == "evening"


# ============================================================
# Free text
# ============================================================


class TestParseFreeform:
    """Typed dates and times."""

    @pytest.mark.parametrize("text", ["2025-10-20", "10/20/2025", "20-10-2025", "  2025-10-20  "])
    def test_date_formats(self, text):
        assert parse_freeform_date(text) == MONDAY

    @pytest.mark.parametrize("text", ["", "next tuesday", "2025-02-30", "13/01/2025", "2025/10/20"])
    def test_bad_dates_return_none(self, text):
        assert parse_freeform_date(text) is None

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("14:30", time(14, 30)),
            ("9:05", time(9, 5)),
            ("2:30 PM", time(14, 30)),
            ("9 AM", time(9, 0)),
            ("930pm", time(21, 30)),
            ("12 AM", time(0, 0)),
            ("12:15 pm", time(12, 15)),
        ],
    )
    def test_time_formats(self, text, expected):
        assert parse_freeform_time(text) == expected

    @pytest.mark.parametrize("text", ["", "noon", "25:00", "13 PM", "9:75 AM"])
    def test_bad_times_return_none(self, text):
        assert parse_freeform_time(text) is None


# ============================================================
# Recurrence and presets
# ============================================================


class TestRecurrence:
    def test_rules_for_tags(self):
        assert recurrence_rules("biweekly") == ["RRULE:FREQ=WEEKLY;INTERVAL=2"]
        assert recurrence_rules(RecurrenceTag.DAILY) == ["RRULE:FREQ=DAILY"]
        assert recurrence_rules(None) == []
        assert recurrence_rules("none") == []

    def test_rules_back_to_tag(self):
        assert recurrence_from_rules(["RRULE:FREQ=MONTHLY"]) == "monthly"
        assert recurrence_from_rules([]) is None

    def test_unknown_rules_kept_verbatim(self):
        assert recurrence_from_rules(["RRULE:FREQ=DAILY;COUNT=5"]) == "RRULE:FREQ=DAILY;COUNT=5"


class TestPresets:
    """Date, time and recurrence quick picks."""

    def _date_values(self, reference):
        return {preset.label: preset.value(reference) for preset in DATE_PRESETS}

    def test_date_presets_from_monday(self):
        values = self._date_values(MONDAY)
        assert values["Today"] == MONDAY
        assert values["Tomorrow"] == date(2025, 10, 21)
        assert values["Next Week"] == date(2025, 10, 27)
        assert values["Next Month"] == date(2025, 11, 20)
        assert values["This Weekend"] == date(2025, 10, 25)

    def test_next_month_clamps(self):
        assert self._date_values(date(2025, 1, 31))["Next Month"] == date(2025, 2, 28)

    def test_weekend_from_saturday_is_a_week_out(self):
        assert next_saturday(date(2025, 10, 25)) == date(2025, 11, 1)
        assert next_saturday(date(2025, 10, 26)) == date(2025, 11, 1)

    def test_time_presets(self):
        assert [p.value for p in TIME_PRESETS] == [time(9), time(12), time(14), time(17), time(21)]
        assert TIME_PRESETS[0].label == "9:00 AM (Morning)"
        assert describe_preset_time(time(14)) == "2:00 PM afternoon"

    def test_recurrence_presets_cover_enum(self):
        values = {p.value for p in RECURRENCE_PRESETS}
        assert values == {None} | {tag for tag in RecurrenceTag if tag != RecurrenceTag.NONE}

    def test_describe_preset_date(self):
        assert describe_preset_date(MONDAY, MONDAY) == "Today"
        assert describe_preset_date(date(2025, 10, 21), MONDAY) == "Tomorrow"
        assert describe_preset_date(date(2025, 10, 25), MONDAY) == "Saturday (5 days from now)"
        assert describe_preset_date(date(2025, 11, 20), MONDAY) == "Nov 20, 2025"

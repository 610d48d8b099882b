"""
DateTime Normalizer - conversions between user picks and wire formats.

The task store keeps a date only; its due field is still an RFC 3339 instant,
so an all-day pick is encoded as *local* midnight converted to UTC. Encoding
UTC midnight instead shifts the displayed day for users west of UTC.

All functions are pure. `tz` arguments accept any tzinfo; None means the
system local zone.
"""

import calendar
import re
from datetime import UTC, date, datetime, time, timedelta, tzinfo

from .models import RecurrenceTag, ScheduleSpec

MIDNIGHT = time(0, 0)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DASH_DATE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")
_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_12H = re.compile(r"^(\d{1,2}):?(\d{2})?\s*(AM|PM)$")

_RRULES = {
    RecurrenceTag.DAILY: "RRULE:FREQ=DAILY",
    RecurrenceTag.WEEKLY: "RRULE:FREQ=WEEKLY",
    RecurrenceTag.BIWEEKLY: "RRULE:FREQ=WEEKLY;INTERVAL=2",
    RecurrenceTag.MONTHLY: "RRULE:FREQ=MONTHLY",
    RecurrenceTag.YEARLY: "RRULE:FREQ=YEARLY",
}


# =============================================================================
# LOCAL TIME
# =============================================================================


def localize(day: date, at: time, tz: tzinfo | None) -> datetime:
    naive = datetime.combine(day, at)
    if tz is None:
        # Naive astimezone() applies the system zone rules for that date
        return naive.astimezone()
    return naive.replace(tzinfo=tz)


def today(tz: tzinfo | None = None) -> date:
    """Local calendar date."""
    return datetime.now(tz).date() if tz else date.today()


# =============================================================================
# WIRE INSTANTS
# =============================================================================


def format_wire(moment: datetime) -> str:
    """Format an aware datetime as `YYYY-MM-DDTHH:MM:SS.mmmZ`."""
    utc = moment.astimezone(UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_wire_datetime(wire: str) -> datetime:
    """
    Parse an RFC 3339 instant into an aware datetime.

    Raises:
        ValueError: If the string is not an instant
    """
    moment = datetime.fromisoformat(wire.strip().replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment


def to_instant(
    day: date,
    at: time | None = None,
    is_all_day: bool | None = None,
    tz: tzinfo | None = None,
) -> str:
    """
    Encode a local date/time pick as a wire instant.

    Args:
        day: Local calendar date
        at: Local time of day; ignored for all-day picks
        is_all_day: Defaults to `at is None`
        tz: Zone the pick was made in

    Returns:
        UTC instant string. All-day picks encode local midnight, so a timed
        pick at exactly 00:00 has the same encoding and decodes as all-day.
    """
    if is_all_day is None:
        is_all_day = at is None
    if not is_all_day and at is None:
        raise ValueError("A timed instant needs a time of day")
    local = localize(day, MIDNIGHT if is_all_day else at, tz)
    return format_wire(local)


def schedule_to_instant(spec: ScheduleSpec, tz: tzinfo | None = None) -> str:
    return to_instant(spec.date, spec.time, spec.is_all_day, tz)


def parse_instant(wire: str, tz: tzinfo | None = None) -> tuple[date, time | None]:
    """
    Decode a wire instant into a local (date, time) pick.

    A local time of exactly midnight decodes as all-day (time None), which
    makes all-day encodings reproduce the same date in every zone. The wire
    carries no all-day flag, so a timed 00:00 pick also reads back as all-day;
    callers that need midnight events use a Calendar event, which keeps `date`
    and `dateTime` apart.
    Date-only strings (YYYY-MM-DD) decode to (date, None).
    """
    text = wire.strip()
    if _ISO_DATE.match(text):
        return date.fromisoformat(text), None

    local = parse_wire_datetime(text).astimezone(tz)
    local_time = local.time().replace(tzinfo=None)
    if local_time == MIDNIGHT:
        return local.date(), None
    return local.date(), local_time


def local_date_of(moment: date | datetime, tz: tzinfo | None = None) -> date:
    """Calendar date of an event boundary as seen in `tz`."""
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            return moment.date()
        return moment.astimezone(tz).date()
    return moment


def event_boundaries(
    spec: ScheduleSpec,
    duration_minutes: int = 60,
    tz: tzinfo | None = None,
) -> tuple[dict, dict]:
    """
    Build calendar-store start/end payloads for a schedule.

    All-day events use {"date": ...} with the exclusive end on the next day.
    Timed events use {"dateTime": ...} with the given duration.
    """
    if spec.is_all_day:
        return (
            {"date": spec.date.isoformat()},
            {"date": (spec.date + timedelta(days=1)).isoformat()},
        )
    start = localize(spec.date, spec.time, tz)
    end = start + timedelta(minutes=duration_minutes)
    return {"dateTime": format_wire(start)}, {"dateTime": format_wire(end)}


def month_bounds(year: int, month: int, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """Local midnight on the 1st and on the 1st of the following month."""
    first = date(year, month, 1)
    following = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return localize(first, MIDNIGHT, tz), localize(following, MIDNIGHT, tz)


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping to the last day of the target month."""
    index = day.month - 1 + months
    year = day.year + index // 12
    month = index % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


# =============================================================================
# DISPLAY
# =============================================================================


def format_relative(
    due_date: date,
    recurrence: str | None = None,
    reference: date | None = None,
) -> str:
    """
    Human-readable due label.

    Today / Tomorrow / Yesterday for adjacent days, otherwise a short
    month/day label with a signed day count, e.g. "Oct 25 (5d from now)".
    """
    reference = reference or today()
    days = (due_date - reference).days

    if days == 0:
        label = "Today"
    elif days == 1:
        label = "Tomorrow"
    elif days == -1:
        label = "Yesterday"
    elif days > 0:
        label = f"{_short_date(due_date)} ({days}d from now)"
    else:
        label = f"{_short_date(due_date)} ({abs(days)}d ago)"

    if recurrence and recurrence != RecurrenceTag.NONE:
        label += f" [{recurrence}]"
    return label


def _short_date(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}"


def format_time(hours: int, minutes: int) -> str:
    """12-hour clock label, e.g. 2:05 PM."""
    period = "PM" if hours >= 12 else "AM"
    display_hours = hours % 12 or 12
    return f"{display_hours}:{minutes:02d} {period}"


def time_of_day_label(hours: int) -> str:
    if hours < 12:
        return "morning"
    if hours < 17:
        return "afternoon"
    return "evening"


# =============================================================================
# FREE-TEXT INPUT
# =============================================================================


def parse_freeform_date(text: str) -> date | None:
    """
    Parse a typed date.

    Accepts YYYY-MM-DD, MM/DD/YYYY and DD-MM-YYYY. Returns None when nothing
    matches or the date does not exist, so the caller can ask again.
    """
    trimmed = (text or "").strip()

    match = _ISO_DATE.match(trimmed)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _safe_date(year, month, day)

    match = _SLASH_DATE.match(trimmed)
    if match:
        month, day, year = (int(g) for g in match.groups())
        return _safe_date(year, month, day)

    match = _DASH_DATE.match(trimmed)
    if match:
        day, month, year = (int(g) for g in match.groups())
        return _safe_date(year, month, day)

    return None


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_freeform_time(text: str) -> time | None:
    """
    Parse a typed time of day.

    Accepts 24-hour HH:MM and 12-hour forms with a meridiem
    ("2:30 PM", "9 AM", "930pm"). Returns None when nothing matches.
    """
    trimmed = (text or "").strip().upper()

    match = _TIME_24H.match(trimmed)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if 0 <= hours < 24 and 0 <= minutes < 60:
            return time(hours, minutes)

    match = _TIME_12H.match(trimmed)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2) or "0")
        period = match.group(3)

        if hours < 1 or hours > 12 or minutes >= 60:
            return None

        if period == "PM" and hours != 12:
            hours += 12
        elif period == "AM" and hours == 12:
            hours = 0
        return time(hours, minutes)

    return None


# =============================================================================
# RECURRENCE
# =============================================================================


def recurrence_rules(tag: RecurrenceTag | str | None) -> list[str]:
    """RRULE strings for the calendar store. Empty for no recurrence."""
    if not tag:
        return []
    tag = RecurrenceTag(tag)
    rule = _RRULES.get(tag)
    return [rule] if rule else []


def recurrence_from_rules(rules: list[str] | tuple[str, ...]) -> str | None:
    """
    Map calendar RRULE strings back to a preset tag.

    Rules that match no preset are returned joined with ';'.
    """
    if not rules:
        return None
    if len(rules) == 1:
        for tag, rule in _RRULES.items():
            if rules[0] == rule:
                return tag.value
    return ";".join(rules)

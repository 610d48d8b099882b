#!/usr/bin/env python3
"""
taskcal CLI - read-only views over the merged calendar.
"""

import asyncio
import sys
from datetime import timedelta

from taskcal import config
from taskcal.config import load_settings
from taskcal.errors import RemoteError
from taskcal.integrations import build_default_facade
from taskcal.observability import configure_logging
from taskcal.panel.state import month_grid
from taskcal.schedule.commands import load_items
from taskcal.schedule.merger import group_by_date, items_for_month, upcoming_items
from taskcal.schedule.normalizer import (
    MIDNIGHT,
    format_relative,
    format_time,
    localize,
    month_bounds,
    parse_freeform_date,
    parse_freeform_time,
    time_of_day_label,
    today,
)
from taskcal.schedule.presets import (
    DATE_PRESETS,
    RECURRENCE_PRESETS,
    TIME_PRESETS,
    describe_preset_date,
    describe_preset_time,
)


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list = None):
    """Print a simple table."""
    if not widths:
        widths = [max(len(str(row[i])) for row in [headers] + rows) for i in range(len(headers))]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths))
    print(header_str)
    print("─" * len(header_str))

    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths)))


def item_time(item) -> str:
    if item.due_instant is None:
        return "all day"
    local = item.due_instant.astimezone()
    return format_time(local.hour, local.minute)


def fetch(range_start, range_end):
    """Load merged items, or exit with the store's hint."""
    settings = load_settings()
    try:
        return asyncio.run(
            load_items(
                build_default_facade(),
                range_start,
                range_end,
                include_completed=settings.include_completed_tasks,
            )
        )
    except RemoteError as e:
        print(f"Could not load items: {e}")
        if e.hint:
            print(e.hint)
        sys.exit(1)


def cmd_agenda(args):
    """Show upcoming items."""
    days = load_settings().upcoming_days
    if args:
        try:
            days = int(args[0])
        except ValueError:
            print(f"Expected a number of days, got {args[0]}")
            return
        if days < 0:
            print(f"Days must not be negative, got {days}")
            return
    start = today()
    range_start = localize(start, MIDNIGHT, None)
    range_end = localize(start + timedelta(days=days + 1), MIDNIGHT, None)

    items = upcoming_items(fetch(range_start, range_end), days_ahead=days, reference=start)

    print_header(f"NEXT {days} DAYS")
    if not items:
        print("Nothing scheduled.")
        return

    rows = [
        [format_relative(i.due_date, i.recurrence, start), item_time(i), i.type.value, i.title]
        for i in items
    ]
    print_table(["When", "Time", "Type", "Title"], rows, [24, 8, 8, 40])


def cmd_month(args):
    """Show one month, day by day."""
    current = today()
    year, month = current.year, current.month
    if args:
        try:
            year, month = (int(part) for part in args[0].split("-"))
        except ValueError:
            print(f"Expected YYYY-MM, got {args[0]}")
            return
        if not 1 <= month <= 12:
            print(f"Month must be 1-12, got {month}")
            return

    items = items_for_month(fetch(*month_bounds(year, month)), year, month)
    by_day = group_by_date(items)

    print_header(f"{year}-{month:02d}")
    print(" ".join(f"{name:>4}" for name in ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")))
    for week in month_grid(year, month):
        cells = []
        for day in week:
            if day is None:
                cells.append("    ")
            else:
                marker = "*" if by_day.get(day) else " "
                cells.append(f"{day.day:>3}{marker}")
        print(" ".join(cells))

    for day, day_items in by_day.items():
        print(f"\n{day.strftime('%a %b')} {day.day}")
        for item in day_items:
            recurrence = f" [{item.recurrence}]" if item.recurrence else ""
            print(f"  {item_time(item):>8}  {item.title}{recurrence}")


def cmd_presets(args):
    """Show the quick-pick presets."""
    reference = today()

    print_header("DATE PRESETS")
    rows = [[p.label, p.value(reference).isoformat(), describe_preset_date(p.value(reference), reference)]
            for p in DATE_PRESETS]
    print_table(["Preset", "Date", "Description"], rows)

    print_header("TIME PRESETS")
    print_table(["Preset", "Time"], [[p.label, describe_preset_time(p.value)] for p in TIME_PRESETS])

    print_header("RECURRENCE")
    for preset in RECURRENCE_PRESETS:
        print(f"  {preset.label}")


def cmd_parse_date(args):
    """Parse a typed date."""
    text = " ".join(args)
    parsed = parse_freeform_date(text)
    if parsed is None:
        print(f"Unrecognized date: {text!r} (try YYYY-MM-DD, MM/DD/YYYY or DD-MM-YYYY)")
        return
    print(f"{parsed.isoformat()}  {format_relative(parsed)}")


def cmd_parse_time(args):
    """Parse a typed time of day."""
    text = " ".join(args)
    parsed = parse_freeform_time(text)
    if parsed is None:
        print(f"Unrecognized time: {text!r} (try 14:30, 2:30 PM or 9am)")
        return
    print(f"{parsed.strftime('%H:%M')}  {format_time(parsed.hour, parsed.minute)} {time_of_day_label(parsed.hour)}")


def cmd_help(args):
    """Show help."""
    print("""
taskcal - Tasks and Calendar in one view

COMMANDS:

  agenda [days]      Upcoming items (default from settings, 14)
  month [YYYY-MM]    Month grid and items (default this month)
  presets            Date, time and recurrence quick picks
  parse-date TEXT    Check how a typed date is read
  parse-time TEXT    Check how a typed time is read
  help               Show this help

ENVIRONMENT:

  TASKCAL_SA_FILE    Service account JSON
  TASKCAL_USER       User to impersonate
  TASKCAL_OFFLINE=1  Use empty in-memory stores
""")


COMMANDS = {
    "agenda": cmd_agenda,
    "a": cmd_agenda,
    "month": cmd_month,
    "m": cmd_month,
    "presets": cmd_presets,
    "parse-date": cmd_parse_date,
    "parse-time": cmd_parse_time,
    "help": cmd_help,
    "-h": cmd_help,
    "--help": cmd_help,
}


def main():
    """Main entry point."""
    configure_logging(config.LOG_LEVEL)

    if len(sys.argv) < 2:
        cmd_help([])
        return

    cmd = sys.argv[1]
    args = sys.argv[2:]

    if cmd in COMMANDS:
        COMMANDS[cmd](args)
    else:
        print(f"Unknown command: {cmd}")
        print("Run 'help' for available commands.")


if __name__ == "__main__":
    main()

"""Shared date and time helpers for tt-timetracker."""

from datetime import UTC, date, datetime, time, timedelta

import dateparser

TIME_FORMAT = "%H:%M:%S"
DAY_FORMAT = "%Y-%m-%d (%A)"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def parse_datetime(dt_string: str) -> datetime:
    """
    Parse a datetime string in various formats.

    Supports:
    - Relative dates: "yesterday", "today", "3 days ago"
    - Simple format: "2022-08-24" or "2022-08-24 09:00"

    Args:
        dt_string: DateTime string to parse

    Returns:
        Naive datetime in local wall-clock time, like the event log
    """
    dt = dateparser.parse(
        dt_string,
        settings={
            "RETURN_AS_TIMEZONE_AWARE": False,
            "PREFER_DATES_FROM": "past",
        },
    )

    if dt is None:
        raise ValueError(f"Unable to parse datetime string: {dt_string}")

    return dt


def window_cutoff(today: date, days: int) -> datetime:
    """Local midnight ``days`` days before ``today``."""
    return datetime.combine(today - timedelta(days=days), time.min)


def parse_day_offset(value: str | int | None, today: date) -> int:
    """
    Turn an upload window argument into a day offset.

    Args:
        value: Integer offset ("0" = today only) or a date expression
        today: Reference date for date expressions

    Returns:
        Non-negative number of days before today
    """
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        offset = value
    else:
        try:
            offset = int(value)
        except ValueError:
            offset = (today - parse_datetime(value).date()).days
    if offset < 0:
        raise ValueError(f"Day offset must not be in the future: {value}")
    return offset


def hours_to_clock(hours: float) -> str:
    """Render fractional hours as HH:MM:SS, treating them as an offset from epoch.

    Values of 24 hours or more wrap around, as a wall clock would.
    """
    return (_EPOCH + timedelta(hours=hours)).strftime(TIME_FORMAT)


def seconds_to_clock(seconds: float) -> str:
    return hours_to_clock(seconds / 3600.0)


def format_day(day: date) -> str:
    return day.strftime(DAY_FORMAT)

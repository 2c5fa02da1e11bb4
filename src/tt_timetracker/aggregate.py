"""Aggregate intervals into per-day, per-activity totals.

All functions here are pure: they take intervals and dates and return new
report objects without touching the event store.
"""

from collections.abc import Iterable
from datetime import date, timedelta

from .models import BREAK_ACTIVITY, DayReport, Interval, Report


def week_start_for(today: date) -> date:
    """Return the Monday on or before ``today``."""
    return today - timedelta(days=today.weekday())


def break_correction(break_hours: float, allowance: float) -> float:
    """Hours of break excluded from the net total.

    Break time up to ``allowance`` counts as work; anything above it is excluded.
    """
    return max(break_hours - allowance, 0.0)


def aggregate_days(intervals: Iterable[Interval], break_amount: float = 0.0) -> list[DayReport]:
    """Group intervals by start day and sum hours per activity.

    Days and activities keep their first-seen order.

    Args:
        intervals: Intervals in chronological order
        break_amount: Daily break allowance in hours

    Returns:
        One DayReport per day that has at least one interval
    """
    buckets: dict[date, dict[str, float]] = {}
    for interval in intervals:
        day = buckets.setdefault(interval.day, {})
        day[interval.activity] = day.get(interval.activity, 0.0) + interval.hours

    return [
        DayReport(
            day=day,
            activities=list(hours.items()),
            correction=break_correction(hours.get(BREAK_ACTIVITY, 0.0), break_amount),
        )
        for day, hours in buckets.items()
    ]


def build_report(
    intervals: Iterable[Interval],
    today: date,
    report_days: int = 7,
    break_amount: float = 0.0,
) -> Report:
    """Build the trailing-window report.

    Args:
        intervals: Intervals in chronological order
        today: Local date used to find the start of the current week
        report_days: Number of most recent day buckets to keep
        break_amount: Daily break allowance in hours

    Returns:
        Report with the kept days and the week-to-date net total
    """
    days = aggregate_days(intervals, break_amount)
    days = days[-report_days:] if report_days > 0 else []

    week_start = week_start_for(today)
    week_total = sum((day.total for day in days if day.day >= week_start), 0.0)

    return Report(days=days, week_start=week_start, week_total=week_total, report_days=report_days)

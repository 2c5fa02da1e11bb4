"""Turn the flat event log into explicit intervals.

Each event runs until its chronological successor, or until ``now`` for the
last event of the window. A ``stop`` event closes the previous interval and
never starts one of its own.
"""

import re
from collections.abc import Iterable, Sequence
from datetime import datetime

from .models import Interval, LogEntry, WorklogItem


def pair_events(events: Sequence, now: datetime) -> list[LogEntry]:
    """Pair every event with its end time.

    Args:
        events: Events in chronological order
        now: End time for the last event

    Returns:
        One LogEntry per event; stop events get ``end=None``
    """
    entries = []
    for idx, event in enumerate(events):
        if event.is_stop:
            entries.append(LogEntry(event=event, end=None))
            continue
        end = events[idx + 1].timestamp if idx + 1 < len(events) else now
        # Clock skew or manual edits may put the successor first
        entries.append(LogEntry(event=event, end=max(end, event.timestamp)))
    return entries


def derive_intervals(events: Sequence, now: datetime) -> list[Interval]:
    """Derive the non-overlapping intervals of an event window.

    Args:
        events: Events in chronological order (already time-filtered)
        now: End time for the last event

    Returns:
        One Interval per non-stop event, in event order
    """
    return [
        Interval(
            start=entry.event.timestamp,
            end=entry.end,
            activity=entry.event.activity,
            message=entry.event.message,
        )
        for entry in pair_events(events, now)
        if entry.end is not None
    ]


def filter_entries(entries: Iterable[LogEntry], text: str) -> list[LogEntry]:
    """Keep entries whose activity or message contains ``text`` (case-sensitive)."""
    if not text:
        return list(entries)
    return [e for e in entries if text in e.event.activity or text in e.event.message]


def last_entries(
    events: Sequence, now: datetime, limit: int, text: str = ""
) -> list[LogEntry]:
    """Build the raw listing: the most recent ``limit`` events, then the filter.

    Durations run to the next event of the listed slice, so the filter never
    changes how long a row lasted.
    """
    recent = list(events)[-limit:] if limit > 0 else []
    return filter_entries(pair_events(recent, now), text)


def upload_candidates(
    intervals: Iterable[Interval], issue_pattern: str, default_comment: str = "n/a"
) -> list[WorklogItem]:
    """Select the intervals whose activity looks like an issue key.

    Args:
        intervals: Derived intervals
        issue_pattern: Regular expression searched for in the activity
        default_comment: Comment used when the interval has no message

    Returns:
        One WorklogItem per matching interval, in interval order
    """
    pattern = re.compile(issue_pattern)
    return [
        WorklogItem(
            issue=interval.activity.upper(),
            comment=interval.message or default_comment,
            started=interval.start,
            duration_seconds=int(interval.duration_seconds),
        )
        for interval in intervals
        if pattern.search(interval.activity)
    ]

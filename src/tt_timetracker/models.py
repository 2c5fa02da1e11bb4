"""Data types shared by the event store, the interval deriver and the aggregator."""

from dataclasses import dataclass, field
from datetime import date, datetime

STOP_ACTIVITY = "stop"
BREAK_ACTIVITY = "break"


@dataclass(frozen=True)
class Event:
    """One record of the event log: ``activity`` started at ``timestamp``.

    The reserved activity ``stop`` means that nothing is tracked from this point.
    """

    timestamp: datetime
    activity: str
    message: str = ""

    @property
    def is_stop(self) -> bool:
        return self.activity == STOP_ACTIVITY


@dataclass(frozen=True)
class Interval:
    """A derived span between an event and its chronological successor."""

    start: datetime
    end: datetime
    activity: str
    message: str = ""

    @property
    def duration_seconds(self) -> float:
        return max((self.end - self.start).total_seconds(), 0.0)

    @property
    def hours(self) -> float:
        return self.duration_seconds / 3600.0

    @property
    def day(self) -> date:
        return self.start.date()


@dataclass(frozen=True)
class LogEntry:
    """A raw log row for listings.

    ``end`` is None for stop events, which close the previous entry but do not
    span any time themselves.
    """

    event: Event
    end: datetime | None

    @property
    def duration_seconds(self) -> float | None:
        if self.end is None:
            return None
        return max((self.end - self.event.timestamp).total_seconds(), 0.0)


@dataclass
class DayReport:
    """Accumulated hours per activity for one calendar day.

    Attributes:
        day: Local calendar date the intervals started on
        activities: (activity, hours) pairs in first-seen order
        correction: Break hours excluded from the net total
    """

    day: date
    activities: list[tuple[str, float]] = field(default_factory=list)
    correction: float = 0.0

    @property
    def gross_total(self) -> float:
        return sum((hours for _, hours in self.activities), 0.0)

    @property
    def total(self) -> float:
        """Net total: all activity hours minus the break correction."""
        return max(self.gross_total - self.correction, 0.0)

    def hours_for(self, activity: str) -> float:
        for name, hours in self.activities:
            if name == activity:
                return hours
        return 0.0


@dataclass
class Report:
    """Trailing-window report: the most recent days plus the week-to-date total."""

    days: list[DayReport]
    week_start: date
    week_total: float
    report_days: int


@dataclass(frozen=True)
class WorklogItem:
    """What the upload adapter needs to submit one worklog."""

    issue: str
    comment: str
    started: datetime
    duration_seconds: int

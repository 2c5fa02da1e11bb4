"""
Helper utilities for creating test fixtures and test data.

This module provides a builder pattern for creating event logs
and fixtures for tt-timetracker.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from tt_timetracker.config import Settings
from tt_timetracker.event_store import CsvEventStore, format_line
from tt_timetracker.models import Event


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep every test away from the real home directory and Jira."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setattr(
        "tt_timetracker.config.user_config_path",
        lambda appname, appauthor=None, **kwargs: tmp_path / "config" / appname,
    )
    monkeypatch.setenv("TT_FILE", str(tmp_path / "time-tracker.csv"))
    monkeypatch.setenv("NO_COLOR", "1")
    for name in ("JIRA_API_HOST", "JIRA_API_USER", "JIRA_API_TOKEN", "VISUAL", "EDITOR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    """Restore the root logger handlers after each test.

    The CLI reconfigures logging, which would otherwise leak handlers bound
    to captured streams into subsequent tests.
    """
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level

    yield

    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def log_path(tmp_path) -> Path:
    return tmp_path / "time-tracker.csv"


@pytest.fixture
def settings(log_path) -> Settings:
    return Settings(file=log_path)


@pytest.fixture
def store(log_path) -> CsvEventStore:
    return CsvEventStore(log_path)


class EventLogBuilder:
    """
    Builder class for creating event logs.

    Provides a fluent interface for constructing test scenarios.
    Each call appends an event after the previous one.

    Example:
        >>> events = (EventLogBuilder()
        ...     .add("meetings", "standup", minutes=15)
        ...     .add("break", "lunch", minutes=30)
        ...     .stop()
        ...     .build())
    """

    def __init__(self, start_time: datetime | None = None):
        """
        Initialize the event log builder.

        Args:
            start_time: Time of the first event (defaults to a fixed test time)
        """
        self.start_time = start_time or datetime(2022, 8, 24, 9, 0, 0)
        self.current_time = self.start_time
        self.events: list[Event] = []

    def add(self, activity: str, message: str = "", minutes: float = 0) -> "EventLogBuilder":
        """Add an event at the current time, then advance the clock by ``minutes``."""
        self.events.append(Event(self.current_time, activity, message))
        self.current_time += timedelta(minutes=minutes)
        return self

    def stop(self, message: str = "", minutes: float = 0) -> "EventLogBuilder":
        return self.add("stop", message, minutes)

    def at(self, timestamp: datetime) -> "EventLogBuilder":
        """Move the clock to an absolute time (may go backwards)."""
        self.current_time = timestamp
        return self

    def build(self) -> list[Event]:
        return list(self.events)

    def write(self, path: Path, separator: str = ",") -> Path:
        """Write the events as an event log file."""
        with path.open("a", encoding="utf-8") as f:
            for event in self.events:
                f.write(format_line(event, separator))
        return path


@pytest.fixture
def builder() -> EventLogBuilder:
    return EventLogBuilder()

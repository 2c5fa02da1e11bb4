"""Append-only storage for activity events.

This module provides the EventStore ABC and its implementations. The
CsvEventStore is the ONLY place that knows about the on-disk log format;
everything else works on Event objects.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from .models import Event

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StorageError(Exception):
    """Raised when the event log cannot be read or written."""

    pass


class ParseError(ValueError):
    """Raised when a log line is not a valid record."""

    pass


def format_line(event: Event, separator: str = ",") -> str:
    """Serialize an event as one newline-terminated log line.

    The message field is always written, so a record without a message ends
    with a trailing separator.
    """
    return f"{event.timestamp.strftime(DATE_FORMAT)}{separator}{event.activity}{separator}{event.message}\n"


def parse_line(line: str, separator: str = ",") -> Event:
    """Parse one log line into an Event.

    Args:
        line: Raw line, with or without the trailing newline
        separator: Field separator

    Returns:
        The parsed event

    Raises:
        ParseError: If the line has too few fields or a bad timestamp
    """
    fields = line.strip().split(separator, 2)
    if len(fields) < 2:
        raise ParseError(f"expected at least 2 fields, got {len(fields)}")

    timestamp_str, activity = fields[0].strip(), fields[1].strip()
    if not activity:
        raise ParseError("empty activity")
    try:
        timestamp = datetime.strptime(timestamp_str, DATE_FORMAT)
    except ValueError as e:
        raise ParseError(f"invalid timestamp {timestamp_str!r}") from e

    message = fields[2].strip() if len(fields) > 2 else ""
    return Event(timestamp=timestamp, activity=activity, message=message)


class EventStore(ABC):
    """Abstract base class for event log backends."""

    @abstractmethod
    def append(self, event: Event) -> None:
        """Append one event to the log.

        Args:
            event: Event to persist

        Raises:
            StorageError: If the log cannot be written
        """
        pass

    @abstractmethod
    def read_since(self, cutoff: datetime | None = None) -> list[Event]:
        """Read all events with ``timestamp >= cutoff`` in log order.

        Args:
            cutoff: Earliest timestamp to include, or None for everything

        Returns:
            Events in chronological (= log) order; empty if the log does not exist

        Raises:
            StorageError: If the log exists but cannot be read
        """
        pass


class CsvEventStore(EventStore):
    """Delimited text file backend, one record per line."""

    def __init__(self, path: Path | str, separator: str = ",") -> None:
        self.path = Path(path)
        self.separator = separator

    def append(self, event: Event) -> None:
        line = format_line(event, self.separator)
        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            raise StorageError(f"cannot write {self.path}: {e.strerror or e}") from e
        logger.debug(f"Appended {line.rstrip()!r} to {self.path}")

    def read_since(self, cutoff: datetime | None = None) -> list[Event]:
        if not self.path.exists():
            logger.debug(f"Event log {self.path} does not exist yet")
            return []

        events = []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                for lineno, line in enumerate(f, start=1):
                    if not line.strip():
                        continue
                    try:
                        event = parse_line(line, self.separator)
                    except ParseError as e:
                        logger.warning(f"Skipping malformed line {lineno} in {self.path}: {e}")
                        continue
                    if cutoff is None or event.timestamp >= cutoff:
                        events.append(event)
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"cannot read {self.path}: {e}") from e

        return events


class MemoryEventStore(EventStore):
    """In-memory backend for tests and dry runs."""

    def __init__(self, events: list[Event] | None = None) -> None:
        self.events: list[Event] = list(events or [])

    def append(self, event: Event) -> None:
        self.events.append(event)

    def read_since(self, cutoff: datetime | None = None) -> list[Event]:
        return [e for e in self.events if cutoff is None or e.timestamp >= cutoff]

"""Record start/stop events in the event log."""

import logging
from datetime import datetime

from .event_store import EventStore
from .models import Event

logger = logging.getLogger(__name__)


def normalize(token: str, message: str | None, separator: str = ",") -> tuple[str, str]:
    """Normalize an activity token and its message for storage.

    A token such as ``meetings,standup`` is split on the separator: the first
    part becomes the activity and the rest is prefixed to the message.

    Args:
        token: Activity token as typed by the user
        message: Optional free-text message
        separator: Field separator of the event log

    Returns:
        Tuple of (activity, message) without separators or line breaks
    """
    parts = token.split(separator)
    activity = parts[0].strip().lower().replace(separator, "_")
    activity = "_".join(line.strip() for line in activity.splitlines())
    extra = " ".join(parts[1:]).replace(separator, "_")
    message = (message or "").replace(separator, "_")
    message = f"{extra} {message}".strip()
    # Line breaks would split the record
    message = " ".join(message.splitlines())
    return activity, message


class Recorder:
    """Appends timestamped events for the activities the user starts."""

    def __init__(self, store: EventStore, separator: str = ",", clock=datetime.now) -> None:
        self.store = store
        self.separator = separator
        self.clock = clock

    def record(self, token: str, message: str | None = None) -> Event:
        """Append one event with the current time.

        Args:
            token: Activity token (``stop`` ends tracking)
            message: Optional message

        Returns:
            The stored event

        Raises:
            ValueError: If the token has no activity name
            StorageError: If the event log cannot be written
        """
        activity, message = normalize(token, message, self.separator)
        if not activity:
            raise ValueError("Activity name must not be empty")
        event = Event(
            timestamp=self.clock().replace(microsecond=0),
            activity=activity,
            message=message,
        )
        self.store.append(event)
        logger.info(f"Recorded activity {activity!r} with message {message!r}")
        return event

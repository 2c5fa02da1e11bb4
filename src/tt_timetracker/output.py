"""Logging and output utilities for tt-timetracker."""

import json
import logging
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

from termcolor import cprint

# Colors of the user-facing output
COLORS = {
    "header": "white",
    "list_header": "cyan",
    "day": "cyan",
    "week_start": "red",
    "activity": "white",
    "total": "yellow",
    "week_total": "green",
    "break": "blue",
    "stop": "red",
    "record": "green",
    "request": "cyan",
    "success": "green",
    "failure": "red",
    "issues": "yellow",
}


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs structured logs with all relevant context.
    Can output in JSON format for later analysis.
    """

    def __init__(self, use_json: bool = False, run_mode: dict = None) -> None:
        super().__init__()
        self.use_json = use_json
        self.run_mode = run_mode or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add run mode information (for filtering in log analysis)
        if self.run_mode:
            log_data["run_mode"] = self.run_mode

        # Add custom fields if present
        for key in ["activity", "event_ts", "duration", "issue", "path"]:
            if hasattr(record, key):
                val = getattr(record, key)
                if isinstance(val, datetime):
                    log_data[key] = val.isoformat()
                elif isinstance(val, timedelta):
                    log_data[key] = f"{val.total_seconds():.1f}s"
                else:
                    log_data[key] = str(val)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.use_json:
            return json.dumps(log_data)
        return self._format_human(log_data)

    def _format_human(self, log_data: dict) -> str:
        """Format log data in a human-readable way."""
        now = datetime.now().strftime("%H:%M:%S")
        msg = log_data["message"]
        if "activity" in log_data:
            msg = f"{msg} (activity: {log_data['activity']})"
        if "issue" in log_data:
            msg = f"{msg} (issue: {log_data['issue']})"
        full_msg = f"{now} {log_data['level']}: {msg}"
        if "exception" in log_data:
            full_msg = f"{full_msg}\n{log_data['exception']}"
        # No color formatting here - that's handled by the handler
        return full_msg


class ColoredConsoleHandler(logging.StreamHandler):
    """
    Console handler that adds colors based on log level.
    Warnings are yellow, errors are bold and red.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            attrs = []
            color = None

            if record.levelno >= logging.ERROR:
                attrs = ["bold"]
                color = "red"
            elif record.levelno >= logging.WARNING:
                color = "yellow"
            # INFO and DEBUG get no special formatting

            if color or attrs:
                cprint(msg, color=color, attrs=attrs, file=self.stream)
            else:
                self.stream.write(msg + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(
    json_format: bool = False,
    log_level: int = logging.DEBUG,
    console_log_level: int = logging.WARNING,
    log_file: str | Path | None = None,
    run_mode: dict = None,
) -> None:
    """
    Set up the logging system.

    Args:
        json_format: If True, write the log file in JSON lines format
        log_level: Level of the log file (default: DEBUG)
        console_log_level: Console logging level (default: WARNING)
        log_file: Optional file path to write logs to. If None, logs to console only.
        run_mode: Optional dict with run mode info (subcommand) for filtering logs
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    root_logger.handlers.clear()

    if log_file and log_level:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredFormatter(use_json=json_format, run_mode=run_mode))
        root_logger.addHandler(file_handler)
    if console_log_level:
        # Diagnostics go to stderr so they never mix with reports
        console_handler = ColoredConsoleHandler(sys.stderr)
        console_handler.setLevel(console_log_level)
        console_handler.setFormatter(StructuredFormatter(run_mode=run_mode))
        root_logger.addHandler(console_handler)


def user_output(msg: str, color: str = None, attrs: list = None) -> None:
    """
    Output message to the user (program output, not debug logging).
    This is separate from logging and is for user-facing program output.

    Args:
        msg: Message to display to the user
        color: Optional color name or a key of COLORS (e.g., 'total', 'red')
        attrs: Optional attributes (e.g., ['bold'])
    """
    color = COLORS.get(color, color) if color else None
    if color or attrs:
        cprint(msg, color=color, attrs=attrs)
    else:
        print(msg)

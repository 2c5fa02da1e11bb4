"""Report and listing formatters.

Renders aggregated reports and raw log listings as colored text, and
reports as CSV/TSV for spreadsheets.
"""

import csv
import sys
from collections.abc import Iterable

from .models import BREAK_ACTIVITY, LogEntry, Report
from .utils import format_day, hours_to_clock, seconds_to_clock

Line = tuple[str, str | None]

COLUMN_WIDTH = 30
LABEL_WIDTH = 20


def report_lines(report: Report) -> list[Line]:
    """Render a report as (text, color role) lines.

    Layout:
        header, blank line, then per day the day line, one line per activity,
        the net total and a blank line, and finally the week total.
    """
    lines: list[Line] = [
        (f"{' ' * 8}Report for the last {report.report_days} days", "header"),
        ("", None),
    ]

    for day in report.days:
        role = "week_start" if day.day == report.week_start else "day"
        lines.append((f"{' ' * 8}{format_day(day.day)}", role))
        for activity, hours in day.activities:
            lines.append(
                (f"{activity:>{LABEL_WIDTH}}: {hours_to_clock(hours)} ({hours:2.3f})", "activity")
            )
        total = day.total
        lines.append(
            (
                f"{'total':>{LABEL_WIDTH}}: {hours_to_clock(total)} ({total:2.3f}) "
                f"[excl. break {day.correction:2.3f}]",
                "total",
            )
        )
        lines.append(("", None))

    lines.append((f"{' ' * 10}Week total: {report.week_total:2.3f}", "week_total"))
    lines.append(("", None))
    return lines


def list_header(limit: int, text: str = "") -> str:
    filter_str = f" [filter: {text}]" if text else ""
    return f"List of the last {limit} entries{filter_str}"


def entry_line(entry: LogEntry) -> Line:
    """Render one raw log row: timestamp, activity, message and duration."""
    event = entry.event
    duration = entry.duration_seconds
    columns = [
        event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        event.activity,
        event.message or "n/a",
        "-" * 8 if duration is None else seconds_to_clock(duration),
    ]
    text = " ".join(column.ljust(COLUMN_WIDTH) for column in columns)

    if event.is_stop:
        role = "stop"
    elif event.activity == BREAK_ACTIVITY:
        role = "break"
    else:
        role = "activity"
    return text, role


def list_lines(entries: Iterable[LogEntry], limit: int, text: str = "") -> list[Line]:
    lines: list[Line] = [(list_header(limit, text), "list_header"), ("", None)]
    lines.extend(entry_line(entry) for entry in entries)
    return lines


def format_as_csv(report: Report, delimiter: str = ",", file=None) -> None:
    """Write the report as delimited rows: day, activity, hours.

    Each day ends with a ``total`` row holding the net total.

    Args:
        report: Report to export
        delimiter: Field delimiter (',' for CSV, '\\t' for TSV)
        file: Output stream (defaults to stdout)
    """
    writer = csv.writer(file or sys.stdout, delimiter=delimiter, lineterminator="\n")
    writer.writerow(["day", "activity", "hours"])
    for day in report.days:
        for activity, hours in day.activities:
            writer.writerow([day.day.isoformat(), activity, f"{hours:.3f}"])
        writer.writerow([day.day.isoformat(), "total", f"{day.total:.3f}"])

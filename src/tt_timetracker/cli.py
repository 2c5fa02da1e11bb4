#!/usr/bin/env python3
"""
Command-line interface for tt-timetracker.

Every invocation either records an activity or derives a report from the
event log:

  tt meetings standup    # start tracking "meetings" with message "standup"
  tt stop                # stop tracking
  tt report              # per-day totals for the last days
"""

import argparse
import logging
import shlex
import subprocess
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

import toml
from termcolor import colored

from .aggregate import build_report
from .config import Settings, load_config, load_settings
from .config_validation import ConfigValidationError, validate_config
from .event_store import CsvEventStore, EventStore, StorageError
from .intervals import derive_intervals, last_entries, upload_candidates
from .jira import IntegrationError, JiraClient, JiraSettings, describe_issue
from .output import setup_logging, user_output
from .recorder import Recorder
from .report import format_as_csv, list_lines, report_lines
from .utils import parse_day_offset, window_cutoff

logger = logging.getLogger(__name__)


class Command(Enum):
    """Operations of the tool, resolved once from the subcommand name."""

    HELP = "help"
    REPORT = "report"
    LIST = "list"
    EDIT = "edit"
    ACTIVE = "active"
    UPLOAD = "upload"
    STOP = "stop"
    RECORD = "start"
    VALIDATE = "validate"


SUBCOMMANDS = {
    "report": Command.REPORT,
    "rep": Command.REPORT,
    "list": Command.LIST,
    "ls": Command.LIST,
    "edit": Command.EDIT,
    "active": Command.ACTIVE,
    "upload": Command.UPLOAD,
    "stop": Command.STOP,
}

# Internal subcommand for recording; never matched against the first token
RECORD_SUBCOMMAND = "start"

# Global options that consume the following argument
OPTIONS_WITH_VALUE = {"--config", "--log-level", "--console-log-level", "--log-file"}

LOG_LEVELS = ["NONE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="tt",
        description="Simple time tracker on the command-line",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Anything that is not a subcommand starts tracking an activity:
  %(prog)s meetings standup
  %(prog)s STORY-123 implementation
        """,
    )

    # Global options (available for all subcommands)
    parser.add_argument(
        "--config",
        metavar="FILE",
        type=Path,
        help="Path to configuration file (default: tt-timetracker/config.toml in the user config dir)",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="DEBUG",
        help="Set log file level (default: DEBUG, only used with --log-file)",
    )
    parser.add_argument(
        "--console-log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="Set console logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file",
        metavar="FILE",
        type=Path,
        help="Write diagnostic logs to this file",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Write the log file in JSON format",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configuration file and exit",
    )

    subparsers = parser.add_subparsers(dest="subcommand", help="Subcommand to run")

    # ===== REPORT subcommand =====
    report_parser = subparsers.add_parser(
        "report", aliases=["rep"], help="Show per-day totals for the last days"
    )
    report_parser.add_argument(
        "--days", type=int, metavar="N", help="Number of days to show (default: from config)"
    )
    report_parser.add_argument(
        "--format",
        choices=["text", "csv", "tsv"],
        default="text",
        help="Output format (default: text)",
    )

    # ===== LIST subcommand =====
    list_parser = subparsers.add_parser("list", aliases=["ls"], help="List the last entries")
    list_parser.add_argument(
        "filter", nargs="*", help="Only show entries whose activity or message contains this"
    )
    list_parser.add_argument(
        "--entries", type=int, metavar="N", help="Number of entries (default: from config)"
    )

    subparsers.add_parser("edit", help="Edit the event log in a text editor")
    subparsers.add_parser("active", help="List active Jira issues")

    # ===== UPLOAD subcommand =====
    upload_parser = subparsers.add_parser("upload", help="Upload worklogs for Jira issues")
    upload_parser.add_argument(
        "offset",
        nargs="?",
        metavar="FROM",
        help="Day offset (default 0 = today only) or a date like 'yesterday'",
    )

    # ===== STOP / START subcommands =====
    stop_parser = subparsers.add_parser("stop", help="Stop tracking the current activity")
    stop_parser.add_argument("message", nargs=argparse.REMAINDER, help="Optional message")

    start_parser = subparsers.add_parser(RECORD_SUBCOMMAND)
    start_parser.add_argument("activity", help="Activity name")
    start_parser.add_argument("message", nargs=argparse.REMAINDER, help="Optional message")

    return parser


def insert_default_subcommand(argv: list[str]) -> list[str]:
    """
    Turn ``tt <activity> [message]`` into ``tt start <activity> [message]``.

    The first positional token picks the subcommand (case-insensitive); if it
    is not a known subcommand it is the activity to record.
    """
    idx = 0
    while idx < len(argv):
        arg = argv[idx]
        if arg in OPTIONS_WITH_VALUE:
            idx += 2
            continue
        if arg.startswith("-"):
            idx += 1
            continue
        if arg.lower() in SUBCOMMANDS:
            return argv[:idx] + [arg.lower()] + argv[idx + 1 :]
        return argv[:idx] + [RECORD_SUBCOMMAND] + argv[idx:]
    return argv


def resolve_command(subcommand: Optional[str], validate: bool = False) -> Command:
    if validate:
        return Command.VALIDATE
    if not subcommand:
        return Command.HELP
    if subcommand == RECORD_SUBCOMMAND:
        return Command.RECORD
    return SUBCOMMANDS[subcommand]


def configure_logging(args: argparse.Namespace, command: Command) -> None:
    """
    Configure logging based on command-line arguments.

    Args:
        args: Parsed command-line arguments
        command: The command being executed
    """
    log_level = getattr(logging, args.log_level, 0)
    console_log_level = getattr(logging, args.console_log_level, 0)

    setup_logging(
        json_format=args.log_json,
        log_level=log_level,
        console_log_level=console_log_level,
        log_file=args.log_file,
        run_mode={"subcommand": command.value},
    )


def help_text(settings: Settings) -> str:
    """Usage text shown when tt is called without arguments."""
    return f"""
        {colored('Usage:', 'cyan')}
          tt [command]              execute the given command
          tt [activity] [message]   start tracking time of a given activity, with an optional message

        {colored('Commands:', 'cyan')}
          rep|report                show report for the last {settings.report_days} days, grouped by activity
          ls|list [filter]          list the last {settings.list_entries} entries
          break   [message]         start break activity
          stop    [message]         stop tracking time of the current activity
          edit                      edit entries in text editor
          active                    list active jira issues
          upload  [from day offset] upload worklog for jira issues (default offset = 0, which means only today)
          --validate                validate the configuration file

        Events are stored in {settings.file}

        To work with Jira, please provide JIRA_API_USER, JIRA_API_TOKEN, JIRA_API_HOST environment variables.
        To create an API token please visit: https://id.atlassian.com/manage-profile/security/api-tokens

        An activity is considered a Jira ticket if it matches the /{settings.issue_pattern}/ pattern.
    """


def print_lines(lines) -> None:
    for text, role in lines:
        user_output(text, role)


def read_events(store: EventStore, cutoff: datetime) -> list:
    """Read the event window; an unreadable log counts as empty."""
    try:
        return store.read_since(cutoff)
    except StorageError as e:
        logger.warning(f"Reading the event log failed, showing no entries: {e}")
        return []


def run_report(args: argparse.Namespace, settings: Settings, store: EventStore) -> int:
    """Execute the report subcommand."""
    now = datetime.now()
    days = args.days if args.days and args.days > 0 else settings.report_days
    events = read_events(store, window_cutoff(now.date(), days))
    intervals = derive_intervals(events, now)
    report = build_report(intervals, now.date(), days, settings.break_amount)

    if args.format == "csv":
        format_as_csv(report, delimiter=",")
    elif args.format == "tsv":
        format_as_csv(report, delimiter="\t")
    else:
        print_lines(report_lines(report))
    return 0


def run_list(args: argparse.Namespace, settings: Settings, store: EventStore) -> int:
    """Execute the list subcommand."""
    now = datetime.now()
    limit = args.entries if args.entries and args.entries > 0 else settings.list_entries
    text = " ".join(args.filter).strip()
    events = read_events(store, window_cutoff(now.date(), settings.report_days))
    entries = last_entries(events, now, limit, text)
    print_lines(list_lines(entries, limit, text))
    return 0


def run_edit(settings: Settings) -> int:
    """Execute the edit subcommand, passing through the editor's exit code."""
    cmd = shlex.split(settings.editor) + [str(settings.file)]
    logger.debug(f"Running {cmd}")
    try:
        return subprocess.run(cmd, check=False).returncode
    except FileNotFoundError:
        user_output(f"ERROR: Editor not found: {cmd[0]}", "failure")
        return 127


def create_jira_client(settings: Settings) -> JiraClient:
    jira_settings = JiraSettings.from_env(verify_ssl=settings.verify_ssl, timeout=settings.timeout)
    return JiraClient(jira_settings)


def print_status(result) -> None:
    if result.status is not None:
        user_output(
            f"Status: {result.status} - {result.reason}", "success" if result.ok else "failure"
        )
    if result.error:
        user_output(f"ERROR: {result.error}", "failure")


def run_active(settings: Settings) -> int:
    """Execute the active subcommand. Failures are printed, never fatal."""
    try:
        client = create_jira_client(settings)
    except IntegrationError as e:
        user_output(f"ERROR: {e}", "failure")
        return 0

    user_output(f"GET {client.search_url()}", "request")
    result = client.active_issues()
    print_status(result)
    if not result.ok:
        return 0

    issues = result.data.get("issues", [])
    user_output(f"Active issues ({len(issues)})", "issues")
    for issue in issues:
        user_output(f"* {describe_issue(issue)}")
    return 0


def run_upload(args: argparse.Namespace, settings: Settings, store: EventStore) -> int:
    """Execute the upload subcommand. Each worklog succeeds or fails on its own."""
    now = datetime.now()
    try:
        offset = parse_day_offset(args.offset, now.date())
    except ValueError as e:
        user_output(f"ERROR: {e}", "failure")
        return 1

    try:
        client = create_jira_client(settings)
    except IntegrationError as e:
        user_output(f"ERROR: {e}", "failure")
        return 0

    events = read_events(store, window_cutoff(now.date(), offset))
    items = upload_candidates(
        derive_intervals(events, now), settings.issue_pattern, settings.default_comment
    )
    if not items:
        user_output("No worklogs to upload")
        return 0

    uploaded = 0
    for item in items:
        started = item.started.strftime("%Y-%m-%d %H:%M:%S")
        user_output(
            f"POST {client.worklog_url(item.issue)} "
            f"[{item.comment}, {started}, {item.duration_seconds}s]",
            "request",
        )
        result = client.create_worklog(item)
        print_status(result)
        if result.ok:
            uploaded += 1
        else:
            logger.warning("Worklog upload failed", extra={"issue": item.issue})

    logger.info(f"Uploaded {uploaded}/{len(items)} worklogs")
    return 0


def run_record(settings: Settings, store: EventStore, token: str, message: str) -> int:
    """Record an activity. Storage failures are fatal."""
    recorder = Recorder(store, settings.separator)
    try:
        event = recorder.record(token, message)
    except (StorageError, ValueError) as e:
        user_output(f"ERROR: {e}", "failure")
        return 1

    user_output(
        f"Record activity [{event.activity}] with message [{event.message or 'n/a'}]", "record"
    )
    return 0


def run_validate(args: argparse.Namespace) -> int:
    """Execute the --validate option."""
    config = load_config(args.config)
    errors, warnings = validate_config(config)
    for warning in warnings:
        print(f"  warning: {warning}")
    if errors:
        print("Configuration errors found:")
        for error in errors:
            print(f"  - {error}")
        return 1
    print("Configuration is valid")
    return 0


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = create_parser()
    args = parser.parse_args(insert_default_subcommand(argv))
    command = resolve_command(args.subcommand, args.validate)

    # Validate config file if specified
    if args.config and not args.config.exists():
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        return 1

    configure_logging(args, command)

    try:
        if command == Command.VALIDATE:
            return run_validate(args)

        try:
            settings = load_settings(args.config)
        except (ConfigValidationError, toml.TomlDecodeError) as e:
            print(f"Error: Invalid configuration: {e}", file=sys.stderr)
            return 1
        store = CsvEventStore(settings.file, settings.separator)

        if command == Command.HELP:
            print(help_text(settings))
            return 0
        elif command == Command.REPORT:
            return run_report(args, settings, store)
        elif command == Command.LIST:
            return run_list(args, settings, store)
        elif command == Command.EDIT:
            return run_edit(settings)
        elif command == Command.ACTIVE:
            return run_active(settings)
        elif command == Command.UPLOAD:
            return run_upload(args, settings, store)
        elif command == Command.STOP:
            return run_record(settings, store, "stop", " ".join(args.message))
        elif command == Command.RECORD:
            return run_record(settings, store, args.activity, " ".join(args.message))
        else:
            print(f"Error: Unknown command: {command}", file=sys.stderr)
            return 1

    except KeyboardInterrupt:
        print("\nExiting...")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.debug("Unexpected error", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())

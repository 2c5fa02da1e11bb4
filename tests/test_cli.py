"""Tests for CLI argument parsing and the end-to-end commands."""

import re
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from tt_timetracker.cli import (
    Command,
    create_parser,
    insert_default_subcommand,
    main,
    resolve_command,
)
from tt_timetracker.event_store import format_line
from tt_timetracker.jira import JiraResult
from tt_timetracker.models import Event

JIRA_ENV = {
    "JIRA_API_HOST": "https://example.atlassian.net",
    "JIRA_API_USER": "dev@example.com",
    "JIRA_API_TOKEN": "secret",
}


def plain(text: str) -> str:
    return re.sub(r"\x1b\[\d+m", "", text)


def write_events(path: Path, events: list[Event]) -> None:
    with path.open("a", encoding="utf-8") as f:
        for event in events:
            f.write(format_line(event))


NOW = datetime.now().replace(microsecond=0)


def minutes_ago(minutes: float) -> datetime:
    return NOW - timedelta(minutes=minutes)


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_parser_has_all_subcommands(self) -> None:
        parser = create_parser()

        for subcommand in ["report", "list", "edit", "active", "upload", "stop"]:
            args = parser.parse_args([subcommand])
            assert args.subcommand == subcommand

    def test_aliases(self) -> None:
        parser = create_parser()
        assert resolve_command(parser.parse_args(["rep"]).subcommand) == Command.REPORT
        assert resolve_command(parser.parse_args(["ls"]).subcommand) == Command.LIST

    def test_no_subcommand_is_help(self) -> None:
        assert resolve_command(create_parser().parse_args([]).subcommand) == Command.HELP

    def test_validate_option(self) -> None:
        args = create_parser().parse_args(["--validate"])
        assert resolve_command(args.subcommand, args.validate) == Command.VALIDATE

    def test_global_options_available(self) -> None:
        args = create_parser().parse_args(
            ["--config", "test.toml", "--console-log-level", "DEBUG", "report", "--days", "3"]
        )

        assert args.config == Path("test.toml")
        assert args.console_log_level == "DEBUG"
        assert args.days == 3

    def test_report_format_choices(self) -> None:
        parser = create_parser()
        assert parser.parse_args(["report", "--format", "csv"]).format == "csv"
        with pytest.raises(SystemExit):
            parser.parse_args(["report", "--format", "xml"])

    def test_start_takes_rest_as_message(self) -> None:
        args = create_parser().parse_args(["start", "meetings", "sprint", "planning"])
        assert args.activity == "meetings"
        assert args.message == ["sprint", "planning"]


class TestDefaultSubcommand:
    """Tests for turning a freeform activity into the start subcommand."""

    def test_activity_becomes_start(self) -> None:
        assert insert_default_subcommand(["meetings", "standup"]) == [
            "start",
            "meetings",
            "standup",
        ]

    def test_known_subcommand_is_kept(self) -> None:
        assert insert_default_subcommand(["report"]) == ["report"]

    def test_subcommands_are_case_insensitive(self) -> None:
        assert insert_default_subcommand(["LS", "standup"]) == ["ls", "standup"]
        assert insert_default_subcommand(["Stop"]) == ["stop"]

    def test_global_options_are_skipped(self) -> None:
        assert insert_default_subcommand(["--config", "c.toml", "break", "lunch"]) == [
            "--config",
            "c.toml",
            "start",
            "break",
            "lunch",
        ]

    def test_only_listed_commands_are_reserved(self) -> None:
        assert insert_default_subcommand(["validate", "config"]) == ["start", "validate", "config"]
        assert insert_default_subcommand(["start", "sprint"]) == ["start", "start", "sprint"]

    def test_empty(self) -> None:
        assert insert_default_subcommand([]) == []


class TestRecord:
    """Tests for recording activities from the command line."""

    def test_record_activity(self, log_path, capsys) -> None:
        assert main(["break", "lunch"]) == 0

        lines = plain(capsys.readouterr().out).strip().splitlines()
        assert lines[-1] == "Record activity [break] with message [lunch]"
        assert re.fullmatch(
            r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2},break,lunch\n",
            log_path.read_text(encoding="utf-8"),
        )

    def test_stop(self, log_path, capsys) -> None:
        assert main(["stop"]) == 0

        assert "Record activity [stop] with message [n/a]" in plain(capsys.readouterr().out)
        assert re.fullmatch(
            r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2},stop,\n", log_path.read_text(encoding="utf-8")
        )

    def test_activity_is_lowercased(self, log_path) -> None:
        main(["STORY-123", "implementation"])
        assert ",story-123,implementation\n" in log_path.read_text(encoding="utf-8")

    def test_token_with_separator(self, log_path) -> None:
        main(["meetings,standup"])
        assert log_path.read_text(encoding="utf-8").endswith(",meetings,standup\n")

    def test_multiword_message(self, log_path) -> None:
        main(["meetings", "sprint", "planning"])
        assert log_path.read_text(encoding="utf-8").endswith(",meetings,sprint planning\n")

    def test_non_command_words_are_recorded(self, log_path) -> None:
        main(["validate", "config"])
        main(["start", "sprint"])

        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert lines[0].endswith(",validate,config")
        assert lines[1].endswith(",start,sprint")

    def test_multiline_activity_is_one_record(self, log_path, capsys) -> None:
        assert main(["meetings\nstory-9", "standup"]) == 0

        assert "Record activity [meetings_story-9] with message [standup]" in plain(
            capsys.readouterr().out
        )
        assert re.fullmatch(
            r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2},meetings_story-9,standup\n",
            log_path.read_text(encoding="utf-8"),
        )

    def test_unwritable_log_fails(self, tmp_path, monkeypatch, capsys) -> None:
        monkeypatch.setenv("TT_FILE", str(tmp_path / "missing-dir" / "log.csv"))

        assert main(["meetings"]) == 1
        assert "ERROR: cannot write" in plain(capsys.readouterr().out)


class TestReport:
    """Tests for the report subcommand."""

    def test_report_format(self, log_path, capsys) -> None:
        main(["meetings", "standup"])
        main(["break", "lunch"])
        main(["meetings", "refinement"])
        main(["story-123", "implementation"])
        main(["stop"])
        capsys.readouterr()

        assert main(["report"]) == 0

        text = plain(capsys.readouterr().out)
        text = re.sub(r"\d{4}-\d{2}-\d{2} \(\w+\)", "DAY", text)
        text = re.sub(r"\d{2}:\d{2}:\d{2}", "HH:MM:SS", text)
        text = re.sub(r"\d+\.\d{3}", "N.NNN", text)
        lines = [re.sub(r" {2,}", "", line) for line in text.splitlines()]
        assert lines == [
            "Report for the last 7 days",
            "",
            "DAY",
            "meetings: HH:MM:SS (N.NNN)",
            "break: HH:MM:SS (N.NNN)",
            "story-123: HH:MM:SS (N.NNN)",
            "total: HH:MM:SS (N.NNN) [excl. break N.NNN]",
            "",
            "Week total: N.NNN",
            "",
        ]

    def test_report_values(self, log_path, capsys) -> None:
        write_events(
            log_path,
            [
                Event(minutes_ago(90), "coding", "parser"),
                Event(minutes_ago(30), "break", "lunch"),
                Event(minutes_ago(0), "stop"),
            ],
        )
        if minutes_ago(90).date() != datetime.now().date():
            pytest.skip("events would span midnight")

        main(["report"])

        text = plain(capsys.readouterr().out)
        assert re.search(r"coding: 01:00:00 \(1\.000\)", text)
        assert re.search(r"break: 00:30:00 \(0\.500\)", text)
        assert re.search(r"total: 01:00:00 \(1\.000\) \[excl\. break 0\.500\]", text)

    def test_empty_report(self, capsys) -> None:
        assert main(["report"]) == 0

        lines = [re.sub(r" {2,}", "", line) for line in plain(capsys.readouterr().out).splitlines()]
        assert lines == ["Report for the last 7 days", "", "Week total: 0.000", ""]

    def test_report_days_option(self, capsys) -> None:
        main(["report", "--days", "3"])
        assert "Report for the last 3 days" in capsys.readouterr().out

    def test_report_csv(self, log_path, capsys) -> None:
        write_events(log_path, [Event(minutes_ago(0), "coding")])

        main(["report", "--format", "csv"])

        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "day,activity,hours"
        assert lines[1].endswith(",coding,0.000")

    def test_old_events_are_outside_the_window(self, log_path, capsys) -> None:
        write_events(log_path, [Event(datetime.now() - timedelta(days=30), "ancient")])

        main(["report"])

        assert "ancient" not in capsys.readouterr().out

    def test_malformed_line_is_skipped(self, log_path, capsys) -> None:
        log_path.write_text("not a record\n", encoding="utf-8")
        write_events(log_path, [Event(minutes_ago(0), "coding")])

        assert main(["report"]) == 0

        captured = capsys.readouterr()
        assert "coding" in captured.out
        assert "malformed line 1" in captured.err


class TestList:
    """Tests for the list subcommand."""

    def test_list(self, log_path, capsys) -> None:
        write_events(
            log_path,
            [
                Event(minutes_ago(30), "meetings", "standup"),
                Event(minutes_ago(15), "break", "lunch"),
                Event(minutes_ago(0), "stop"),
            ],
        )

        assert main(["ls"]) == 0

        lines = plain(capsys.readouterr().out).splitlines()
        assert lines[0] == "List of the last 20 entries"
        assert lines[1] == ""
        assert re.match(r"\S+ \S+\s+meetings\s+standup\s+00:15:00", lines[2])
        assert re.match(r"\S+ \S+\s+stop\s+n/a\s+--------", lines[4])

    def test_list_filter(self, log_path, capsys) -> None:
        write_events(
            log_path,
            [
                Event(minutes_ago(30), "meetings", "standup"),
                Event(minutes_ago(15), "break", "lunch"),
            ],
        )

        main(["list", "standup"])

        lines = plain(capsys.readouterr().out).splitlines()
        assert lines[0] == "List of the last 20 entries [filter: standup]"
        assert len(lines) == 3
        assert "meetings" in lines[2]

    def test_list_entries_option(self, log_path, capsys) -> None:
        write_events(log_path, [Event(minutes_ago(10 - i), f"task{i}") for i in range(5)])

        main(["list", "--entries", "2"])

        lines = plain(capsys.readouterr().out).splitlines()
        assert lines[0] == "List of the last 2 entries"
        assert "task3" in lines[2]
        assert "task4" in lines[3]


class TestHelp:
    def test_no_arguments_prints_usage(self, capsys, log_path) -> None:
        assert main([]) == 0

        out = plain(capsys.readouterr().out)
        assert "Usage:" in out
        assert "Commands:" in out
        assert "show report for the last 7 days" in out
        assert str(log_path) in out


class TestEdit:
    def test_runs_editor_on_log(self, monkeypatch, log_path) -> None:
        monkeypatch.setenv("EDITOR", "vim -n")
        with patch("tt_timetracker.cli.subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=0)

            assert main(["edit"]) == 0

        mock_run.assert_called_once_with(["vim", "-n", str(log_path)], check=False)

    def test_editor_exit_code_is_passed_through(self) -> None:
        with patch("tt_timetracker.cli.subprocess.run", return_value=Mock(returncode=3)):
            assert main(["edit"]) == 3

    def test_missing_editor(self, capsys) -> None:
        with patch("tt_timetracker.cli.subprocess.run", side_effect=FileNotFoundError):
            assert main(["edit"]) == 127
        assert "Editor not found: nano" in plain(capsys.readouterr().out)


class TestJiraCommands:
    """Tests for the active and upload subcommands."""

    def test_active_without_credentials(self, capsys) -> None:
        assert main(["active"]) == 0
        assert "ERROR: Missing Jira environment variables" in plain(capsys.readouterr().out)

    def test_upload_without_credentials(self, capsys) -> None:
        assert main(["upload"]) == 0
        assert "ERROR: Missing Jira environment variables" in plain(capsys.readouterr().out)

    def test_active(self, monkeypatch, capsys) -> None:
        for name, value in JIRA_ENV.items():
            monkeypatch.setenv(name, value)
        issues = [{"key": "ABC-1", "fields": {"summary": "Fix it", "status": {"name": "To Do"}}}]

        with patch("tt_timetracker.cli.JiraClient.active_issues") as mock_active:
            mock_active.return_value = JiraResult(
                ok=True, status=200, reason="OK", data={"issues": issues}
            )
            assert main(["active"]) == 0

        out = plain(capsys.readouterr().out)
        assert "GET https://example.atlassian.net/rest/api/3/search/jql" in out
        assert "Status: 200 - OK" in out
        assert "Active issues (1)" in out
        assert "* ABC-1: Fix it [To Do]" in out

    def test_active_failure_exits_zero(self, monkeypatch, capsys) -> None:
        for name, value in JIRA_ENV.items():
            monkeypatch.setenv(name, value)

        with patch("tt_timetracker.cli.JiraClient.active_issues") as mock_active:
            mock_active.return_value = JiraResult(ok=False, error="connection refused")
            assert main(["active"]) == 0

        assert "ERROR: connection refused" in plain(capsys.readouterr().out)

    def test_upload(self, monkeypatch, log_path, capsys) -> None:
        for name, value in JIRA_ENV.items():
            monkeypatch.setenv(name, value)
        write_events(
            log_path,
            [
                Event(minutes_ago(0), "meetings", "standup"),
                Event(minutes_ago(0), "story-123", "implementation"),
                Event(minutes_ago(0), "abc-7"),
                Event(minutes_ago(0), "stop"),
            ],
        )

        with patch("tt_timetracker.cli.JiraClient.create_worklog") as mock_create:
            mock_create.side_effect = [
                JiraResult(ok=False, status=404, reason="Not Found"),
                JiraResult(ok=True, status=201, reason="Created"),
            ]
            assert main(["upload"]) == 0

        issues = [call.args[0].issue for call in mock_create.call_args_list]
        assert issues == ["STORY-123", "ABC-7"]
        out = plain(capsys.readouterr().out)
        assert "POST https://example.atlassian.net/rest/api/3/issue/STORY-123/worklog" in out
        assert "[implementation, " in out
        assert "[n/a, " in out
        assert "Status: 404 - Not Found" in out
        assert "Status: 201 - Created" in out

    def test_upload_nothing(self, monkeypatch, capsys) -> None:
        for name, value in JIRA_ENV.items():
            monkeypatch.setenv(name, value)

        assert main(["upload"]) == 0
        assert "No worklogs to upload" in plain(capsys.readouterr().out)

    def test_upload_bad_offset(self, capsys) -> None:
        assert main(["upload", "-3"]) == 1
        assert "ERROR: Day offset must not be in the future" in plain(capsys.readouterr().out)


class TestValidateAndConfig:
    def test_validate_default_config(self, capsys) -> None:
        assert main(["--validate"]) == 0
        assert "Configuration is valid" in capsys.readouterr().out

    def test_validate_reports_errors(self, tmp_path, capsys) -> None:
        config = tmp_path / "bad.toml"
        config.write_text('separator = ":"\n', encoding="utf-8")

        assert main(["--config", str(config), "--validate"]) == 1
        assert "separator" in capsys.readouterr().out

    def test_missing_config_file(self, tmp_path, capsys) -> None:
        assert main(["--config", str(tmp_path / "missing.toml"), "report"]) == 1
        assert "Config file not found" in capsys.readouterr().err

    def test_invalid_config_refuses_to_run(self, tmp_path, capsys) -> None:
        config = tmp_path / "bad.toml"
        config.write_text("report_days = 0\n", encoding="utf-8")

        assert main(["--config", str(config), "report"]) == 1
        assert "Invalid configuration" in capsys.readouterr().err

    def test_custom_separator(self, tmp_path, log_path) -> None:
        config = tmp_path / "semicolon.toml"
        config.write_text('separator = ";"\n', encoding="utf-8")

        main(["--config", str(config), "meetings", "standup, retro"])

        assert log_path.read_text(encoding="utf-8").endswith(";meetings;standup, retro\n")

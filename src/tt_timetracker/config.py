"""Configuration loading for tt-timetracker.

Built-in defaults are merged with an optional user TOML file and a few
environment variables into one immutable Settings object.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import toml
from platformdirs import user_config_path

from .config_validation import ConfigValidationError, log_validation_results, validate_config

logger = logging.getLogger(__name__)

APP_NAME = "tt-timetracker"

default_config = """
# Event log, one "timestamp,activity,message" record per line
file = "~/time-tracker.csv"

# Field separator of the event log
separator = ","

# Daily break allowance in hours. Break time up to this amount counts as work,
# anything above it is excluded from the daily net total.
break_amount = 0.0

# Number of days shown by "tt report"
report_days = 7

# Number of entries shown by "tt list"
list_entries = 20

# Editor for "tt edit" (empty: $VISUAL, then $EDITOR, then nano)
editor = ""

## Credentials are read from JIRA_API_HOST, JIRA_API_USER and JIRA_API_TOKEN
[jira]
# An activity is uploaded as a worklog when it matches this pattern
issue_pattern = '\\w+-\\d+'
verify_ssl = true
timeout = 30
default_comment = "n/a"
""".strip()


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration, created once per invocation."""

    file: Path
    separator: str = ","
    break_amount: float = 0.0
    report_days: int = 7
    list_entries: int = 20
    editor: str = "nano"
    issue_pattern: str = r"\w+-\d+"
    verify_ssl: bool = True
    timeout: float = 30.0
    default_comment: str = "n/a"


def get_default_config_path() -> Path:
    """
    Get the default config file path.

    Returns:
        Path to config.toml in the platform's user config directory
        ($XDG_CONFIG_HOME or ~/.config on Linux)
    """
    return user_config_path(APP_NAME, appauthor=False) / "config.toml"


def merge_config(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Path | str | None = None) -> dict:
    """
    Load the raw configuration dictionary.

    Args:
        config_path: Explicit config file; must exist if given

    Returns:
        Defaults merged with the user config file, if any

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
    """
    config = toml.loads(default_config)

    if config_path:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        config_path = get_default_config_path()
        if not config_path.exists():
            logger.debug(f"No config file at {config_path}, using defaults")
            return config

    logger.debug(f"Loading config from {config_path}")
    return merge_config(config, toml.load(config_path))


def resolve_editor(configured: str, env: Mapping[str, str]) -> str:
    return configured or env.get("VISUAL") or env.get("EDITOR") or "nano"


def settings_from_config(config: Mapping[str, Any], env: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from a validated configuration dictionary.

    ``TT_FILE`` in the environment overrides the configured log file.
    """
    env = os.environ if env is None else env
    jira = config.get("jira", {})
    file = env.get("TT_FILE") or config["file"]
    return Settings(
        file=Path(file).expanduser(),
        separator=config["separator"],
        break_amount=float(config["break_amount"]),
        report_days=int(config["report_days"]),
        list_entries=int(config["list_entries"]),
        editor=resolve_editor(config.get("editor", ""), env),
        issue_pattern=jira.get("issue_pattern", r"\w+-\d+"),
        verify_ssl=bool(jira.get("verify_ssl", True)),
        timeout=float(jira.get("timeout", 30)),
        default_comment=jira.get("default_comment", "n/a"),
    )


def load_settings(
    config_path: Path | str | None = None, env: Mapping[str, str] | None = None
) -> Settings:
    """
    Load, validate and freeze the configuration.

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
        ConfigValidationError: If the configuration has errors
    """
    config = load_config(config_path)
    errors, warnings = validate_config(config)
    log_validation_results(errors, warnings)
    if errors:
        raise ConfigValidationError("; ".join(errors))
    return settings_from_config(config, env)

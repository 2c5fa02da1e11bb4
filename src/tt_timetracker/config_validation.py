"""Configuration validation for tt-timetracker.

Validates the loaded TOML configuration and warns about potential issues.
"""

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when configuration has critical errors."""

    pass


class ConfigValidator:
    """Validates configuration dictionaries."""

    # Known top-level keys
    KNOWN_TOP_LEVEL = {
        "file",
        "separator",
        "break_amount",
        "report_days",
        "list_entries",
        "editor",
        "jira",
    }

    # Known numeric parameters with their types and optional ranges
    NUMERIC_PARAMS = {
        "break_amount": {"type": (int, float), "min": 0},
        "report_days": {"type": int, "min": 1},
        "list_entries": {"type": int, "min": 1},
    }

    # Known jira fields and their expected types
    JIRA_FIELDS = {
        "issue_pattern": str,
        "verify_ssl": bool,
        "timeout": (int, float),
        "default_comment": str,
    }

    # Credentials come from the environment only
    JIRA_SECRET_FIELDS = {"token", "user", "host"}

    def __init__(self):
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def validate(self, config: dict[str, Any]) -> tuple[list[str], list[str]]:
        """Validate the configuration.

        Args:
            config: The configuration dictionary to validate

        Returns:
            Tuple of (errors, warnings) lists
        """
        self.errors = []
        self.warnings = []

        self._validate_top_level(config)
        self._validate_numeric(config)
        self._validate_jira(config.get("jira", {}))

        return self.errors, self.warnings

    def _validate_top_level(self, config: dict) -> None:
        """Validate top-level configuration keys."""
        for key in config:
            if key not in self.KNOWN_TOP_LEVEL:
                self.warnings.append(f"Unknown top-level config key: '{key}'")

        for key in ("file", "editor"):
            if key in config and not isinstance(config[key], str):
                self.errors.append(f"'{key}' must be a string")

        if "file" in config and isinstance(config["file"], str) and not config["file"].strip():
            self.errors.append("'file' must not be empty")

        if "separator" in config:
            separator = config["separator"]
            if not isinstance(separator, str) or len(separator) != 1:
                self.errors.append("'separator' must be a single character")
            elif separator.isspace() or separator.isalnum() or separator in "-:_":
                self.errors.append(
                    f"'separator' {separator!r} would clash with timestamps or activity names"
                )

    def _validate_numeric(self, config: dict) -> None:
        """Validate numeric parameters."""
        for key, spec in self.NUMERIC_PARAMS.items():
            if key not in config:
                continue
            value = config[key]

            # bool is an int subclass, but never a valid count
            if isinstance(value, bool) or not isinstance(value, spec["type"]):
                expected = (
                    " or ".join(t.__name__ for t in spec["type"])
                    if isinstance(spec["type"], tuple)
                    else spec["type"].__name__
                )
                self.errors.append(f"{key} must be {expected}, got {type(value).__name__}")
                continue

            if "min" in spec and value < spec["min"]:
                self.errors.append(f"{key} must be >= {spec['min']}, got {value}")

        if isinstance(config.get("break_amount"), (int, float)) and config["break_amount"] > 24:
            self.warnings.append("break_amount is more than 24 hours - breaks are never excluded")

    def _validate_jira(self, jira: dict) -> None:
        """Validate the jira section."""
        if not isinstance(jira, dict):
            self.errors.append("'jira' section must be a dictionary")
            return

        for key, value in jira.items():
            if key in self.JIRA_SECRET_FIELDS:
                self.warnings.append(
                    f"jira.{key} is ignored - use the JIRA_API_{key.upper()} environment variable"
                )
                continue
            if key not in self.JIRA_FIELDS:
                self.warnings.append(f"Unknown field in jira section: '{key}'")
                continue
            expected = self.JIRA_FIELDS[key]
            if isinstance(value, bool) and expected is not bool:
                self.errors.append(f"jira.{key} must not be a boolean")
            elif not isinstance(value, expected):
                self.errors.append(f"jira.{key} has wrong type {type(value).__name__}")

        if "issue_pattern" in jira and isinstance(jira["issue_pattern"], str):
            self._validate_regexp("jira", "issue_pattern", jira["issue_pattern"])

        timeout = jira.get("timeout")
        if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout <= 0:
            self.errors.append(f"jira.timeout must be > 0, got {timeout}")

    def _validate_regexp(self, prefix: str, field: str, pattern: str) -> None:
        """Validate a regular expression."""
        try:
            re.compile(pattern)
        except re.error as e:
            self.errors.append(f"{prefix}.{field} has invalid regex: {e}")
            return

        # Warn about common regex mistakes
        if pattern.endswith("|") or re.fullmatch(pattern, "") is not None:
            self.warnings.append(f"{prefix}.{field} matches the empty string")


def validate_config(config: dict[str, Any]) -> tuple[list[str], list[str]]:
    """Validate configuration and return errors and warnings.

    Args:
        config: The configuration dictionary to validate

    Returns:
        Tuple of (errors, warnings) lists
    """
    validator = ConfigValidator()
    return validator.validate(config)


def log_validation_results(errors: list[str], warnings: list[str]) -> None:
    """Log validation results.

    Args:
        errors: List of error messages
        warnings: List of warning messages
    """
    for warning in warnings:
        logger.warning(f"Config warning: {warning}")
    for error in errors:
        logger.error(f"Config error: {error}")


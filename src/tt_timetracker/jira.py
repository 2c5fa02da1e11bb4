"""Jira REST client used to upload worklogs and list active issues.

This is the ONLY place that talks to the network. Every call returns a
JiraResult instead of raising, so one failed worklog never stops a batch.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import requests
from requests.auth import HTTPBasicAuth

from .models import WorklogItem

logger = logging.getLogger(__name__)

STARTED_FORMAT = "%Y-%m-%dT%H:%M:%S.000%z"
ACTIVE_ISSUES_JQL = "assignee=currentuser() AND status!=done"


class IntegrationError(Exception):
    """Raised when the issue tracker is not configured or cannot be reached."""

    pass


@dataclass(frozen=True)
class JiraSettings:
    """Connection details for the Jira API."""

    host: str
    user: str
    token: str
    verify_ssl: bool = True
    timeout: float = 30.0

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        verify_ssl: bool = True,
        timeout: float = 30.0,
    ) -> "JiraSettings":
        """Read JIRA_API_HOST, JIRA_API_USER and JIRA_API_TOKEN.

        Raises:
            IntegrationError: If any of the variables is missing
        """
        env = os.environ if env is None else env
        names = ("JIRA_API_HOST", "JIRA_API_USER", "JIRA_API_TOKEN")
        missing = [name for name in names if not env.get(name)]
        if missing:
            raise IntegrationError(f"Missing Jira environment variables: {', '.join(missing)}")
        return cls(
            host=env["JIRA_API_HOST"].rstrip("/"),
            user=env["JIRA_API_USER"],
            token=env["JIRA_API_TOKEN"],
            verify_ssl=verify_ssl,
            timeout=timeout,
        )


@dataclass
class JiraResult:
    """Outcome of one Jira call.

    Attributes:
        ok: True for a 2xx response
        status: HTTP status code, or None if no response was received
        reason: HTTP reason phrase
        data: Decoded JSON body, if any
        error: Transport or decoding error message
    """

    ok: bool
    status: int | None = None
    reason: str = ""
    data: Any = None
    error: str = ""


def worklog_payload(item: WorklogItem) -> dict[str, Any]:
    """Build the worklog body with the comment as an Atlassian document."""
    return {
        "timeSpentSeconds": item.duration_seconds,
        "comment": {
            "type": "doc",
            "version": 1,
            "content": [
                {
                    "type": "paragraph",
                    "content": [{"text": item.comment, "type": "text"}],
                }
            ],
        },
        "started": item.started.astimezone().strftime(STARTED_FORMAT),
    }


class JiraClient:
    """Thin wrapper around a requests session with basic auth."""

    def __init__(self, settings: JiraSettings, session: requests.Session | None = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(settings.user, settings.token)
        self.session.headers.update({"Accept": "application/json"})

    def worklog_url(self, issue: str) -> str:
        return f"{self.settings.host}/rest/api/3/issue/{issue}/worklog"

    def search_url(self) -> str:
        return f"{self.settings.host}/rest/api/3/search/jql"

    def _request(self, method: str, url: str, **kwargs) -> JiraResult:
        try:
            response = self.session.request(
                method,
                url,
                timeout=self.settings.timeout,
                verify=self.settings.verify_ssl,
                **kwargs,
            )
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            return JiraResult(ok=False, error=str(e))

        result = JiraResult(ok=response.ok, status=response.status_code, reason=response.reason)
        if response.content:
            try:
                result.data = response.json()
            except ValueError as e:
                if response.ok:
                    result.ok = False
                    result.error = f"Invalid JSON response: {e}"
        logger.debug(f"{method} {url} -> {response.status_code} {response.reason}")
        return result

    def create_worklog(self, item: WorklogItem) -> JiraResult:
        """Submit one worklog for ``item.issue``."""
        return self._request("POST", self.worklog_url(item.issue), json=worklog_payload(item))

    def active_issues(self) -> JiraResult:
        """Search the issues assigned to the current user that are not done."""
        result = self._request(
            "GET",
            self.search_url(),
            params={"jql": ACTIVE_ISSUES_JQL, "fields": "summary,status"},
        )
        if result.ok and not isinstance(result.data, dict):
            result.ok = False
            result.error = "Unexpected search response"
        return result


def describe_issue(issue: Mapping[str, Any]) -> str:
    """Render one search hit as ``KEY: summary [status]``."""
    fields = issue.get("fields") or {}
    status = (fields.get("status") or {}).get("name", "?")
    return f"{issue.get('key', '?')}: {fields.get('summary', '')} [{status}]"

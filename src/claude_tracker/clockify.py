"""Clockify REST API client.

Supports:
- Creating time entries (the posting capability the sync driver uses)
- Listing a workspace's projects, for building the project mapping
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

import requests

from claude_tracker.credentials import CLOCKIFY_API_KEY, get_secret

BASE_URL = "https://api.clockify.me/api/v1"

# Default network timeout (seconds)
DEFAULT_TIMEOUT = 30

PAGE_SIZE = 50

ENTRY_DESCRIPTION = "Development"

STATUS_HINTS = {
    400: "invalid project ID or request parameters",
    401: "check your API key",
    403: "access forbidden - check workspace/project permissions",
    404: "project or workspace not found",
    422: "invalid request - check time range and project ID",
}


class TimeEntryPoster(Protocol):
    """Anything that can create a time entry and return its id.

    Failures to create the entry are raised as ClockifyError.
    """

    def post_time_entry(
        self,
        project_id: str,
        start: datetime,
        end: datetime,
        workspace_id: str,
    ) -> str: ...


class ClockifyError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class ClockifyProject:
    id: str
    name: str
    archived: bool = False


def status_hint(code: int) -> str:
    """Provide a helpful hint based on HTTP status code."""
    return STATUS_HINTS.get(code, "unexpected error")


class ClockifyClient:
    """Clockify REST API client."""

    def __init__(self, api_key: str, base_url: str = BASE_URL, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "X-Api-Key": api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    @classmethod
    def from_keyring(cls, **kwargs) -> "ClockifyClient":
        """Build a client with the API key stored by `claude-tracker setup`."""
        return cls(get_secret(CLOCKIFY_API_KEY), **kwargs)

    def post_time_entry(
        self,
        project_id: str,
        start: datetime,
        end: datetime,
        workspace_id: str,
    ) -> str:
        """POST a time entry to Clockify. Returns the created entry ID."""
        url = f"{self.base_url}/workspaces/{workspace_id}/time-entries"
        payload = {
            "projectId": project_id,
            "start": _format_clockify_datetime(start),
            "end": _format_clockify_datetime(end),
            "description": ENTRY_DESCRIPTION,
        }
        body = self._request("post", url, json=payload)
        if not isinstance(body, dict) or not body.get("id"):
            raise ClockifyError("Clockify response did not include a time entry id")
        return str(body["id"])

    def list_projects(self, workspace_id: str) -> list[ClockifyProject]:
        """List all projects in a workspace, following pagination."""
        url = f"{self.base_url}/workspaces/{workspace_id}/projects"
        projects: list[ClockifyProject] = []
        page = 1
        while True:
            body = self._request("get", url, params={"page-size": PAGE_SIZE, "page": page})
            if not isinstance(body, list):
                raise ClockifyError("Clockify returned an unexpected project list")
            projects.extend(
                ClockifyProject(
                    id=str(p["id"]),
                    name=str(p.get("name", "")),
                    archived=bool(p.get("archived", False)),
                )
                for p in body
            )
            # A short page is the last page
            if len(body) < PAGE_SIZE:
                break
            page += 1
        return projects

    def _request(self, method: str, url: str, **kwargs):
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise ClockifyError(f"Network error contacting Clockify: {e}") from e

        if not resp.ok:
            raise ClockifyError(
                f"Clockify API returned HTTP {resp.status_code}: {status_hint(resp.status_code)}",
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise ClockifyError("Failed to parse Clockify response JSON") from e


def _format_clockify_datetime(ts: datetime) -> str:
    """Clockify expects UTC ISO 8601 with a Z suffix, e.g. 2026-02-04T09:00:00Z."""
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

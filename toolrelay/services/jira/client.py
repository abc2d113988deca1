"""
Jira Cloud REST client — JQL search and issue creation.

Uses Basic Auth (username + API token) when both are configured.
Search results are flattened to the fields the issue tools report.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from toolrelay.config import settings
from toolrelay.services.api_client import APIError, BaseAPIClient

logger = logging.getLogger(__name__)

# Jira custom field ids on the Cloud instance
SPRINT_FIELD = "customfield_10020"
STORY_POINTS_FIELD = "customfield_10016"
FLAGGED_FIELD = "customfield_10021"


def _sprint_label(fields: dict) -> str:
    sprints = fields.get(SPRINT_FIELD) or []
    if not sprints:
        return ""
    sprint = sprints[0] or {}
    return f"{sprint.get('name')} - {sprint.get('state') or '-'}"


def _flagged(fields: dict) -> Optional[str]:
    flags = fields.get(FLAGGED_FIELD) or []
    if flags and flags[0]:
        return flags[0].get("value")
    return None


def map_issue(issue: dict) -> dict:
    """Flatten one raw Jira issue into the reported shape."""
    fields = issue.get("fields") or {}
    parent = fields.get("parent") or {}
    parent_type = ((parent.get("fields") or {}).get("issuetype") or {}).get("name")
    return {
        "key": issue.get("key"),
        "fixVersions": [v.get("name") for v in fields.get("fixVersions") or []],
        "type": (fields.get("issuetype") or {}).get("name"),
        "sprint": _sprint_label(fields),
        "assignee": (fields.get("assignee") or {}).get("displayName") or "",
        "status": (fields.get("status") or {}).get("name"),
        "storyPoints": fields.get(STORY_POINTS_FIELD) or "-",
        "created": fields.get("created"),
        "updated": fields.get("updated"),
        "summary": fields.get("summary") or "",
        "parent": f"{parent.get('key') or ''}  {parent_type or '-'}",
        "flagged": _flagged(fields),
        "subtasks": len(fields.get("subtasks") or []),
    }


def map_search_response(data: Any) -> Optional[dict]:
    """Map a JQL search response. Returns None if it carries no issues."""
    if not isinstance(data, dict) or data.get("issues") is None:
        logger.error("Invalid JQL response or no issues found")
        return None
    return {
        "expand": data.get("expand"),
        "startAt": data.get("startAt"),
        "maxResults": data.get("maxResults"),
        "total": data.get("total"),
        "issues": [map_issue(issue) for issue in data["issues"]],
    }


class JiraClient(BaseAPIClient):
    """Async Jira REST client."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        base_url = base_url or settings.jira_api_url
        if not base_url:
            raise APIError("Jira is not configured. Set JIRA_API_URL.")

        username = username or settings.jira_username
        api_token = api_token or settings.jira_api_token
        auth = None
        if username and api_token:
            auth = (username, api_token)
        else:
            logger.warning(
                "JIRA_USERNAME / JIRA_API_TOKEN not set; Jira requests are unauthenticated."
            )

        super().__init__(base_url, timeout=timeout, auth=auth, transport=transport)

    async def search_issues(self, jql: str) -> Optional[dict]:
        """Search issues using JQL."""
        logger.info(f"Searching Jira issues with JQL: {jql}")
        data = await self._get("/search", params={"jql": jql})
        return map_search_response(data)

    async def create_issue(self, issue: dict) -> dict:
        """Create a new issue; returns Jira's create response (id, key, self)."""
        return await self._post("/issue", body=issue)

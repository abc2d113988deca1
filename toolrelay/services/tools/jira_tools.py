"""Issue tracker tools."""
from __future__ import annotations

import json
import logging

from toolrelay.core.errors import INTERNAL_ERROR, ToolError
from toolrelay.schemas.envelope import ToolResult
from toolrelay.services.api_client import APIError
from toolrelay.services.jira.client import JiraClient
from toolrelay.services.tools.registry import registry
from toolrelay.services.tools.tool_context import ToolContext

logger = logging.getLogger(__name__)


@registry.tool(
    name="fetch_jira_issues",
    description="Fetches Jira issues matching the provided JQL query.",
    module="jira",
)
async def fetch_jira_issues(ctx: ToolContext, jql: str) -> ToolResult:
    """
    jql: The JQL query to filter issues.
    """
    cfg = ctx.settings
    if not cfg.jira_configured:
        raise ToolError(INTERNAL_ERROR, "Jira is not configured. Set JIRA_API_URL.")

    try:
        async with JiraClient(
            base_url=cfg.jira_api_url,
            username=cfg.jira_username,
            api_token=cfg.jira_api_token,
        ) as client:
            issues = await client.search_issues(jql)
    except APIError as e:
        logger.warning(f"Jira search failed (message={ctx.message_id}): {e.message}")
        raise ToolError(
            INTERNAL_ERROR, f"Jira search failed: {e.message}", data={"status": e.status_code}
        ) from e

    return ToolResult.text(json.dumps(issues), format="json")

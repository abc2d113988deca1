"""Test configuration and fixtures."""
import asyncio
from collections import defaultdict

import httpx
import pytest

from helpers import BASE_URL, CATALOG_URL, FRAME_TIMEOUT, JIRA_URL, make_relay_handler
from toolrelay.client.correlator import ToolClient
from toolrelay.config import Settings
from toolrelay.core.errors import ToolError
from toolrelay.main import create_app
from toolrelay.services.tools.registry import ToolRegistry


# ---------------------------------------------------------------------------
# Settings / tools / app
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings():
    return Settings(
        sse_keepalive_seconds=0.05,
        shutdown_timeout=1.0,
        dummy_json_api_url=CATALOG_URL,
        jira_api_url=JIRA_URL,
        jira_username="relay@example.com",
        jira_api_token="jira-token",
        request_timeout=5.0,
        server_url=BASE_URL,
    )


@pytest.fixture
def invocations():
    """Names of handlers that actually ran, in order."""
    return []


@pytest.fixture
def gates():
    """Named events a gated tool waits on before answering."""
    return defaultdict(asyncio.Event)


@pytest.fixture
def tool_registry(invocations, gates):
    """A small registry of deterministic tools for transport tests."""
    tools = ToolRegistry()

    async def add(a, b):
        invocations.append("add")
        return str(a + b)

    tools.register(
        "add",
        "Adds two numbers.",
        {
            "type": "object",
            "properties": {"a": {"type": "number"}, "b": {"type": "number"}},
            "required": ["a", "b"],
        },
        add,
        module="arithmetic",
    )

    @tools.tool(name="gated", description="Answers once its gate is set.")
    async def gated(gate: str, text: str) -> str:
        invocations.append(f"gated:{gate}")
        await gates[gate].wait()
        return text

    @tools.tool(name="explode", description="Always fails unexpectedly.")
    async def explode() -> str:
        invocations.append("explode")
        raise RuntimeError("boom")

    @tools.tool(name="refuse", description="Always fails with a typed error.")
    async def refuse(reason: str) -> str:
        invocations.append("refuse")
        raise ToolError(4001, reason)

    return tools


@pytest.fixture
def app(test_settings, tool_registry):
    return create_app(test_settings, tool_registry)


# ---------------------------------------------------------------------------
# HTTP clients
# ---------------------------------------------------------------------------


@pytest.fixture
async def http(app):
    """Plain ASGI client for request/response endpoints."""
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL) as client:
        yield client


@pytest.fixture
async def relay_http(app):
    """Client whose GET /sse stays open as a live event stream."""
    transport = httpx.MockTransport(make_relay_handler(app))
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client


@pytest.fixture
async def tool_client(relay_http):
    """A connected ToolClient (READY) talking to the in-process app."""
    client = ToolClient(BASE_URL, http=relay_http)
    await client.connect(timeout=FRAME_TIMEOUT)
    yield client
    await client.close()

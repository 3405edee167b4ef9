"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import fakeredis.aioredis
import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from pbagent.main import app


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(autouse=True)
async def setup_test_redis():
    """Provide a fake Redis instance for each test."""
    import pbagent.redis_client as redis_mod

    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)
    redis_mod._redis = fake
    yield
    await fake.aclose()
    redis_mod._redis = None


# ---------------------------------------------------------------------------
# Fake Productboard API
# ---------------------------------------------------------------------------


class FakeProductboard:
    """Routes requests by path to canned responses and records every call.

    A route value may be a dict (JSON body), an httpx.Response, a list of
    those (served in order, last one repeats) or a callable taking the
    request.
    """

    def __init__(self):
        self.routes: dict[str, object] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, response) -> None:
        self.routes[path] = response

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if callable(route):
            route = route(request)
        if isinstance(route, httpx.Response):
            # fresh copy; the same canned response may be served on every retry
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        return httpx.Response(200, json=route)


def make_page(records: list[dict], next_url: str | None = None) -> dict:
    return {"data": records, "links": {"next": next_url}}


@pytest.fixture
def fake_pb() -> FakeProductboard:
    return FakeProductboard()


@pytest.fixture
def pb_client(fake_pb):
    from pbagent.productboard import ProductboardClient

    return ProductboardClient(
        token="test-token",
        base_url="https://pb.test",
        base_delay_ms=0,
        transport=httpx.MockTransport(fake_pb.handler),
    )


@pytest.fixture
def pb_services(pb_client):
    """Install services backed by the fake API for the tools under test."""
    from pbagent.agents.tools import productboard_tools

    services = productboard_tools.ProductboardServices(client=pb_client)
    productboard_tools.set_services(services)
    yield services
    productboard_tools.set_services(None)


def tool_payload(result: dict) -> dict:
    """Decode the JSON text block of a successful tool result."""
    assert not result.get("is_error"), result["content"][0]["text"]
    return json.loads(result["content"][0]["text"])


# ---------------------------------------------------------------------------
# Mock helpers for Claude Agent SDK
# ---------------------------------------------------------------------------


def make_mock_assistant_message(
    text: str = "Hello from Claude!",
    model: str = "claude-sonnet-4-5-20250929",
):
    """Create a mock AssistantMessage with a single TextBlock."""
    from claude_agent_sdk import AssistantMessage, TextBlock

    return AssistantMessage(
        content=[TextBlock(text=text)],
        model=model,
    )


def make_mock_result_message(
    input_tokens: int = 25,
    output_tokens: int = 10,
    session_id: str = "test-session",
):
    """Create a mock ResultMessage with usage data."""
    from claude_agent_sdk import ResultMessage

    return ResultMessage(
        subtype="result",
        duration_ms=500,
        duration_api_ms=400,
        is_error=False,
        num_turns=1,
        session_id=session_id,
        total_cost_usd=0.01,
        usage={
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
        },
    )


def make_mock_tool_call_message(
    tool_name: str = "mcp__productboard__pb_list_features",
    tool_input: dict | None = None,
    model: str = "claude-sonnet-4-5-20250929",
):
    """Create a mock AssistantMessage with a tool call."""
    from claude_agent_sdk import AssistantMessage, ToolUseBlock

    return AssistantMessage(
        content=[
            ToolUseBlock(
                id="tool-456",
                name=tool_name,
                input=tool_input or {},
            ),
        ],
        model=model,
    )


def make_mock_stream_text_deltas(
    text: str = "Hello from Claude!",
    chunk_size: int = 5,
    session_id: str = "test-session",
):
    """Create a list of mock StreamEvents that simulate text streaming."""
    from claude_agent_sdk.types import StreamEvent

    events = []
    for i in range(0, len(text), chunk_size):
        chunk = text[i : i + chunk_size]
        events.append(
            StreamEvent(
                uuid=f"evt-{i}",
                session_id=session_id,
                event={
                    "type": "content_block_delta",
                    "delta": {"type": "text_delta", "text": chunk},
                },
            )
        )
    return events


def make_mock_stream_thinking_delta(
    thinking_text: str = "Let me think...",
    session_id: str = "test-session",
):
    """Create a mock StreamEvent for a thinking delta."""
    from claude_agent_sdk.types import StreamEvent

    return StreamEvent(
        uuid="evt-think-0",
        session_id=session_id,
        event={
            "type": "content_block_delta",
            "delta": {"type": "thinking_delta", "thinking": thinking_text},
        },
    )


async def _mock_receive_response(messages):
    """Turn a list of messages into an async iterator."""
    for msg in messages:
        yield msg


@pytest.fixture
async def mock_agent_sdk():
    """Patch ClaudeSDKClient to return canned responses.

    Yields a dict with the mock client and helper to set response messages.
    """
    messages = [
        *make_mock_stream_text_deltas("Hello from Claude!"),
        make_mock_result_message(),
    ]

    mock_client = MagicMock()
    mock_client.connect = AsyncMock()
    mock_client.disconnect = AsyncMock()
    mock_client.query = AsyncMock()
    mock_client.receive_response = MagicMock(
        side_effect=lambda: _mock_receive_response(messages)
    )

    def set_messages(new_messages: list) -> None:
        nonlocal messages
        messages = new_messages

    import pbagent.agents.session_worker as worker_mod

    with patch("pbagent.agents.session_worker.ClaudeSDKClient", return_value=mock_client):
        with patch("pbagent.agents.settings") as mock_settings:
            mock_settings.anthropic_configured = True
            worker_mod._workers.clear()
            worker_mod._worker_locks.clear()
            yield {
                "client": mock_client,
                "set_messages": set_messages,
            }
            await worker_mod.disconnect_all_clients()
            worker_mod._workers.clear()
            worker_mod._worker_locks.clear()

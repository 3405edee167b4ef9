"""Agent layer — generates streaming responses via Claude Agent SDK.

The interface is `generate_response()`, an async generator that yields
`(event_type, event_data)` tuples. The SSE route and the Slack bot both
consume it.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import AsyncGenerator

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeSDKError,
    ResultMessage,
    TextBlock,
    ToolUseBlock,
)
from claude_agent_sdk.types import StreamEvent

from pbagent.config import settings
from pbagent.models import (
    CitationData,
    DoneEventData,
    ErrorEventData,
    ThinkingEventData,
    TokenUsage,
    ToolCallData,
)

from .session_worker import (
    disconnect_all_clients,
    get_or_create_worker,
    remove_session_client,
)

logger = logging.getLogger(__name__)

_PRODUCTBOARD_URL = re.compile(r"https://[\w.-]*productboard\.com/[^\s\)\]]+")

__all__ = ["generate_response", "remove_session_client", "disconnect_all_clients"]


def _citations(text: str) -> list[str]:
    """Extract Productboard URLs from text content."""
    return _PRODUCTBOARD_URL.findall(text)


def _citation_events(text: str) -> list[tuple[str, str]]:
    return [
        (
            "citation",
            CitationData(
                type="productboard",
                url=url,
                title="Productboard Reference",
                snippet="",
            ).model_dump_json(),
        )
        for url in _citations(text)
    ]


async def generate_response(
    message: str,
    session_id: str,
    context: dict | None = None,
) -> AsyncGenerator[tuple[str, str], None]:
    """Yield (event_type, json_data) tuples.

    event_type is one of: "text", "thinking", "tool_call", "citation",
    "error", "done". json_data is a JSON-encoded string; "done" is always
    the last event.
    """
    if not settings.anthropic_configured:
        yield (
            "error",
            ErrorEventData(
                message="Anthropic API key not configured",
                recoverable=False,
            ).model_dump_json(),
        )
        yield ("done", DoneEventData().model_dump_json())
        return

    done_emitted = False

    try:
        worker = await get_or_create_worker(session_id)

        # When the SDK streams deltas, AssistantMessage TextBlocks duplicate
        # them; after tool calls it may not stream, so the block is the
        # fallback.
        has_streamed_text = False
        tools_used: list[str] = []

        async for msg in worker.query_and_stream(message, session_id):
            if isinstance(msg, AssistantMessage):
                for block in msg.content:
                    if isinstance(block, TextBlock):
                        if not has_streamed_text:
                            yield ("text", json.dumps(block.text))
                            for event in _citation_events(block.text):
                                yield event
                        has_streamed_text = False

                    elif isinstance(block, ToolUseBlock):
                        has_streamed_text = False
                        if block.name not in tools_used:
                            tools_used.append(block.name)
                        yield (
                            "tool_call",
                            ToolCallData(
                                tool=block.name,
                                params=block.input,
                            ).model_dump_json(),
                        )

            elif isinstance(msg, StreamEvent):
                event = msg.event
                if event.get("type") != "content_block_delta" or msg.parent_tool_use_id:
                    continue
                delta = event.get("delta", {})
                if delta.get("type") == "text_delta":
                    has_streamed_text = True
                    chunk = delta.get("text", "")
                    yield ("text", json.dumps(chunk))
                    for citation in _citation_events(chunk):
                        yield citation
                elif delta.get("type") == "thinking_delta":
                    yield (
                        "thinking",
                        ThinkingEventData(text=delta.get("thinking", "")).model_dump_json(),
                    )

            elif isinstance(msg, ResultMessage):
                done_emitted = True
                usage = msg.usage or {}
                yield (
                    "done",
                    DoneEventData(
                        tokens_used=TokenUsage(
                            input=usage.get("input_tokens", 0),
                            output=usage.get("output_tokens", 0),
                        ),
                        tools_used=tools_used,
                    ).model_dump_json(),
                )

    except ClaudeSDKError as e:
        logger.error("Claude SDK error: %s", e)
        await remove_session_client(session_id)
        yield (
            "error",
            ErrorEventData(
                message=f"Agent error: {e}",
                recoverable=False,
            ).model_dump_json(),
        )

    except Exception as e:
        logger.exception("Unexpected error in generate_response")
        await remove_session_client(session_id)
        yield (
            "error",
            ErrorEventData(
                message=f"Unexpected error: {e}",
                recoverable=False,
            ).model_dump_json(),
        )

    finally:
        if not done_emitted:
            yield ("done", DoneEventData().model_dump_json())

"""Chat endpoint — POST /api/chat → SSE stream."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import APIRouter
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from pbagent.agents import generate_response
from pbagent.models import ChatRequest

router = APIRouter()


async def stream_sse_events(
    event_source: AsyncGenerator[tuple[str, str], None],
) -> AsyncGenerator[ServerSentEvent, None]:
    """Convert (event_type, json_data) tuples from the agent to SSE events."""
    async for event_type, json_data in event_source:
        yield ServerSentEvent(event=event_type, data=json_data)


@router.post("/api/chat")
async def chat(request: ChatRequest) -> EventSourceResponse:
    """Send a message, receive streaming SSE response.

    Events emitted: text, thinking, tool_call, citation, error, done.
    """
    event_source = generate_response(
        message=request.message,
        session_id=request.session_id,
        context=request.context,
    )
    return EventSourceResponse(
        stream_sse_events(event_source),
        media_type="text/event-stream",
    )

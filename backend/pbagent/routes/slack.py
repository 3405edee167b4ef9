"""Slack Events API endpoint — POST /slack/events."""

from __future__ import annotations

from fastapi import APIRouter, Request
from slack_bolt.adapter.fastapi.async_handler import AsyncSlackRequestHandler

from pbagent.slack_bot import build_slack_app

router = APIRouter()

_handler: AsyncSlackRequestHandler | None = None


def get_handler() -> AsyncSlackRequestHandler:
    global _handler
    if _handler is None:
        _handler = AsyncSlackRequestHandler(build_slack_app())
    return _handler


@router.post("/slack/events")
async def slack_events(request: Request):
    """Verify and dispatch a Slack event to the bolt app."""
    return await get_handler().handle(request)

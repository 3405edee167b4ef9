"""Pydantic models — request/response shapes and streamed event payloads."""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class ChatRequest(BaseModel):
    """POST /api/chat request body."""
    message: str = Field(min_length=1)
    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    context: dict | None = None  # reserved; not used by the agent yet


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    """GET /api/health response."""
    status: Literal["ok", "degraded"]
    version: str = "0.1.0"
    anthropic_configured: bool
    productboard_configured: bool
    slack_configured: bool


# ---------------------------------------------------------------------------
# Event data shapes (what goes in the `data` field of each SSE event)
# ---------------------------------------------------------------------------

class ThinkingEventData(BaseModel):
    """data for event: thinking"""
    text: str


class ErrorEventData(BaseModel):
    """data for event: error"""
    message: str
    recoverable: bool = True


class TokenUsage(BaseModel):
    input: int = 0
    output: int = 0


class DoneEventData(BaseModel):
    """data for event: done"""
    tokens_used: TokenUsage = Field(default_factory=TokenUsage)
    tools_used: list[str] = Field(default_factory=list)


# Note: `text` event data is a bare JSON string, not a model.
# e.g. event: text\ndata: "Hello world"


class CitationData(BaseModel):
    """data for event: citation"""
    type: Literal["productboard", "web"]
    url: str
    title: str
    snippet: str


class ToolCallData(BaseModel):
    """data for event: tool_call"""
    tool: str
    params: dict

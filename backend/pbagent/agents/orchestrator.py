"""Orchestrator configuration — system prompt, MCP servers, SDK options.

This module builds the ClaudeAgentOptions for the Productboard assistant.
"""

from __future__ import annotations

import logging

from claude_agent_sdk import ClaudeAgentOptions, create_sdk_mcp_server

from pbagent.config import settings

from .tools import PRODUCTBOARD_TOOLS

logger = logging.getLogger(__name__)

MCP_SERVER_NAME = "productboard"

# ---------------------------------------------------------------------------
# System prompt
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """\
You are a product management assistant with read access to the team's
Productboard workspace.

Use the pb_* tools to answer questions about products, features, releases,
release assignments, initiatives, objectives, notes, tags and custom fields.

- Feature listings default to the primary product; pass product_id to look
  elsewhere (pb_list_products lists them).
- Results are capped. When meta.nextCursor is set, more data exists: pass it
  back as cursor, or set auto_paginate for larger sweeps. Only do that when
  the question really needs the full set.
- Ask for specific fields when you only need a few; descriptions are trimmed.
- If meta.hadError is true the result is partial; say so.
- When a tool fails, tell the user what kind of failure it was and the hint
  that came with it. Never paste raw stack traces.

Be concise. Cite feature and release names exactly as Productboard returns
them.
"""

# ---------------------------------------------------------------------------
# MCP server construction
# ---------------------------------------------------------------------------

_productboard_server = create_sdk_mcp_server(
    name=MCP_SERVER_NAME,
    tools=PRODUCTBOARD_TOOLS,
)

ALLOWED_TOOLS = [f"mcp__{MCP_SERVER_NAME}__{t.name}" for t in PRODUCTBOARD_TOOLS]


def build_mcp_servers() -> dict:
    """Build the MCP server config dict."""
    return {MCP_SERVER_NAME: _productboard_server}


def _stderr_callback(line: str) -> None:
    """Capture CLI subprocess stderr for debugging."""
    logger.warning("CLI stderr: %s", line)


def build_options() -> ClaudeAgentOptions:
    """Build ClaudeAgentOptions for the Productboard assistant."""
    return ClaudeAgentOptions(
        system_prompt=SYSTEM_PROMPT,
        model=settings.anthropic_model,
        mcp_servers=build_mcp_servers(),
        allowed_tools=ALLOWED_TOOLS,
        permission_mode="bypassPermissions",
        max_turns=settings.max_turns,
        max_budget_usd=settings.max_budget_per_session_usd,
        include_partial_messages=True,
        env={"ANTHROPIC_API_KEY": settings.anthropic_api_key},
        stderr=_stderr_callback,
    )

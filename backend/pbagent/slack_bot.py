"""Slack delivery — answer @mentions with the Productboard agent.

Each mention is acknowledged with a reaction while the agent works; the
reaction is removed once the reply is posted, whether or not the agent
succeeded. One agent session is kept per Slack thread.
"""

from __future__ import annotations

import json
import logging
import re

from slack_bolt.async_app import AsyncApp
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from pbagent.agents import generate_response
from pbagent.config import settings

logger = logging.getLogger(__name__)

_MENTION = re.compile(r"<@[A-Z0-9]+>\s*")
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_LINK = re.compile(r"\[([^\]]+)\]\((https?://[^)\s]+)\)")
_HEADING = re.compile(r"^#{1,6}\s+(.+)$", re.MULTILINE)

EMPTY_MENTION_REPLY = (
    "Ask me about the Productboard workspace, e.g. "
    "_which features are in progress for the next release?_"
)


def strip_mention(text: str) -> str:
    return _MENTION.sub("", text or "").strip()


def to_slack_markdown(text: str) -> str:
    """Convert the agent's Markdown to Slack mrkdwn."""
    text = _HEADING.sub(r"*\1*", text)
    text = _BOLD.sub(r"*\1*", text)
    return _LINK.sub(r"<\2|\1>", text)


async def _react(client: AsyncWebClient, action: str, channel: str, ts: str) -> None:
    try:
        if action == "add":
            await client.reactions_add(channel=channel, timestamp=ts, name=settings.slack_ack_reaction)
        else:
            await client.reactions_remove(channel=channel, timestamp=ts, name=settings.slack_ack_reaction)
    except SlackApiError as e:
        logger.warning("Slack reactions_%s failed: %s", action, e.response.get("error"))


async def collect_reply(message: str, session_id: str) -> str:
    """Run the agent and join its streamed text into one reply."""
    chunks: list[str] = []
    error: str | None = None
    async for event_type, data in generate_response(message, session_id):
        if event_type == "text":
            chunks.append(json.loads(data))
        elif event_type == "error":
            error = json.loads(data).get("message")

    reply = "".join(chunks).strip()
    if reply:
        return reply
    if error:
        return f":warning: {error}"
    return "I couldn't come up with an answer for that."


async def handle_mention(event: dict, client: AsyncWebClient, say) -> None:
    """Bolt listener for app_mention events."""
    channel = event["channel"]
    ts = event["ts"]
    thread_ts = event.get("thread_ts") or ts

    text = strip_mention(event.get("text", ""))
    if not text:
        await say(text=EMPTY_MENTION_REPLY, thread_ts=thread_ts)
        return

    await _react(client, "add", channel, ts)
    try:
        reply = await collect_reply(text, session_id=f"slack:{channel}:{thread_ts}")
        await say(text=to_slack_markdown(reply), thread_ts=thread_ts)
    finally:
        await _react(client, "remove", channel, ts)


def build_slack_app() -> AsyncApp:
    app = AsyncApp(
        token=settings.slack_bot_token,
        signing_secret=settings.slack_signing_secret,
    )
    app.event("app_mention")(handle_mention)
    return app

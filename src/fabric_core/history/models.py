"""Persisted history records and conversation participants."""

import json
import logging
from typing import Any

from pydantic import BaseModel, Field

from fabric_core.messages import ToolInvocation

logger = logging.getLogger(__name__)

TOOL_CALLS_EVENT_TYPE = "llm_tool_calls"
TOOL_RESULT_EVENT_TYPE = "tool_result"
ASSISTANT_MESSAGE_EVENT_TYPE = "assistant_message"


class ToolMetadata(BaseModel):
    """Tool traffic attached to a persisted message.

    A marker message posted while tools run carries ``invocations``; a
    message holding a tool's output carries ``result_for_invocation_id``.
    """

    invocations: list[ToolInvocation] = Field(default_factory=list)
    result_for_invocation_id: str | None = None

    def to_transport(self) -> dict[str, Any]:
        """Render as the platform's message-metadata envelope."""
        if self.result_for_invocation_id:
            return {
                "event_type": TOOL_RESULT_EVENT_TYPE,
                "event_payload": {"tool_call_id": self.result_for_invocation_id},
            }
        return {
            "event_type": TOOL_CALLS_EVENT_TYPE,
            "event_payload": {
                "tool_calls": json.dumps([tc.to_openai() for tc in self.invocations]),
            },
        }

    @classmethod
    def from_transport(cls, metadata: dict[str, Any] | None) -> "ToolMetadata | None":
        """Decode a message-metadata envelope.

        Returns:
            ToolMetadata, or None if the envelope carries no tool traffic or
            cannot be decoded.
        """
        if not metadata:
            return None
        event_type = metadata.get("event_type")
        payload = metadata.get("event_payload") or {}

        if event_type == TOOL_RESULT_EVENT_TYPE:
            invocation_id = payload.get("tool_call_id")
            return cls(result_for_invocation_id=invocation_id) if invocation_id else None

        if event_type == TOOL_CALLS_EVENT_TYPE or "tool_calls" in payload:
            raw = payload.get("tool_calls")
            if isinstance(raw, str):
                try:
                    raw = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning("Undecodable tool_calls metadata payload=%r", raw)
                    return None
            if not isinstance(raw, list):
                return None
            invocations = [ToolInvocation.from_openai(tc) for tc in raw if isinstance(tc, dict)]
            return cls(invocations=invocations)

        return None


class PersistedHistoryEntry(BaseModel):
    """One stored platform message, as read back for context.

    Attributes:
        text: Message text, if any.
        author: Platform user id of the author, if known.
        author_is_bot: Whether the assistant wrote this message.
        timestamp: Platform timestamp (sortable as a float, e.g. "1712345678.000100").
        tool_metadata: Tool calls or tool result carried by the message.
    """

    text: str | None = None
    author: str | None = None
    author_is_bot: bool = False
    timestamp: str
    tool_metadata: ToolMetadata | None = None

    @property
    def sort_key(self) -> float:
        return float(self.timestamp)

    @classmethod
    def from_platform(cls, message: dict[str, Any]) -> "PersistedHistoryEntry":
        """Build an entry from a raw platform message dict.

        Expects Slack-style keys: ``ts``, ``text``, ``user``, ``bot_id`` and
        ``metadata``.
        """
        metadata = message.get("metadata")
        is_bot = message.get("bot_id") is not None or (
            bool(metadata) and metadata.get("event_type") == ASSISTANT_MESSAGE_EVENT_TYPE
        )
        return cls(
            text=message.get("text") or None,
            author=message.get("user"),
            author_is_bot=is_bot,
            timestamp=message["ts"],
            tool_metadata=ToolMetadata.from_transport(metadata),
        )


class UserProfile(BaseModel):
    """The person who sent the message being answered."""

    slack_id: str
    preferred_name: str | None = None
    real_name: str | None = None
    time_zone: str | None = None
    time_zone_offset: int | None = None
    is_admin: bool = False


class BotIdentity(BaseModel):
    """The assistant's own platform ids, resolved once per process."""

    bot_id: str
    user_id: str | None = None

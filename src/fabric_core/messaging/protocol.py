from typing import Any, Protocol

from pydantic import BaseModel


class MessageDestination(BaseModel):
    """Where a new message is posted: a channel, optionally inside a thread."""

    channel: str
    thread_ts: str | None = None


class PostedMessage(BaseModel):
    """Identity of a message returned by a create or edit call.

    Any field may be missing when the platform response is incomplete;
    callers decide whether that is fatal.
    """

    channel: str | None = None
    id: str | None = None
    timestamp: str | None = None


class MessagingClient(Protocol):
    """Protocol for the chat platform's message primitives.

    Every method is a network round-trip and may raise.
    """

    async def create_message(
        self,
        destination: MessageDestination,
        text: str,
        metadata: dict[str, Any] | None = None,
    ) -> PostedMessage:
        """Post a new message, optionally with transport-level metadata."""
        ...

    async def edit_message(
        self, channel: str, message_id: str, text: str
    ) -> PostedMessage:
        """Replace the text of an existing message."""
        ...

    async def add_reaction(self, channel: str, timestamp: str, name: str) -> None:
        """Add an emoji reaction to a message."""
        ...

    async def remove_reaction(self, channel: str, timestamp: str, name: str) -> None:
        """Remove an emoji reaction from a message."""
        ...

    async def open_conversation(self, user_ids: list[str]) -> str:
        """Open a group conversation with ``user_ids`` and the assistant.

        Returns:
            The new conversation's channel id.
        """
        ...

    async def set_topic(self, channel: str, topic: str) -> None:
        """Set a conversation's topic line."""
        ...

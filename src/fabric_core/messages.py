"""Model-facing message representation for Fabric.

This module provides the role-tagged messages exchanged with the completion
API. Use the history codec to build them from persisted platform history, and
``to_openai()`` to render them for the wire.
"""

import json
import logging
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ToolInvocation(BaseModel):
    """A tool call requested by the model.

    ``arguments`` holds the raw JSON text exactly as the model produced it.
    While a stream is in flight the same type is used for partial records,
    which is why every field defaults to an empty string.
    """

    id: str = ""
    name: str = ""
    arguments: str = ""

    @property
    def is_complete(self) -> bool:
        """Whether both id and name are known."""
        return bool(self.id and self.name)

    def parsed_arguments(self) -> Any:
        """Decode the arguments JSON. Empty text decodes to an empty object.

        Raises:
            json.JSONDecodeError: If the arguments are not valid JSON.
        """
        return json.loads(self.arguments or "{}")

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }

    @classmethod
    def from_openai(cls, data: dict[str, Any]) -> "ToolInvocation":
        function = data.get("function") or {}
        return cls(
            id=data.get("id") or "",
            name=function.get("name") or "",
            arguments=function.get("arguments") or "",
        )


class SystemMessage(BaseModel):
    """Instructions and context supplied by the application."""

    role: Literal["system"] = "system"
    content: str

    def to_openai(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}


class UserMessage(BaseModel):
    """A message written by a person in the workspace."""

    role: Literal["user"] = "user"
    content: str

    def to_openai(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}


class AssistantMessage(BaseModel):
    """A model reply.

    Attributes:
        content: Reply text. May be None when the reply only carries tool calls.
        tool_calls: Invocations requested in this reply.
    """

    role: Literal["assistant"] = "assistant"
    content: str | None = None
    tool_calls: list[ToolInvocation] = Field(default_factory=list)

    def to_openai(self) -> dict[str, Any]:
        message: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [tc.to_openai() for tc in self.tool_calls]
        return message


class ToolMessage(BaseModel):
    """The result of one tool invocation, fed back to the model."""

    role: Literal["tool"] = "tool"
    tool_call_id: str
    content: str

    def to_openai(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "tool_call_id": self.tool_call_id,
            "content": self.content,
        }


ChatMessage = Annotated[
    SystemMessage | UserMessage | AssistantMessage | ToolMessage,
    Field(discriminator="role"),
]


def to_openai_messages(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Render a thread for the completion API."""
    return [message.to_openai() for message in messages]


def sanitize_thread(messages: list[ChatMessage]) -> list[ChatMessage]:
    """Drop tool traffic that would make the thread malformed.

    A tool message must answer an invocation emitted by an earlier assistant
    message; orphans are dropped. Invocations that never receive a result are
    stripped from their assistant message, and an assistant message left with
    neither text nor calls is dropped.

    Args:
        messages: Thread to check, in order.

    Returns:
        A new list; the input is not modified.
    """
    # First pass: which results answer a call emitted earlier in the thread
    emitted: set[str] = set()
    answered: set[str] = set()
    for message in messages:
        if isinstance(message, AssistantMessage):
            emitted.update(tc.id for tc in message.tool_calls)
        elif isinstance(message, ToolMessage) and message.tool_call_id in emitted:
            answered.add(message.tool_call_id)

    result: list[ChatMessage] = []
    for message in messages:
        if isinstance(message, AssistantMessage) and message.tool_calls:
            kept = [tc for tc in message.tool_calls if tc.id in answered]
            if len(kept) != len(message.tool_calls):
                logger.warning(
                    "sanitize_thread dropping %d unanswered tool call(s)",
                    len(message.tool_calls) - len(kept),
                )
            if not kept and not message.content:
                continue
            result.append(message.model_copy(update={"tool_calls": kept}))

        elif isinstance(message, ToolMessage):
            if message.tool_call_id not in answered:
                logger.warning(
                    "sanitize_thread dropping tool result without a matching call tool_call_id=%s",
                    message.tool_call_id,
                )
                continue
            result.append(message)

        else:
            result.append(message)

    return result

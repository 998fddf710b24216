from collections.abc import AsyncIterator
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from fabric_core.messages import ChatMessage
from fabric_core.streaming.aggregator import ToolCallDelta

ToolChoice = Literal["auto", "none"]


class CompletionChunk(BaseModel):
    """One increment of a streamed completion."""

    content: str | None = None
    tool_call_deltas: list[ToolCallDelta] = Field(default_factory=list)
    finish_reason: str | None = None


class CompletionClient(Protocol):
    """Protocol for a streaming chat completion endpoint."""

    def stream_completion(
        self,
        *,
        model: str,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = "auto",
    ) -> AsyncIterator[CompletionChunk]:
        """Request a completion and yield its chunks as they arrive."""
        ...

import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from openai import AsyncOpenAI

from fabric_core.llm.protocol import CompletionChunk, ToolChoice
from fabric_core.messages import ChatMessage, to_openai_messages
from fabric_core.streaming.aggregator import ToolCallDelta

if TYPE_CHECKING:
    from fabric_core.config import FabricConfig

logger = logging.getLogger(__name__)


class OpenAICompletionClient:
    """Streaming completions over any OpenAI-compatible API.

    Defaults to OpenRouter, which routes the request to the configured model.
    """

    def __init__(
        self,
        base_url: str = "https://openrouter.ai/api/v1",
        api_key: str | None = None,
        app_name: str | None = None,
        app_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        headers: dict[str, str] = {}
        if app_url:
            headers["HTTP-Referer"] = app_url
        if app_name:
            headers["X-Title"] = app_name
        self._client = client or AsyncOpenAI(
            base_url=base_url,
            api_key=api_key,
            default_headers=headers or None,
        )

    @classmethod
    def from_config(cls, config: "FabricConfig") -> "OpenAICompletionClient":
        return cls(
            base_url=config.llm_base_url,
            api_key=config.llm_api_key,
            app_name=config.app_name,
            app_url=config.app_url,
        )

    async def stream_completion(
        self,
        *,
        model: str,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: ToolChoice = "auto",
    ) -> AsyncIterator[CompletionChunk]:
        """Yield chunks of a streamed chat completion.

        Args:
            model: Model identifier.
            messages: Working thread.
            tools: Tool specs in the function-calling format. Omitted from the
                request when empty.
            tool_choice: "none" forbids the model from requesting tools.
        """
        request: dict[str, Any] = {
            "model": model,
            "messages": to_openai_messages(messages),
            "stream": True,
        }
        if tools:
            request["tools"] = tools
            request["tool_choice"] = tool_choice

        logger.debug(
            "Requesting completion model=%s messages=%d tools=%d tool_choice=%s",
            model,
            len(messages),
            len(tools or []),
            tool_choice,
        )
        stream = await self._client.chat.completions.create(**request)
        async for chunk in stream:
            if not chunk.choices:
                continue
            yield self._convert_chunk(chunk.choices[0])

    def _convert_chunk(self, choice: Any) -> CompletionChunk:
        delta = choice.delta
        deltas = []
        for tc in (delta.tool_calls if delta else None) or []:
            function = tc.function
            deltas.append(
                ToolCallDelta(
                    index=tc.index,
                    id=tc.id,
                    name=function.name if function else None,
                    arguments=function.arguments if function else None,
                )
            )
        return CompletionChunk(
            content=delta.content if delta else None,
            tool_call_deltas=deltas,
            finish_reason=choice.finish_reason,
        )

"""The tool-calling completion loop behind every assistant turn."""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from pydantic import BaseModel

from fabric_core.history.codec import pack_tool_invocations
from fabric_core.llm.protocol import CompletionClient, ToolChoice
from fabric_core.messages import AssistantMessage, ChatMessage, ToolInvocation
from fabric_core.messaging.protocol import MessageDestination, MessagingClient
from fabric_core.streaming.aggregator import ToolCallAggregator
from fabric_core.streaming.renderer import FinalizedMessage, ResponseRenderer
from fabric_core.tools.base import ToolContext
from fabric_core.tools.dispatcher import execute_tool_calls
from fabric_core.tools.registry import ToolRegistry

if TYPE_CHECKING:
    from fabric_core.config import FabricConfig

logger = logging.getLogger(__name__)

RendererFactory = Callable[[MessageDestination], ResponseRenderer]


class AgentRunResult(BaseModel):
    """Outcome of one agent turn.

    Attributes:
        finalized: The last rendered message that produced text and has an
            identity, or None.
        thread: The working thread, including everything appended this turn.
        iterations: Number of completion requests made.
        exhausted: True if the iteration budget ran out with tool calls pending.
    """

    finalized: FinalizedMessage | None = None
    thread: list[ChatMessage]
    iterations: int
    exhausted: bool = False


class AgentLoop:
    """Streams completions into the chat and runs the tools the model asks for.

    Each iteration renders one reply live. When the reply requests tools, a
    marker message is posted, the tools run, and their results are fed back
    for another completion. The final iteration forbids tool calls so the
    model always ends with an answer it was able to act on.

    Example:
        ```python
        loop = AgentLoop(completions, messaging, registry, model="openai/gpt-4o")
        result = await loop.run(thread, MessageDestination(channel="C1", thread_ts=ts))
        ```
    """

    def __init__(
        self,
        completions: CompletionClient,
        messaging: MessagingClient,
        registry: ToolRegistry,
        *,
        model: str,
        max_iterations: int = 5,
        renderer_factory: RendererFactory | None = None,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._completions = completions
        self._messaging = messaging
        self._registry = registry
        self._model = model
        self._max_iterations = max_iterations
        self._renderer_factory = renderer_factory or (
            lambda destination: ResponseRenderer(messaging, destination)
        )

    @classmethod
    def from_config(
        cls,
        completions: CompletionClient,
        messaging: MessagingClient,
        registry: ToolRegistry,
        config: "FabricConfig",
    ) -> "AgentLoop":
        return cls(
            completions,
            messaging,
            registry,
            model=config.model_name,
            max_iterations=config.max_tool_call_iterations,
            renderer_factory=lambda destination: ResponseRenderer.from_config(
                messaging, destination, config
            ),
        )

    async def run(
        self,
        thread: list[ChatMessage],
        destination: MessageDestination,
        *,
        user_is_admin: bool = False,
        placeholder: str = "_thinking..._",
    ) -> AgentRunResult:
        """Run one turn.

        Args:
            thread: Initial working thread. Not modified; a copy is extended.
            destination: Where replies and markers are posted.
            user_is_admin: Whether admin-only tools are offered.
            placeholder: Text shown while a reply is being generated.

        Returns:
            AgentRunResult with the last finalized message and the full thread.

        Raises:
            Exception: Errors from the completion stream, the marker post or
                the dispatcher propagate unchanged.
        """
        working = list(thread)
        renderer = self._renderer_factory(destination)
        context = ToolContext(messaging=self._messaging, user_is_admin=user_is_admin)
        tool_specs = self._registry.specs(user_is_admin)

        finalized: FinalizedMessage | None = None
        iterations = 0
        exhausted = False

        while iterations < self._max_iterations:
            iterations += 1
            is_last = iterations == self._max_iterations
            tool_choice: ToolChoice = "none" if is_last else "auto"
            logger.debug(
                "Agent loop iteration=%d/%d thread_length=%d tool_choice=%s",
                iterations,
                self._max_iterations,
                len(working),
                tool_choice,
            )

            await renderer.start(placeholder)
            aggregator = ToolCallAggregator()
            async for chunk in self._completions.stream_completion(
                model=self._model,
                messages=working,
                tools=tool_specs,
                tool_choice=tool_choice,
            ):
                if chunk.content:
                    await renderer.append(chunk.content)
                aggregator.add_all(chunk.tool_call_deltas)

            rendered = await renderer.finalize()
            if rendered.text:
                working.append(AssistantMessage(content=rendered.text))
                if rendered.message_id:
                    finalized = rendered

            invocations = aggregator.complete()
            if len(invocations) < len(aggregator):
                logger.warning(
                    "Discarding incomplete tool calls count=%d",
                    len(aggregator) - len(invocations),
                )
            if not invocations:
                logger.info("Model finished without tool calls iteration=%d", iterations)
                break

            if is_last:
                logger.warning(
                    "Reached max tool call iterations=%d with %d tool call(s) pending",
                    self._max_iterations,
                    len(invocations),
                )
                exhausted = True
                break

            await self._post_marker(destination, invocations)
            implementations = self._registry.implementations(context)
            working.extend(await execute_tool_calls(invocations, implementations))

        return AgentRunResult(
            finalized=finalized,
            thread=working,
            iterations=iterations,
            exhausted=exhausted,
        )

    async def _post_marker(
        self, destination: MessageDestination, invocations: list[ToolInvocation]
    ) -> None:
        """Tell the user which tools are running, recording the calls as metadata."""
        descriptions = ", ".join(self._registry.describe_call(tc) for tc in invocations)
        logger.debug("Posting tool call marker tools=%s", [tc.name for tc in invocations])
        await self._messaging.create_message(
            destination,
            f"_{descriptions}..._",
            metadata=pack_tool_invocations(invocations).to_transport(),
        )

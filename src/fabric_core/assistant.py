"""Fabric - a member-connections assistant for a chat workspace.

Usage:
    ```python
    from fabric_core import Fabric, FabricConfig, IncomingMessage

    fabric = Fabric(messaging=slack_messaging, store=document_store)
    await fabric.respond(
        IncomingMessage(channel="C1", timestamp="1712345678.000100",
                        text="Who works on solar?", user="U123"),
        history=entries,
        profile=UserProfile(slack_id="U123"),
        bot=BotIdentity(bot_id="B1", user_id="U0BOT"),
    )
    ```
"""

import logging

from pydantic import BaseModel

from fabric_core.agent import AgentLoop
from fabric_core.config import FabricConfig
from fabric_core.embedders.openai import OpenAIEmbedder
from fabric_core.embedders.protocol import Embedder
from fabric_core.history.codec import build_initial_thread, convert_history
from fabric_core.history.models import BotIdentity, PersistedHistoryEntry, UserProfile
from fabric_core.llm.openai import OpenAICompletionClient
from fabric_core.llm.protocol import CompletionClient
from fabric_core.messaging.protocol import MessageDestination, MessagingClient
from fabric_core.streaming.renderer import FinalizedMessage
from fabric_core.tools.builtin import default_registry
from fabric_core.tools.documents import DocumentStore
from fabric_core.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

THINKING_REACTION = "thinking_face"
FEEDBACK_REACTIONS = ("+1", "-1")


class IncomingMessage(BaseModel):
    """A user message the assistant should answer."""

    channel: str
    timestamp: str
    text: str
    user: str
    thread_ts: str | None = None


class Fabric:
    """Answers workspace messages with a streamed, tool-using model reply.

    Fabric wires the pieces of a turn together:

    - **History**: persisted thread messages are decoded into model messages
      and wrapped with the system prompt and speaker details.
    - **Agent loop**: the reply streams into the thread while the model's
      tool calls are dispatched between completions.
    - **Reactions**: a thinking reaction marks the trigger while the turn
      runs, and feedback hint reactions are added to the final reply.

    Errors never escape ``respond``; they are logged and reported in the
    thread so the user is not left waiting.
    """

    def __init__(
        self,
        messaging: MessagingClient,
        config: FabricConfig | None = None,
        completions: CompletionClient | None = None,
        registry: ToolRegistry | None = None,
        store: DocumentStore | None = None,
        embedder: Embedder | None = None,
    ) -> None:
        """Initialize Fabric.

        Args:
            messaging: Chat platform client.
            config: Configuration settings. Uses defaults if not provided.
            completions: Completion client. Uses an OpenAI-compatible client
                built from ``config`` if not provided.
            registry: Tools offered to the model. If not provided and a
                ``store`` is given, the built-in tools are used;
                otherwise no tools are offered.
            store: Document store backing the built-in tools.
            embedder: Embedder for search queries. Uses the OpenAI
                embedder if not provided (requires config.openai_api_key).
        """
        self._config = config or FabricConfig()
        self._messaging = messaging
        self._completions = completions or OpenAICompletionClient.from_config(self._config)

        if registry is None:
            if store is not None:
                registry = default_registry(
                    store, embedder or OpenAIEmbedder.from_config(self._config)
                )
            else:
                registry = ToolRegistry()
        self._registry = registry

        self._loop = AgentLoop.from_config(
            self._completions, messaging, registry, self._config
        )

    @property
    def config(self) -> FabricConfig:
        return self._config

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def respond(
        self,
        trigger: IncomingMessage,
        history: list[PersistedHistoryEntry],
        profile: UserProfile,
        bot: BotIdentity,
    ) -> FinalizedMessage | None:
        """Answer ``trigger`` in its thread.

        Args:
            trigger: The message being answered.
            history: Persisted messages of the thread (and channel, if wanted).
                The trigger itself may be included; it is skipped.
            profile: The sender's profile.
            bot: The assistant's own ids.

        Returns:
            The final reply with its identity, or None if no reply text was
            delivered (including when the turn failed).
        """
        logger.info(
            "Handling incoming message channel=%s timestamp=%s user=%s",
            trigger.channel,
            trigger.timestamp,
            trigger.user,
        )
        destination = MessageDestination(
            channel=trigger.channel,
            thread_ts=trigger.thread_ts or trigger.timestamp,
        )

        try:
            await self._messaging.add_reaction(
                trigger.channel, trigger.timestamp, THINKING_REACTION
            )
        except Exception:
            logger.exception("Failed to add %s reaction", THINKING_REACTION)

        try:
            thread = build_initial_thread(
                convert_history(history, trigger.timestamp),
                profile,
                trigger.text,
                bot,
            )
            result = await self._loop.run(
                thread,
                destination,
                user_is_admin=profile.is_admin,
                placeholder=self._config.thinking_placeholder,
            )
            if result.finalized is None:
                logger.info(
                    "No final message for timestamp=%s, skipping feedback reactions",
                    trigger.timestamp,
                )
                return None

            await self._add_feedback_reactions(result.finalized)
            return result.finalized
        except Exception as e:
            logger.exception("Error responding to message timestamp=%s", trigger.timestamp)
            await self._report_error(destination, e)
            return None
        finally:
            try:
                await self._messaging.remove_reaction(
                    trigger.channel, trigger.timestamp, THINKING_REACTION
                )
            except Exception:
                logger.exception("Failed to remove %s reaction", THINKING_REACTION)

    async def _add_feedback_reactions(self, message: FinalizedMessage) -> None:
        if not message.channel or not message.timestamp:
            return
        for name in FEEDBACK_REACTIONS:
            try:
                await self._messaging.add_reaction(message.channel, message.timestamp, name)
            except Exception:
                logger.exception(
                    "Failed to add feedback reaction name=%s timestamp=%s",
                    name,
                    message.timestamp,
                )

    async def _report_error(self, destination: MessageDestination, error: Exception) -> None:
        text = (
            "Something went wrong processing that message.\n"
            "You may want to forward this error message to an admin:\n"
            f"```\n{error}\n```"
        )
        try:
            await self._messaging.create_message(destination, text)
        except Exception:
            logger.exception("Failed to post error notice")

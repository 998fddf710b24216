"""Conversion between persisted platform history and the model-facing thread.

Encoding builds the thread for a new turn; decoding turns stored platform
messages back into model messages. Tool traffic survives the trip through
the ``ToolMetadata`` attached to persisted entries.
"""

import logging
from datetime import UTC, datetime

from fabric_core.history.models import (
    BotIdentity,
    PersistedHistoryEntry,
    ToolMetadata,
    UserProfile,
)
from fabric_core.history.prompts import DEFAULT_SYSTEM_CONTENT
from fabric_core.messages import (
    AssistantMessage,
    ChatMessage,
    SystemMessage,
    ToolInvocation,
    ToolMessage,
    UserMessage,
    sanitize_thread,
)

logger = logging.getLogger(__name__)

NO_CONVERSATION_HISTORY_SUMMARY = (
    "[No history in this thread. This is a brand new conversation.]"
)


def build_initial_thread(
    history: list[ChatMessage],
    profile: UserProfile,
    user_text: str,
    bot: BotIdentity,
    *,
    now: datetime | None = None,
    system_prompt: str = DEFAULT_SYSTEM_CONTENT,
) -> list[ChatMessage]:
    """Build the working thread for a new turn.

    The order is fixed: system prompt, time and bot identity, prior history,
    a description of the speaker, then the new user message.

    Args:
        history: Prior turns, already decoded into model messages.
        profile: The person who sent the new message.
        user_text: Raw text of the new message.
        bot: The assistant's own platform ids.
        now: Current time. Defaults to the current UTC time.
        system_prompt: Instructions placed first in the thread.

    Returns:
        The ordered message list.
    """
    now = now or datetime.now(UTC)
    identity = f"Your Slack bot ID is {bot.bot_id}"
    if bot.user_id:
        identity += f" and your Slack user ID is <@{bot.user_id}>"

    thread: list[ChatMessage] = [
        SystemMessage(content=system_prompt),
        SystemMessage(
            content=f"The current date and time is {now.isoformat()}. {identity}."
        ),
        *history,
        SystemMessage(
            content=(
                "The current task is to respond to the most recent user message, "
                "in the context of the immediately preceding conversation. "
                "Details of the user who left the last message: "
                f"{profile.model_dump_json(exclude_none=True)}. "
                "Their most recent message follows."
            )
        ),
        UserMessage(content=user_text),
    ]
    logger.debug("Built initial thread length=%d", len(thread))
    return thread


def convert_history(
    entries: list[PersistedHistoryEntry],
    triggering_timestamp: str,
) -> list[ChatMessage]:
    """Decode persisted entries into model messages.

    Entries are visited in timestamp order and the triggering message is
    skipped, since it is supplied separately as the final user turn. Entries
    with neither an author nor text (join notices and the like) are skipped.

    Args:
        entries: Stored messages, in any order.
        triggering_timestamp: Timestamp of the message being answered.

    Returns:
        A sanitized thread: every tool result answers an earlier invocation.
    """
    relevant = sorted(
        (entry for entry in entries if entry.timestamp != triggering_timestamp),
        key=lambda entry: entry.sort_key,
    )

    history: list[ChatMessage] = []
    for entry in relevant:
        metadata = entry.tool_metadata or ToolMetadata()

        if metadata.result_for_invocation_id and entry.text:
            history.append(
                ToolMessage(
                    tool_call_id=metadata.result_for_invocation_id,
                    content=entry.text,
                )
            )
        elif entry.author_is_bot:
            if not entry.text and not metadata.invocations:
                continue
            history.append(
                AssistantMessage(
                    content=entry.text or None,
                    tool_calls=list(metadata.invocations),
                )
            )
        elif entry.author and entry.text:
            history.append(UserMessage(content=f"<@{entry.author}>: {entry.text}"))

    logger.debug(
        "Converted history entries=%d messages=%d", len(entries), len(history)
    )
    return sanitize_thread(history)


def pack_tool_invocations(invocations: list[ToolInvocation]) -> ToolMetadata:
    """Metadata recording the invocations a marker message stands for."""
    return ToolMetadata(invocations=[tc.model_copy() for tc in invocations])


def pack_tool_result(invocation_id: str) -> ToolMetadata:
    """Metadata marking a message as the result of one invocation."""
    return ToolMetadata(result_for_invocation_id=invocation_id)


def entry_for_tool_invocations(
    invocations: list[ToolInvocation],
    timestamp: str,
    text: str | None = None,
) -> PersistedHistoryEntry:
    return PersistedHistoryEntry(
        text=text,
        author_is_bot=True,
        timestamp=timestamp,
        tool_metadata=pack_tool_invocations(invocations),
    )


def entry_for_tool_result(
    invocation_id: str,
    content: str,
    timestamp: str,
) -> PersistedHistoryEntry:
    return PersistedHistoryEntry(
        text=content,
        author_is_bot=True,
        timestamp=timestamp,
        tool_metadata=pack_tool_result(invocation_id),
    )


def _stringify_entry(entry: PersistedHistoryEntry) -> str:
    text = (entry.text or "").strip()
    if not text:
        return ""

    if entry.author_is_bot:
        invocations = entry.tool_metadata.invocations if entry.tool_metadata else []
        if invocations:
            # Marker text is generated, the calls themselves say more
            calls = ", ".join(f"{tc.name}({tc.arguments})" for tc in invocations)
            return f"  (Assistant used tool(s): {calls}.)"
        return f"Assistant: {text}"
    return f"User <@{entry.author}>: {text}"


def stringify_history(entries: list[PersistedHistoryEntry]) -> str:
    """Render entries as a plain-text transcript, one line per message."""
    lines = [line for line in map(_stringify_entry, entries) if line]
    if not lines:
        return NO_CONVERSATION_HISTORY_SUMMARY
    return "\n".join(lines)


def history_summary_message(entries: list[PersistedHistoryEntry]) -> SystemMessage:
    """Wrap the transcript of ``entries`` in a single system message.

    An alternative to ``convert_history`` for callers that want the history
    as flat context rather than as replayed turns.
    """
    return SystemMessage(
        content=(
            "Summary of the preceding conversation "
            "(users are referred to by their Slack IDs):\n"
            f"{stringify_history(entries)}"
        )
    )

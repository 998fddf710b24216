from fabric_core.history.codec import (
    NO_CONVERSATION_HISTORY_SUMMARY,
    build_initial_thread,
    convert_history,
    entry_for_tool_invocations,
    entry_for_tool_result,
    history_summary_message,
    pack_tool_invocations,
    pack_tool_result,
    stringify_history,
)
from fabric_core.history.models import (
    BotIdentity,
    PersistedHistoryEntry,
    ToolMetadata,
    UserProfile,
)
from fabric_core.history.prompts import DEFAULT_SYSTEM_CONTENT

__all__ = [
    "DEFAULT_SYSTEM_CONTENT",
    "NO_CONVERSATION_HISTORY_SUMMARY",
    "BotIdentity",
    "PersistedHistoryEntry",
    "ToolMetadata",
    "UserProfile",
    "build_initial_thread",
    "convert_history",
    "entry_for_tool_invocations",
    "entry_for_tool_result",
    "history_summary_message",
    "pack_tool_invocations",
    "pack_tool_result",
    "stringify_history",
]

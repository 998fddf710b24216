from fabric_core.agent import AgentLoop, AgentRunResult
from fabric_core.assistant import Fabric, IncomingMessage
from fabric_core.config import FabricConfig
from fabric_core.embedders import Embedder, OpenAIEmbedder
from fabric_core.history import (
    BotIdentity,
    PersistedHistoryEntry,
    ToolMetadata,
    UserProfile,
    build_initial_thread,
    convert_history,
    history_summary_message,
    pack_tool_invocations,
    pack_tool_result,
    stringify_history,
)
from fabric_core.llm import CompletionChunk, CompletionClient, OpenAICompletionClient
from fabric_core.messages import (
    AssistantMessage,
    ChatMessage,
    SystemMessage,
    ToolInvocation,
    ToolMessage,
    UserMessage,
    sanitize_thread,
)
from fabric_core.messaging import MessageDestination, MessagingClient, PostedMessage
from fabric_core.streaming import (
    FinalizedMessage,
    MessageTransportError,
    RendererStateError,
    ResponseRenderer,
    ToolCallAggregator,
    ToolCallDelta,
)
from fabric_core.tools import (
    Document,
    DocumentStore,
    LLMTool,
    ToolContext,
    ToolRegistry,
    UnknownToolError,
    default_registry,
    execute_tool_calls,
)

__all__ = [
    # Main class
    "Fabric",
    "IncomingMessage",
    # Config
    "FabricConfig",
    # Messages
    "ChatMessage",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
    "ToolInvocation",
    "sanitize_thread",
    # Agent loop
    "AgentLoop",
    "AgentRunResult",
    # Streaming
    "ResponseRenderer",
    "FinalizedMessage",
    "RendererStateError",
    "MessageTransportError",
    "ToolCallAggregator",
    "ToolCallDelta",
    # History
    "PersistedHistoryEntry",
    "ToolMetadata",
    "UserProfile",
    "BotIdentity",
    "build_initial_thread",
    "convert_history",
    "pack_tool_invocations",
    "pack_tool_result",
    "stringify_history",
    "history_summary_message",
    # Tools
    "LLMTool",
    "ToolContext",
    "ToolRegistry",
    "UnknownToolError",
    "execute_tool_calls",
    "Document",
    "DocumentStore",
    "default_registry",
    # Collaborators
    "MessagingClient",
    "MessageDestination",
    "PostedMessage",
    "CompletionClient",
    "CompletionChunk",
    "OpenAICompletionClient",
    "Embedder",
    "OpenAIEmbedder",
]

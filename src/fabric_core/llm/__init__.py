from fabric_core.llm.openai import OpenAICompletionClient
from fabric_core.llm.protocol import CompletionChunk, CompletionClient, ToolChoice

__all__ = [
    "CompletionChunk",
    "CompletionClient",
    "OpenAICompletionClient",
    "ToolChoice",
]

from fabric_core.embedders.openai import OpenAIEmbedder
from fabric_core.embedders.protocol import Embedder

__all__ = [
    "Embedder",
    "OpenAIEmbedder",
]

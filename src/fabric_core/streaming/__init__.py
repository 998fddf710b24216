"""Streaming building blocks: tool-call reassembly and live message rendering."""

from fabric_core.streaming.aggregator import ToolCallAggregator, ToolCallDelta
from fabric_core.streaming.renderer import (
    FinalizedMessage,
    MessageTransportError,
    RendererStateError,
    ResponseRenderer,
    find_split_index,
    split_overflowing_text,
)

__all__ = [
    "FinalizedMessage",
    "MessageTransportError",
    "RendererStateError",
    "ResponseRenderer",
    "ToolCallAggregator",
    "ToolCallDelta",
    "find_split_index",
    "split_overflowing_text",
]

"""Qwen API Clients

chat completion 스트리밍 클라이언트와 tool call 스트림 병합기.
"""

from qwen_copilot.clients.qwen_client import QwenClient
from qwen_copilot.clients.stream_aggregator import (
    StreamEvent,
    TextEvent,
    ToolCallAccumulator,
    ToolCallAggregator,
    ToolCallEvent,
    aggregate_stream,
)

__all__ = [
    "QwenClient",
    "StreamEvent",
    "TextEvent",
    "ToolCallEvent",
    "ToolCallAccumulator",
    "ToolCallAggregator",
    "aggregate_stream",
]

"""Qwen Copilot - Qwen OAuth device login and streaming chat core."""

from qwen_copilot.auth import AuthSession, Credentials, TokenStore
from qwen_copilot.clients import QwenClient, TextEvent, ToolCallEvent
from qwen_copilot.models import QWEN_MODELS

__version__ = "0.1.0"

__all__ = [
    "AuthSession",
    "Credentials",
    "TokenStore",
    "QwenClient",
    "TextEvent",
    "ToolCallEvent",
    "QWEN_MODELS",
]

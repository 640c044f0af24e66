"""Auth Providers

OAuth Provider 구현.
"""

from qwen_copilot.auth.providers.base import BaseProvider, Credentials
from qwen_copilot.auth.providers.qwen_provider import QwenProvider

__all__ = [
    "Credentials",
    "BaseProvider",
    "QwenProvider",
]

"""Qwen Copilot Auth Module

Qwen Device Code OAuth 인증, 토큰 갱신, 자격증명 저장.

Example:
    from qwen_copilot.auth import AuthSession, KeyringVault, TokenStore

    session = AuthSession(store=TokenStore(vault=KeyringVault()))
    await session.load_credentials()
    if not session.is_authenticated():
        await session.login()
    token = await session.get_valid_access_token()
"""

from qwen_copilot.auth.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    CredentialsNotFoundError,
    DeviceFlowCancelledError,
    DeviceFlowTimeoutError,
    EmptyAccessTokenError,
    RetryLimitExceededError,
    TransportError,
)
from qwen_copilot.auth.flows.cancellation import CancellationToken
from qwen_copilot.auth.providers.base import BaseProvider, Credentials
from qwen_copilot.auth.providers.qwen_provider import QwenProvider
from qwen_copilot.auth.session import AuthSession
from qwen_copilot.auth.storage.token_store import TokenStore
from qwen_copilot.auth.storage.vault import KeyringVault, SecretVault

__all__ = [
    # Core
    "AuthSession",
    "Credentials",
    "BaseProvider",
    "QwenProvider",
    "TokenStore",
    "SecretVault",
    "KeyringVault",
    "CancellationToken",
    # Exceptions
    "AuthenticationError",
    "ConfigurationError",
    "CredentialsNotFoundError",
    "EmptyAccessTokenError",
    "AuthorizationError",
    "DeviceFlowTimeoutError",
    "DeviceFlowCancelledError",
    "RetryLimitExceededError",
    "TransportError",
]

"""Credential storage backends."""

from qwen_copilot.auth.storage.token_store import TokenStore
from qwen_copilot.auth.storage.vault import KeyringVault, SecretVault

__all__ = ["TokenStore", "SecretVault", "KeyringVault"]

"""Secret Vault

자격증명을 암호화 저장하는 key-value 백엔드 인터페이스.
에디터 SecretStorage나 OS keyring을 같은 모양으로 감싼다.
"""

import logging
from typing import Protocol

import keyring
from keyring.errors import PasswordDeleteError

logger = logging.getLogger(__name__)


class SecretVault(Protocol):
    """비동기 key-value 비밀 저장소."""

    async def get(self, key: str) -> str | None: ...

    async def store(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class KeyringVault:
    """OS 자격증명 저장소 (keyring)

    - Windows: Credential Locker
    - macOS: Keychain
    - Linux: Secret Service (libsecret)
    """

    SERVICE_NAME = "qwen-copilot"

    def __init__(self, service_name: str | None = None):
        self.service_name = service_name or self.SERVICE_NAME

    async def get(self, key: str) -> str | None:
        return keyring.get_password(self.service_name, key)

    async def store(self, key: str, value: str) -> None:
        keyring.set_password(self.service_name, key, value)

    async def delete(self, key: str) -> None:
        try:
            keyring.delete_password(self.service_name, key)
        except PasswordDeleteError:
            logger.debug("No keyring entry to delete: %s", key)

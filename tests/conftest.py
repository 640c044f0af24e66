"""Shared test fixtures."""

import pytest

from qwen_copilot.auth.providers.base import Credentials, now_ms


@pytest.fixture(autouse=True)
def credentials_tmp_path(tmp_path, monkeypatch):
    """Redirect the default credential file to tmp directory.

    Prevents tests from touching ~/.qwen/oauth_creds.json.
    """
    path = tmp_path / "qwen" / "oauth_creds.json"
    monkeypatch.setenv("QWEN_CREDENTIALS_PATH", str(path))
    return path


class MemoryVault:
    """테스트용 in-memory secret vault"""

    def __init__(self):
        self.data: dict[str, str] = {}

    async def get(self, key):
        return self.data.get(key)

    async def store(self, key, value):
        self.data[key] = value

    async def delete(self, key):
        self.data.pop(key, None)


@pytest.fixture
def memory_vault():
    return MemoryVault()


@pytest.fixture
def valid_credentials():
    """1시간 뒤 만료되는 자격증명"""
    return Credentials(
        access_token="test-access-token",
        refresh_token="test-refresh-token",
        expires_at=now_ms() + 3600 * 1000,
        token_type="Bearer",
        resource_url="portal.qwen.ai",
    )

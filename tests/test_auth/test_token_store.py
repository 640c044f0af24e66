"""Token Store 테스트"""

import json
import logging
import os
from unittest.mock import patch

import pytest
from keyring.errors import PasswordDeleteError

from qwen_copilot.auth.storage.token_store import TokenStore
from qwen_copilot.auth.storage.vault import KeyringVault


class FailingVault:
    """저장이 항상 실패하는 vault"""

    async def get(self, key):
        return None

    async def store(self, key, value):
        raise OSError("vault locked")

    async def delete(self, key):
        raise OSError("vault locked")


@pytest.fixture
def creds_path(tmp_path):
    return tmp_path / "nested" / ".qwen" / "oauth_creds.json"


class TestFileBackend:
    """vault 없이 파일 저장"""

    @pytest.mark.asyncio
    async def test_save_and_load(self, creds_path, valid_credentials):
        """저장 및 로드"""
        store = TokenStore(credentials_path=creds_path)
        await store.save(valid_credentials)

        loaded = await store.load()
        assert loaded == valid_credentials

    @pytest.mark.asyncio
    async def test_save_creates_parent_dirs_and_pretty_json(self, creds_path, valid_credentials):
        """첫 저장 시 디렉토리 생성, 들여쓰기된 UTF-8 JSON"""
        store = TokenStore(credentials_path=creds_path)
        await store.save(valid_credentials)

        text = creds_path.read_text(encoding="utf-8")
        assert "\n  " in text
        data = json.loads(text)
        assert data["accessToken"] == "test-access-token"
        assert data["refreshToken"] == "test-refresh-token"
        assert data["expiresAt"] == valid_credentials.expires_at

    @pytest.mark.asyncio
    @pytest.mark.skipif(os.name == "nt", reason="POSIX 권한만 확인")
    async def test_file_permissions(self, creds_path, valid_credentials):
        """사용자만 읽기/쓰기"""
        store = TokenStore(credentials_path=creds_path)
        await store.save(valid_credentials)
        assert creds_path.stat().st_mode & 0o777 == 0o600

    @pytest.mark.asyncio
    async def test_load_nonexistent(self, creds_path, caplog):
        """파일이 없으면 None, 에러 로그 없음"""
        store = TokenStore(credentials_path=creds_path)
        with caplog.at_level(logging.ERROR):
            assert await store.load() is None
        assert not caplog.records

    @pytest.mark.asyncio
    async def test_load_corrupt_file(self, creds_path, caplog):
        """깨진 파일은 로그 후 None"""
        creds_path.parent.mkdir(parents=True)
        creds_path.write_text("{not json", encoding="utf-8")

        store = TokenStore(credentials_path=creds_path)
        with caplog.at_level(logging.ERROR):
            assert await store.load() is None
        assert "Failed to load credentials" in caplog.text

    @pytest.mark.asyncio
    async def test_load_partial_record(self, creds_path):
        """필수 필드가 빠진 레코드는 없는 것으로 처리"""
        creds_path.parent.mkdir(parents=True)
        creds_path.write_text(json.dumps({"accessToken": "tok"}), encoding="utf-8")

        assert await TokenStore(credentials_path=creds_path).load() is None

    @pytest.mark.asyncio
    async def test_load_qwen_cli_file(self, creds_path):
        """Qwen CLI가 쓴 파일도 로드"""
        creds_path.parent.mkdir(parents=True)
        creds_path.write_text(
            json.dumps(
                {
                    "access_token": "cli-token",
                    "refresh_token": "cli-refresh",
                    "token_type": "Bearer",
                    "expiry_date": 1_700_000_000_000,
                }
            ),
            encoding="utf-8",
        )
        loaded = await TokenStore(credentials_path=creds_path).load()
        assert loaded.access_token == "cli-token"

    @pytest.mark.asyncio
    async def test_clear_is_idempotent(self, creds_path, valid_credentials):
        """삭제 후 다시 삭제해도 에러 없음"""
        store = TokenStore(credentials_path=creds_path)
        await store.save(valid_credentials)

        assert await store.clear() is True
        assert not creds_path.exists()
        assert await store.clear() is True
        assert await store.load() is None

    def test_env_override(self, credentials_tmp_path):
        """QWEN_CREDENTIALS_PATH 환경변수로 경로 변경"""
        assert TokenStore().credentials_path == credentials_tmp_path

    def test_default_path(self, monkeypatch):
        monkeypatch.delenv("QWEN_CREDENTIALS_PATH", raising=False)
        path = TokenStore().credentials_path
        assert path.parts[-2:] == (".qwen", "oauth_creds.json")


class TestVaultBackend:
    """vault 주입 시"""

    @pytest.mark.asyncio
    async def test_save_prefers_vault(self, creds_path, memory_vault, valid_credentials):
        """vault가 있으면 파일에 쓰지 않음"""
        store = TokenStore(vault=memory_vault, credentials_path=creds_path)
        await store.save(valid_credentials)

        assert not creds_path.exists()
        stored = json.loads(memory_vault.data[TokenStore.SECRET_KEY])
        assert stored["accessToken"] == "test-access-token"
        assert await store.load() == valid_credentials

    @pytest.mark.asyncio
    async def test_file_mirrored_into_vault(self, creds_path, memory_vault, valid_credentials):
        """vault가 비어 있으면 파일에서 읽고 vault로 복사"""
        await TokenStore(credentials_path=creds_path).save(valid_credentials)

        store = TokenStore(vault=memory_vault, credentials_path=creds_path)
        loaded = await store.load()

        assert loaded == valid_credentials
        assert TokenStore.SECRET_KEY in memory_vault.data

        # 이후에는 파일 없이도 vault에서 로드
        creds_path.unlink()
        assert await store.load() == valid_credentials

    @pytest.mark.asyncio
    async def test_load_empty(self, creds_path, memory_vault):
        store = TokenStore(vault=memory_vault, credentials_path=creds_path)
        assert await store.load() is None

    @pytest.mark.asyncio
    async def test_save_failure_propagates(self, creds_path, valid_credentials):
        """저장 실패는 호출자에게 전달"""
        store = TokenStore(vault=FailingVault(), credentials_path=creds_path)
        with pytest.raises(OSError, match="vault locked"):
            await store.save(valid_credentials)

    @pytest.mark.asyncio
    async def test_clear_removes_vault_and_file(self, creds_path, memory_vault, valid_credentials):
        """로그아웃 시 vault와 파일 모두 삭제"""
        await TokenStore(credentials_path=creds_path).save(valid_credentials)
        store = TokenStore(vault=memory_vault, credentials_path=creds_path)
        await store.load()  # vault로 복사
        assert memory_vault.data and creds_path.exists()

        assert await store.clear() is True
        assert memory_vault.data == {}
        assert not creds_path.exists()

        assert await store.clear() is True

    @pytest.mark.asyncio
    async def test_clear_vault_failure_reported(self, creds_path):
        store = TokenStore(vault=FailingVault(), credentials_path=creds_path)
        assert await store.clear() is False


class TestKeyringVault:
    """keyring 어댑터"""

    @pytest.mark.asyncio
    async def test_get_store_delete(self):
        with patch("qwen_copilot.auth.storage.vault.keyring") as mock_keyring:
            mock_keyring.get_password.return_value = '{"accessToken": "x"}'
            vault = KeyringVault()

            await vault.store("key", "value")
            assert await vault.get("key") == '{"accessToken": "x"}'
            await vault.delete("key")

        mock_keyring.set_password.assert_called_once_with("qwen-copilot", "key", "value")
        mock_keyring.get_password.assert_called_once_with("qwen-copilot", "key")
        mock_keyring.delete_password.assert_called_once_with("qwen-copilot", "key")

    @pytest.mark.asyncio
    async def test_delete_missing_entry(self):
        """없는 항목 삭제는 에러 아님"""
        with patch("qwen_copilot.auth.storage.vault.keyring") as mock_keyring:
            mock_keyring.delete_password.side_effect = PasswordDeleteError("not found")
            await KeyringVault(service_name="custom").delete("key")

        mock_keyring.delete_password.assert_called_once_with("custom", "key")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

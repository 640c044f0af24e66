"""Token Store

단일 Qwen 자격증명 저장소.
Secret vault가 주입되면 vault, 아니면 ~/.qwen/oauth_creds.json 파일 사용.
"""

import json
import logging
import os
from pathlib import Path

from qwen_copilot.auth.providers.base import Credentials
from qwen_copilot.auth.storage.vault import SecretVault

logger = logging.getLogger(__name__)


class TokenStore:
    """자격증명 저장소

    호출 측은 백엔드 종류와 무관하게 load/save/clear만 사용.
    파일에서 읽은 자격증명은 vault가 있으면 vault로 복사해 둔다.

    Example:
        store = TokenStore(vault=KeyringVault())
        await store.save(credentials)
        credentials = await store.load()
        await store.clear()
    """

    SECRET_KEY = "qwen.oauth.credentials"
    DEFAULT_CREDENTIALS_PATH = Path.home() / ".qwen" / "oauth_creds.json"

    def __init__(
        self,
        vault: SecretVault | None = None,
        credentials_path: Path | None = None,
    ):
        self.vault = vault
        self.credentials_path = Path(
            credentials_path
            or os.getenv("QWEN_CREDENTIALS_PATH")
            or self.DEFAULT_CREDENTIALS_PATH
        )

    async def load(self) -> Credentials | None:
        """자격증명 로드

        저장된 레코드가 없으면 None. 파일 없음 외의 I/O, 파싱 실패는
        로그만 남기고 None 처리.

        Returns:
            Credentials 또는 None
        """
        try:
            if self.vault is not None:
                stored = await self.vault.get(self.SECRET_KEY)
                if stored:
                    return Credentials.from_dict(json.loads(stored))

            data = self.credentials_path.read_text(encoding="utf-8")
            credentials = Credentials.from_dict(json.loads(data))

            if self.vault is not None:
                await self.vault.store(self.SECRET_KEY, json.dumps(credentials.to_dict()))
                logger.debug("Credentials mirrored from file into vault")
            return credentials
        except FileNotFoundError:
            return None
        except Exception as e:
            logger.error("Failed to load credentials: %s", e)
            return None

    async def save(self, credentials: Credentials) -> None:
        """자격증명 저장

        Args:
            credentials: 저장할 자격증명

        Raises:
            저장 실패 시 원래 예외를 그대로 전달
        """
        try:
            if self.vault is not None:
                await self.vault.store(self.SECRET_KEY, json.dumps(credentials.to_dict()))
            else:
                self.credentials_path.parent.mkdir(parents=True, exist_ok=True)
                self.credentials_path.write_text(
                    json.dumps(credentials.to_dict(), indent=2), encoding="utf-8"
                )
                # 보안: 사용자만 읽기/쓰기
                self.credentials_path.chmod(0o600)
        except Exception as e:
            logger.error("Failed to save credentials: %s", e)
            raise

    async def clear(self) -> bool:
        """자격증명 삭제 (vault, 파일 모두)

        레코드가 없어도 에러가 아님.

        Returns:
            bool: 성공 여부
        """
        success = True
        if self.vault is not None:
            try:
                await self.vault.delete(self.SECRET_KEY)
            except Exception as e:
                logger.error("Failed to clear vault credentials: %s", e)
                success = False
        try:
            self.credentials_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("Failed to clear credentials file: %s", e)
            success = False
        return success

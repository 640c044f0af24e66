"""Auth Session

현재 자격증명과 API 세션 상태를 보관하는 단일 상태 객체.
전역 변수 대신 필요한 컴포넌트에 참조로 전달한다.

쓰기 주체는 토큰 갱신과 명시적 로그인/로그아웃뿐이며,
갱신은 asyncio.Lock으로 한 번에 하나만 진행된다.
"""

import asyncio
import logging
from collections.abc import Callable

from qwen_copilot.auth.exceptions import (
    CredentialsNotFoundError,
    EmptyAccessTokenError,
)
from qwen_copilot.auth.flows.cancellation import CancellationToken
from qwen_copilot.auth.flows.device_code import AuthUriCallback, ProgressCallback
from qwen_copilot.auth.providers.base import BaseProvider, Credentials
from qwen_copilot.auth.providers.qwen_provider import QwenProvider
from qwen_copilot.auth.storage.token_store import TokenStore

logger = logging.getLogger(__name__)


class AuthSession:
    """Qwen 인증 세션 상태

    상태 전이:
    - 생성 시 비어 있음
    - load_credentials / login 성공 시 채워짐
    - 로그아웃, 갱신 등 자격증명이 바뀌면 reset → 리스너(API 클라이언트)가
      HTTP 세션을 버리고 다음 사용 시 다시 만든다

    Example:
        session = AuthSession(store=TokenStore(vault=KeyringVault()))
        await session.load_credentials()
        if not session.is_authenticated():
            await session.login()
        token = await session.get_valid_access_token()
    """

    DEFAULT_BASE_URL = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    API_PATH_SUFFIX = "/v1"

    def __init__(
        self,
        store: TokenStore | None = None,
        provider: BaseProvider | None = None,
    ):
        self.store = store or TokenStore()
        self.provider = provider or QwenProvider()
        self._credentials: Credentials | None = None
        self._refresh_lock = asyncio.Lock()
        self._reset_listeners: list[Callable[[], None]] = []

    @property
    def credentials(self) -> Credentials | None:
        return self._credentials

    def add_reset_listener(self, listener: Callable[[], None]) -> None:
        """자격증명 변경 시 호출될 리스너 등록"""
        self._reset_listeners.append(listener)

    def reset(self) -> None:
        """API 세션 무효화 (다음 사용 시 재생성)"""
        for listener in self._reset_listeners:
            listener()

    def is_authenticated(self) -> bool:
        """공백이 아닌 access token을 가진 자격증명 존재 여부"""
        return self._credentials is not None and self._credentials.has_access_token()

    def get_base_url(self) -> str:
        """API base URL

        resource_url이 있으면 https 스킴과 /v1 접미사를 보정해 사용.
        """
        resource_url = self._credentials.resource_url if self._credentials else None
        if not resource_url or not resource_url.strip():
            return self.DEFAULT_BASE_URL

        normalized = resource_url.strip().rstrip("/")
        if not normalized.startswith(("http://", "https://")):
            normalized = f"https://{normalized}"
        if not normalized.endswith(self.API_PATH_SUFFIX):
            normalized = f"{normalized}{self.API_PATH_SUFFIX}"
        return normalized

    async def load_credentials(self) -> Credentials | None:
        """저장소에서 자격증명 로드"""
        self._credentials = await self.store.load()
        self.reset()
        if self._credentials is not None:
            logger.debug("Loaded stored Qwen credentials")
        return self._credentials

    async def save_credentials(self, credentials: Credentials) -> None:
        """자격증명 저장 및 세션 리셋

        Raises:
            저장 실패 시 저장소 예외 그대로 전달
        """
        await self.store.save(credentials)
        self._credentials = credentials
        self.reset()

    async def clear_credentials(self) -> bool:
        """로그아웃 (여러 번 호출해도 안전)

        Returns:
            bool: 저장소 삭제 성공 여부
        """
        success = await self.store.clear()
        self._credentials = None
        self.reset()
        logger.info("Logged out from Qwen")
        return success

    async def get_valid_access_token(self) -> str:
        """유효한 access token 반환

        만료 30초 전부터는 먼저 갱신한다.

        Raises:
            CredentialsNotFoundError: 자격증명 없음
            EmptyAccessTokenError: access token이 비어 있음
            AuthorizationError: 갱신 실패 (재로그인 필요)
        """
        if self._credentials is None:
            raise CredentialsNotFoundError(
                "No credentials found. Please authenticate first.",
                provider=self.provider.name,
            )
        if not self._credentials.has_access_token():
            raise EmptyAccessTokenError(
                "Access token is empty. Please authenticate again.",
                provider=self.provider.name,
            )

        if self._credentials.needs_refresh():
            await self.refresh()

        return self._credentials.access_token

    async def refresh(self, force: bool = False) -> Credentials:
        """토큰 갱신

        Lock 획득 후 다시 확인하여 동시에 들어온 호출은 한 번만 갱신한다.

        Args:
            force: 만료 여부와 관계없이 갱신 (서버가 401을 준 경우)

        Returns:
            Credentials: 현재(갱신된) 자격증명
        """
        async with self._refresh_lock:
            current = self._credentials
            if current is None:
                raise CredentialsNotFoundError(
                    "Cannot refresh: no credentials stored",
                    provider=self.provider.name,
                )
            if not force and not current.needs_refresh():
                return current

            try:
                updated = await self.provider.refresh(current)
            except Exception as e:
                logger.error("Failed to refresh token: %s", e)
                raise

            await self.save_credentials(updated)
            return updated

    async def start_device_flow(
        self,
        on_auth_uri: AuthUriCallback | None = None,
        on_progress: ProgressCallback | None = None,
        cancellation_token: CancellationToken | None = None,
    ) -> Credentials:
        """Device code 로그인 실행 (저장하지 않음)

        Returns:
            Credentials: 새 자격증명
        """
        return await self.provider.login(
            on_auth_uri=on_auth_uri,
            on_progress=on_progress,
            cancellation_token=cancellation_token,
        )

    async def login(
        self,
        on_auth_uri: AuthUriCallback | None = None,
        on_progress: ProgressCallback | None = None,
        cancellation_token: CancellationToken | None = None,
    ) -> Credentials:
        """Device code 로그인 후 저장 및 세션 리셋"""
        credentials = await self.start_device_flow(
            on_auth_uri=on_auth_uri,
            on_progress=on_progress,
            cancellation_token=cancellation_token,
        )
        await self.save_credentials(credentials)
        logger.info("Successfully authenticated with Qwen")
        return credentials

"""Qwen Provider

chat.qwen.ai Device Code OAuth (PKCE) 인증.
"""

import logging

from qwen_copilot.auth.flows.cancellation import CancellationToken
from qwen_copilot.auth.flows.device_code import (
    AuthUriCallback,
    DeviceCodeConfig,
    DeviceCodeOAuth,
    ProgressCallback,
)
from qwen_copilot.auth.providers.base import BaseProvider, Credentials

logger = logging.getLogger(__name__)


class QwenProvider(BaseProvider):
    """Qwen Device Code OAuth Provider.

    Example:
        provider = QwenProvider()
        credentials = await provider.login()
        credentials = await provider.refresh(credentials)
    """

    OAUTH_BASE_URL = "https://chat.qwen.ai"
    DEVICE_CODE_ENDPOINT = f"{OAUTH_BASE_URL}/api/v1/oauth2/device/code"
    TOKEN_ENDPOINT = f"{OAUTH_BASE_URL}/api/v1/oauth2/token"
    # Qwen Code CLI와 동일한 Client ID
    CLIENT_ID = "f0304373b74a44d2b584a3fb70ca9e56"
    SCOPE = "openid profile email model.completion"

    def __init__(
        self,
        client_id: str | None = None,
        base_poll_interval_ms: int = 2000,
        max_poll_interval_ms: int = 10000,
    ):
        """초기화.

        Args:
            client_id: OAuth Client ID (기본값: Qwen Code)
            base_poll_interval_ms: 초기 폴링 간격
            max_poll_interval_ms: slow_down 시 폴링 간격 상한
        """
        self.client_id = client_id or self.CLIENT_ID
        self.oauth = DeviceCodeOAuth(
            DeviceCodeConfig(
                client_id=self.client_id,
                device_authorization_endpoint=self.DEVICE_CODE_ENDPOINT,
                token_endpoint=self.TOKEN_ENDPOINT,
                scope=self.SCOPE,
                base_poll_interval_ms=base_poll_interval_ms,
                max_poll_interval_ms=max_poll_interval_ms,
            ),
            provider=self.name,
        )

    @property
    def name(self) -> str:
        return "qwen"

    @property
    def display_name(self) -> str:
        return "Qwen (chat.qwen.ai)"

    async def login(
        self,
        on_auth_uri: AuthUriCallback | None = None,
        on_progress: ProgressCallback | None = None,
        cancellation_token: CancellationToken | None = None,
        **kwargs,
    ) -> Credentials:
        """Device Code Flow로 로그인.

        Args:
            on_auth_uri: 인증 URL 표시 콜백
            on_progress: 대기 상태 메시지 콜백
            cancellation_token: 취소 신호

        Returns:
            Credentials: 새 자격증명
        """
        token = await self.oauth.authenticate(
            on_auth_uri=on_auth_uri,
            on_progress=on_progress,
            cancellation_token=cancellation_token,
        )
        return Credentials.from_token_response(token)

    async def refresh(self, credentials: Credentials) -> Credentials:
        """Refresh token으로 갱신.

        서버가 새 refresh_token을 주지 않으면 기존 값을 유지합니다.

        Args:
            credentials: 기존 자격증명

        Returns:
            Credentials: 새 자격증명
        """
        token = await self.oauth.refresh_access_token(credentials.refresh_token)
        logger.info("Qwen access token refreshed")
        return Credentials.from_token_response(token, previous=credentials)

"""Device Code OAuth Flow (RFC 8628 + PKCE)

브라우저 리디렉션 없이 인증을 완료하는 Device Authorization Grant 구현.
에디터처럼 localhost 콜백을 받기 어려운 환경에서 사용.

플로우:
1. PKCE 쌍 생성, code_challenge와 함께 device_code/user_code 요청
2. 사용자에게 verification_uri_complete + user_code 표시
3. 사용자가 브라우저에서 URL 접속 → 로그인 → 승인
4. 앱이 device_code + code_verifier로 토큰 엔드포인트 폴링
5. 인증 완료 시 access_token 수신

같은 토큰 엔드포인트로 refresh_token 갱신도 수행.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx
from rich.console import Console
from rich.panel import Panel

from qwen_copilot.auth.exceptions import (
    AuthorizationError,
    DeviceFlowCancelledError,
    DeviceFlowTimeoutError,
    TransportError,
)
from qwen_copilot.auth.flows.cancellation import CancellationToken
from qwen_copilot.auth.flows.pkce import generate_pkce_challenge

logger = logging.getLogger(__name__)
console = Console()

AuthUriCallback = Callable[["DeviceCodeResponse"], Awaitable[None] | None]
ProgressCallback = Callable[[str], None]


@dataclass
class DeviceCodeResponse:
    """Device Code 응답.

    Attributes:
        device_code: 토큰 교환에 사용되는 device code
        user_code: 사용자가 확인해야 하는 코드
        verification_uri: 사용자가 접속해야 하는 URL
        verification_uri_complete: user_code가 포함된 완전한 URL
        expires_in: device_code 만료 시간 (초), 폴링 가능 시간의 상한
    """

    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int
    verification_uri_complete: str | None = None

    @property
    def display_uri(self) -> str:
        return self.verification_uri_complete or self.verification_uri


@dataclass
class DeviceCodeConfig:
    """Device Code Flow 설정.

    Attributes:
        client_id: OAuth Client ID
        device_authorization_endpoint: Device Authorization Endpoint
        token_endpoint: Token Endpoint
        scope: 요청할 scope
        base_poll_interval_ms: 초기 폴링 간격
        max_poll_interval_ms: slow_down 시 폴링 간격 상한
        slow_down_factor: slow_down 응답마다 곱하는 배수
    """

    client_id: str
    device_authorization_endpoint: str
    token_endpoint: str
    scope: str
    base_poll_interval_ms: int = 2000
    max_poll_interval_ms: int = 10000
    slow_down_factor: float = 1.5


@dataclass
class TokenResponse:
    """토큰 응답."""

    access_token: str
    refresh_token: str | None
    token_type: str
    expires_in: int
    resource_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "TokenResponse":
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type") or "Bearer",
            expires_in=int(data.get("expires_in", 3600)),
            resource_url=data.get("resource_url"),
        )


@dataclass
class DevicePollResult:
    """토큰 폴링 1회 결과. token이 None이면 아직 대기 중."""

    token: TokenResponse | None = None
    slow_down: bool = False

    @property
    def pending(self) -> bool:
        return self.token is None


def _error_message(prefix: str, error: str, description: str | None) -> str:
    if description:
        return f"{prefix}: {error} - {description}"
    return f"{prefix}: {error}"


class DeviceCodeOAuth:
    """Device Code OAuth Flow 구현.

    RFC 8628 Device Authorization Grant + PKCE (S256).

    Example:
        config = DeviceCodeConfig(
            client_id="your-client-id",
            device_authorization_endpoint="https://auth.example.com/device/code",
            token_endpoint="https://auth.example.com/token",
            scope="openid profile"
        )
        oauth = DeviceCodeOAuth(config)
        token = await oauth.authenticate()
    """

    # 폴링 에러 코드 (RFC 8628)
    ERROR_AUTHORIZATION_PENDING = "authorization_pending"
    ERROR_SLOW_DOWN = "slow_down"

    GRANT_TYPE_DEVICE_CODE = "urn:ietf:params:oauth:grant-type:device_code"
    GRANT_TYPE_REFRESH_TOKEN = "refresh_token"

    HEADERS = {
        "Content-Type": "application/x-www-form-urlencoded",
        "Accept": "application/json",
    }

    def __init__(self, config: DeviceCodeConfig, provider: str | None = None):
        """초기화.

        Args:
            config: Device Code Flow 설정
            provider: 예외에 기록할 provider 이름
        """
        self.config = config
        self.provider = provider

    async def _post_form(
        self, client: httpx.AsyncClient, endpoint: str, data: dict[str, str]
    ) -> httpx.Response:
        try:
            return await client.post(endpoint, data=data, headers=self.HEADERS)
        except httpx.HTTPError as e:
            raise TransportError(
                f"요청 실패: {endpoint}: {e}", endpoint=endpoint
            ) from e

    @staticmethod
    def _json_body(response: httpx.Response) -> dict | None:
        try:
            data = response.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    async def request_device_code(self, code_challenge: str) -> DeviceCodeResponse:
        """Device Code 요청.

        code_challenge만 전송하고 code_verifier는 호출자가 보관.

        Args:
            code_challenge: PKCE S256 challenge

        Returns:
            DeviceCodeResponse: device_code, user_code, verification_uri 등

        Raises:
            AuthorizationError: 비정상 상태 코드 또는 에러 payload
            TransportError: 네트워크 실패
        """
        endpoint = self.config.device_authorization_endpoint
        async with httpx.AsyncClient() as client:
            response = await self._post_form(
                client,
                endpoint,
                {
                    "client_id": self.config.client_id,
                    "scope": self.config.scope,
                    "code_challenge": code_challenge,
                    "code_challenge_method": "S256",
                },
            )

        if not 200 <= response.status_code < 300:
            body = response.text
            data = self._json_body(response) or {}
            raise AuthorizationError(
                f"Device authorization failed: {response.status_code} "
                f"{endpoint}. {body}",
                error_code=data.get("error"),
                error_description=data.get("error_description"),
                endpoint=endpoint,
                status_code=response.status_code,
                body=body,
                provider=self.provider,
            )

        data = self._json_body(response)
        if data is None:
            raise AuthorizationError(
                "Device authorization failed: invalid response.",
                endpoint=endpoint,
                status_code=response.status_code,
                body=response.text,
                provider=self.provider,
            )
        if "error" in data:
            raise AuthorizationError(
                _error_message(
                    "Device authorization failed",
                    data["error"],
                    data.get("error_description"),
                ),
                error_code=data["error"],
                error_description=data.get("error_description"),
                endpoint=endpoint,
                status_code=response.status_code,
                provider=self.provider,
            )

        missing = [
            key
            for key in ("device_code", "user_code", "verification_uri")
            if not data.get(key)
        ]
        if missing:
            raise AuthorizationError(
                "Device authorization failed: invalid response "
                f"(missing {', '.join(missing)}).",
                endpoint=endpoint,
                status_code=response.status_code,
                body=response.text,
                provider=self.provider,
            )

        return DeviceCodeResponse(
            device_code=data["device_code"],
            user_code=data["user_code"],
            verification_uri=data["verification_uri"],
            verification_uri_complete=data.get("verification_uri_complete"),
            expires_in=int(data.get("expires_in", 900)),  # 기본 15분
        )

    async def poll_device_token(
        self, client: httpx.AsyncClient, device_code: str, code_verifier: str
    ) -> DevicePollResult:
        """토큰 엔드포인트 1회 폴링.

        400/authorization_pending, 429/slow_down은 대기 상태로 반환.
        그 외 에러는 AuthorizationError.
        """
        endpoint = self.config.token_endpoint
        response = await self._post_form(
            client,
            endpoint,
            {
                "grant_type": self.GRANT_TYPE_DEVICE_CODE,
                "client_id": self.config.client_id,
                "device_code": device_code,
                "code_verifier": code_verifier,
            },
        )

        data = self._json_body(response)

        if not 200 <= response.status_code < 300:
            if data is None:
                raise AuthorizationError(
                    f"Device token poll failed: {response.status_code} "
                    f"{endpoint}. {response.text}",
                    endpoint=endpoint,
                    status_code=response.status_code,
                    body=response.text,
                    provider=self.provider,
                )

            error = data.get("error", "")
            if response.status_code == 400 and error == self.ERROR_AUTHORIZATION_PENDING:
                return DevicePollResult()
            if response.status_code == 429 and error == self.ERROR_SLOW_DOWN:
                return DevicePollResult(slow_down=True)

            raise AuthorizationError(
                _error_message(
                    "Device login failed", error, data.get("error_description")
                ),
                error_code=error or None,
                error_description=data.get("error_description"),
                endpoint=endpoint,
                status_code=response.status_code,
                provider=self.provider,
            )

        if data is not None and "error" in data:
            raise AuthorizationError(
                _error_message(
                    "Device login failed", data["error"], data.get("error_description")
                ),
                error_code=data["error"],
                error_description=data.get("error_description"),
                endpoint=endpoint,
                status_code=response.status_code,
                provider=self.provider,
            )

        if data is None or not data.get("access_token"):
            raise AuthorizationError(
                "Device login failed: invalid response.",
                endpoint=endpoint,
                status_code=response.status_code,
                body=response.text,
                provider=self.provider,
            )

        return DevicePollResult(token=TokenResponse.from_dict(data))

    def next_poll_interval(self, interval_ms: int) -> int:
        """slow_down 수신 시 다음 폴링 간격 (상한 적용)"""
        return min(
            int(interval_ms * self.config.slow_down_factor),
            self.config.max_poll_interval_ms,
        )

    async def _sleep(
        self, seconds: float, cancellation_token: CancellationToken | None
    ) -> bool:
        if cancellation_token is None:
            await asyncio.sleep(seconds)
            return False
        return await cancellation_token.sleep(seconds)

    async def poll_for_token(
        self,
        device_code: str,
        code_verifier: str,
        timeout: float,
        cancellation_token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> TokenResponse:
        """토큰 폴링.

        성공, 에러, 만료, 취소 중 하나가 될 때까지 폴링합니다.

        Args:
            device_code: request_device_code에서 받은 device_code
            code_verifier: PKCE verifier
            timeout: 최대 대기 시간 (초, 서버의 expires_in)
            cancellation_token: 취소 신호 (대기 중에도 즉시 반영)
            on_progress: 대기 상태 메시지 콜백

        Returns:
            TokenResponse: access_token, refresh_token 등

        Raises:
            AuthorizationError: 인증 실패, 거부 시
            DeviceFlowTimeoutError: 시간 초과
            DeviceFlowCancelledError: 취소
        """
        start_time = time.monotonic()
        interval_ms = self.config.base_poll_interval_ms

        async with httpx.AsyncClient() as client:
            while time.monotonic() - start_time < timeout:
                if cancellation_token and cancellation_token.is_cancellation_requested:
                    raise DeviceFlowCancelledError(
                        "Authentication cancelled.", provider=self.provider
                    )

                result = await self.poll_device_token(client, device_code, code_verifier)
                if not result.pending:
                    logger.info("Device authorization completed")
                    return result.token

                if result.slow_down:
                    interval_ms = self.next_poll_interval(interval_ms)
                    logger.debug("Polling status: slow_down, interval %dms", interval_ms)
                else:
                    logger.debug("Polling status: pending, waiting %dms", interval_ms)

                if on_progress:
                    on_progress("Waiting for authorization...")

                if await self._sleep(interval_ms / 1000, cancellation_token):
                    raise DeviceFlowCancelledError(
                        "Authentication cancelled.", provider=self.provider
                    )

        raise DeviceFlowTimeoutError(
            "Authentication timed out. Please try again.", provider=self.provider
        )

    async def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Refresh token으로 새 access token 발급.

        Raises:
            AuthorizationError: 갱신 거부 또는 잘못된 응답
            TransportError: 네트워크 실패
        """
        endpoint = self.config.token_endpoint
        async with httpx.AsyncClient() as client:
            response = await self._post_form(
                client,
                endpoint,
                {
                    "grant_type": self.GRANT_TYPE_REFRESH_TOKEN,
                    "refresh_token": refresh_token,
                    "client_id": self.config.client_id,
                },
            )

        data = self._json_body(response)
        if not 200 <= response.status_code < 300:
            data = data or {}
            raise AuthorizationError(
                f"Token refresh failed: {response.status_code} {endpoint}. "
                f"{response.text}",
                error_code=data.get("error"),
                error_description=data.get("error_description"),
                endpoint=endpoint,
                status_code=response.status_code,
                body=response.text,
                provider=self.provider,
            )

        if data is None or not data.get("access_token"):
            raise AuthorizationError(
                "Token refresh failed: invalid response.",
                endpoint=endpoint,
                status_code=response.status_code,
                body=response.text,
                provider=self.provider,
            )

        return TokenResponse.from_dict(data)

    def display_instructions(self, device_response: DeviceCodeResponse) -> None:
        """사용자 안내 메시지 출력.

        Args:
            device_response: device code 응답
        """
        verification_url = device_response.display_uri
        user_code = device_response.user_code
        expires_min = device_response.expires_in // 60

        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]Qwen Device Code 인증[/bold cyan]\n\n"
                f"다음 URL을 브라우저에서 열고 코드를 확인하세요:\n\n"
                f"[bold]URL:[/bold] [link={verification_url}]{verification_url}[/link]\n"
                f"[bold]코드:[/bold] [bold yellow]{user_code}[/bold yellow]\n\n"
                f"[dim]만료: {expires_min}분[/dim]",
                title="[AUTH] Device Code Login",
                border_style="cyan",
            )
        )
        console.print()

    async def authenticate(
        self,
        on_auth_uri: AuthUriCallback | None = None,
        on_progress: ProgressCallback | None = None,
        cancellation_token: CancellationToken | None = None,
    ) -> TokenResponse:
        """전체 인증 플로우 실행.

        1. PKCE 생성
        2. Device code 요청
        3. 사용자 안내 (on_auth_uri 콜백, 없으면 콘솔 출력)
        4. 토큰 폴링

        Args:
            on_auth_uri: 인증 URL 표시 콜백 (동기/비동기 모두 가능)
            on_progress: 대기 상태 메시지 콜백
            cancellation_token: 취소 신호

        Returns:
            TokenResponse: 인증 토큰
        """
        pkce = generate_pkce_challenge()

        device_response = await self.request_device_code(pkce.code_challenge)
        logger.debug(
            "Device code issued: user_code=%s, expires_in=%ds",
            device_response.user_code,
            device_response.expires_in,
        )

        if on_auth_uri is None:
            self.display_instructions(device_response)
        else:
            result = on_auth_uri(device_response)
            if inspect.isawaitable(result):
                await result

        return await self.poll_for_token(
            device_code=device_response.device_code,
            code_verifier=pkce.code_verifier,
            timeout=device_response.expires_in,
            cancellation_token=cancellation_token,
            on_progress=on_progress,
        )

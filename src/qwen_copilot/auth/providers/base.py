"""Base Provider 추상 클래스

자격증명 데이터 클래스와 Provider 인터페이스 정의.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from qwen_copilot.auth.flows.device_code import TokenResponse

# 만료 30초 전부터 갱신 대상
TOKEN_REFRESH_BUFFER_MS = 30 * 1000


def now_ms() -> int:
    """현재 wall-clock 시각 (epoch milliseconds)"""
    return int(time.time() * 1000)


@dataclass
class Credentials:
    """OAuth 자격증명 데이터 클래스

    expires_at은 epoch milliseconds 절대 시각.
    """

    access_token: str
    refresh_token: str
    expires_at: int
    token_type: str = "Bearer"
    resource_url: str | None = None

    def has_access_token(self) -> bool:
        """공백이 아닌 access token 보유 여부"""
        return isinstance(self.access_token, str) and bool(self.access_token.strip())

    def needs_refresh(self, now: int | None = None) -> bool:
        """갱신 필요 여부 (만료까지 refresh buffer 미만)"""
        if now is None:
            now = now_ms()
        return self.expires_at - now < TOKEN_REFRESH_BUFFER_MS

    def is_expired(self, now: int | None = None) -> bool:
        """토큰 만료 여부 확인"""
        if now is None:
            now = now_ms()
        return now >= self.expires_at

    def to_dict(self) -> dict:
        """딕셔너리로 변환 (저장용)"""
        data = {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "tokenType": self.token_type,
            "expiresAt": self.expires_at,
        }
        if self.resource_url:
            data["resourceUrl"] = self.resource_url
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Credentials":
        """딕셔너리에서 생성

        Qwen CLI가 쓰는 snake_case 형식(access_token, expiry_date)도 허용.
        필수 필드가 없으면 KeyError.
        """
        if "accessToken" in data:
            return cls(
                access_token=data["accessToken"],
                refresh_token=data.get("refreshToken") or "",
                expires_at=int(data["expiresAt"]),
                token_type=data.get("tokenType") or "Bearer",
                resource_url=data.get("resourceUrl"),
            )
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or "",
            expires_at=int(data["expiry_date"]),
            token_type=data.get("token_type") or "Bearer",
            resource_url=data.get("resource_url"),
        )

    @classmethod
    def from_token_response(
        cls, token: TokenResponse, previous: "Credentials | None" = None
    ) -> "Credentials":
        """토큰 엔드포인트 응답에서 생성

        Args:
            token: 토큰 엔드포인트 응답
            previous: 갱신 전 자격증명 (새 refresh_token이 없으면 기존 값 유지)
        """
        refresh_token = token.refresh_token
        resource_url = token.resource_url
        if previous is not None:
            refresh_token = refresh_token or previous.refresh_token
            resource_url = resource_url or previous.resource_url
        return cls(
            access_token=token.access_token,
            refresh_token=refresh_token or "",
            expires_at=now_ms() + token.expires_in * 1000,
            token_type=token.token_type,
            resource_url=resource_url,
        )


class BaseProvider(ABC):
    """OAuth Provider 추상 베이스 클래스"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider 이름"""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """표시용 이름"""
        pass

    @abstractmethod
    async def login(self, **kwargs) -> Credentials:
        """로그인 수행

        Returns:
            Credentials: 새 자격증명
        """
        pass

    @abstractmethod
    async def refresh(self, credentials: Credentials) -> Credentials:
        """토큰 갱신

        Args:
            credentials: 기존 자격증명

        Returns:
            Credentials: 갱신된 자격증명
        """
        pass

"""Test custom authentication exceptions."""
import pytest

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


class TestAuthExceptions:
    """인증 예외 클래스 테스트."""

    def test_authentication_error_message(self):
        """에러 메시지 포함 확인."""
        with pytest.raises(AuthenticationError) as exc:
            raise AuthenticationError("Custom message")
        assert "Custom message" in str(exc.value)

    def test_authentication_error_with_provider(self):
        """provider 정보 포함 확인."""
        err = AuthenticationError("Test", provider="qwen")
        assert err.provider == "qwen"

    def test_configuration_errors_are_distinct(self):
        """자격증명 없음과 빈 토큰은 서로 다른 ConfigurationError."""
        assert issubclass(CredentialsNotFoundError, ConfigurationError)
        assert issubclass(EmptyAccessTokenError, ConfigurationError)
        assert not issubclass(CredentialsNotFoundError, EmptyAccessTokenError)
        assert not issubclass(EmptyAccessTokenError, CredentialsNotFoundError)

    def test_authorization_error_details(self):
        """AuthorizationError에 진단 정보 포함."""
        err = AuthorizationError(
            "Device login failed: access_denied",
            error_code="access_denied",
            error_description="User denied",
            endpoint="https://chat.qwen.ai/api/v1/oauth2/token",
            status_code=400,
            body='{"error": "access_denied"}',
            provider="qwen",
        )
        assert err.error_code == "access_denied"
        assert err.error_description == "User denied"
        assert err.endpoint.endswith("/oauth2/token")
        assert err.status_code == 400
        assert "access_denied" in err.body
        assert err.provider == "qwen"

    def test_timeout_and_cancel_are_distinct(self):
        """타임아웃과 취소는 서로 구분 가능."""
        assert not issubclass(DeviceFlowTimeoutError, DeviceFlowCancelledError)
        assert not issubclass(DeviceFlowCancelledError, DeviceFlowTimeoutError)
        # 내장 TimeoutError와도 구분
        assert not issubclass(DeviceFlowTimeoutError, TimeoutError)

    def test_retry_limit_exceeded_has_retry_info(self):
        """RetryLimitExceededError에 재시도 정보 포함."""
        err = RetryLimitExceededError("Failed", max_retries=1, attempts=2, provider="qwen")
        assert err.max_retries == 1
        assert err.attempts == 2
        assert err.provider == "qwen"

    def test_transport_error_context(self):
        """TransportError에 엔드포인트, 상태 코드 포함."""
        err = TransportError("boom", endpoint="https://x/v1/chat/completions", status_code=502)
        assert err.endpoint == "https://x/v1/chat/completions"
        assert err.status_code == 502
        assert not isinstance(err, AuthenticationError)

    def test_exception_hierarchy(self):
        """예외 계층 구조 확인."""
        for cls in (
            ConfigurationError,
            AuthorizationError,
            DeviceFlowTimeoutError,
            DeviceFlowCancelledError,
            RetryLimitExceededError,
        ):
            assert issubclass(cls, AuthenticationError)

        assert issubclass(AuthenticationError, Exception)

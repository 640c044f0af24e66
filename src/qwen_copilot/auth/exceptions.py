"""Custom authentication exceptions.

인증 및 전송 관련 예외 클래스 정의.
호출자가 실패 유형별로 다르게 대응할 수 있도록 계층 구조 제공.
"""


class AuthenticationError(Exception):
    """기본 인증 예외.

    모든 인증 관련 예외의 베이스 클래스.

    Attributes:
        provider: 인증 제공자 이름 (예: 'qwen')
    """

    def __init__(self, message: str, provider: str | None = None):
        self.provider = provider
        super().__init__(message)


class ConfigurationError(AuthenticationError):
    """인증 설정 오류.

    네트워크 호출 없이 즉시 실패하는 경우 (자격증명 없음, 빈 토큰).
    재시도하지 않고 호출자에게 바로 전달됨.
    """
    pass


class CredentialsNotFoundError(ConfigurationError):
    """저장된 자격증명이 없음.

    먼저 device code 로그인을 수행해야 함을 나타냄.
    """
    pass


class EmptyAccessTokenError(ConfigurationError):
    """Access token이 비어 있음.

    자격증명은 있지만 access token이 공백이라 재인증이 필요함.
    """
    pass


class AuthorizationError(AuthenticationError):
    """OAuth 엔드포인트 에러.

    device code 요청, 토큰 폴링, 토큰 갱신이 명시적 에러를 반환한 경우.

    Attributes:
        error_code: OAuth 에러 코드 (예: 'access_denied', 'invalid_grant')
        error_description: 서버가 제공한 에러 설명
        endpoint: 요청한 엔드포인트 URL
        status_code: HTTP 상태 코드
        body: 응답 본문 (진단용)
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        error_description: str | None = None,
        endpoint: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
        provider: str | None = None,
    ):
        self.error_code = error_code
        self.error_description = error_description
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body
        super().__init__(message, provider)


class DeviceFlowTimeoutError(AuthenticationError):
    """Device code 유효 시간 초과.

    사용자가 expires_in 안에 인증을 완료하지 않음. 재시도 안내용.
    """
    pass


class DeviceFlowCancelledError(AuthenticationError):
    """사용자가 device code 로그인을 취소함.

    타임아웃과 구분하여 실패 배너를 띄우지 않도록 함.
    """
    pass


class RetryLimitExceededError(AuthenticationError):
    """재시도 한도 초과 예외.

    인증 재시도가 최대 허용 횟수를 초과함.

    Attributes:
        max_retries: 최대 재시도 횟수
        attempts: 실제 시도 횟수
        provider: 인증 제공자 이름
    """

    def __init__(
        self,
        message: str,
        max_retries: int = 1,
        attempts: int = 0,
        provider: str | None = None
    ):
        self.max_retries = max_retries
        self.attempts = attempts
        super().__init__(message, provider)


class TransportError(Exception):
    """네트워크/HTTP 전송 실패.

    Attributes:
        endpoint: 요청한 URL
        status_code: HTTP 상태 코드 (연결 실패 시 None)
        body: 응답 본문 일부
    """

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
    ):
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body
        super().__init__(message)

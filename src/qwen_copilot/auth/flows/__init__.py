"""OAuth Flows

Device Code Flow (RFC 8628) + PKCE 구현.
Browser redirect 방식은 지원하지 않음.
"""

from qwen_copilot.auth.flows.cancellation import CancellationToken
from qwen_copilot.auth.flows.device_code import (
    DeviceCodeConfig,
    DeviceCodeOAuth,
    DeviceCodeResponse,
    DevicePollResult,
    TokenResponse,
)
from qwen_copilot.auth.flows.pkce import (
    PKCEChallenge,
    compute_code_challenge,
    generate_pkce_challenge,
)

__all__ = [
    # Device Code Flow
    "DeviceCodeOAuth",
    "DeviceCodeConfig",
    "DeviceCodeResponse",
    "DevicePollResult",
    "TokenResponse",
    # PKCE
    "PKCEChallenge",
    "generate_pkce_challenge",
    "compute_code_challenge",
    # Cancellation
    "CancellationToken",
]

"""PKCE (Proof Key for Code Exchange)

Device code 요청마다 새 verifier/challenge 쌍을 생성.
S256 방식만 지원 (plain 미지원).
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass

# 최소 32바이트 엔트로피
VERIFIER_BYTES = 32


@dataclass
class PKCEChallenge:
    """PKCE 챌린지.

    code_verifier는 로컬에 보관했다가 토큰 교환 시에만 전송.
    code_challenge만 device authorization 엔드포인트로 전송.
    """

    code_verifier: str
    code_challenge: str
    code_challenge_method: str = "S256"


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def compute_code_challenge(code_verifier: str) -> str:
    """code_verifier의 SHA256 해시를 base64url 인코딩"""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return _b64url(digest)


def generate_pkce_challenge(num_bytes: int = VERIFIER_BYTES) -> PKCEChallenge:
    """PKCE 챌린지 생성.

    Args:
        num_bytes: verifier 엔트로피 바이트 수 (32 미만 불가)

    Returns:
        PKCEChallenge: code_verifier와 code_challenge 포함
    """
    if num_bytes < VERIFIER_BYTES:
        raise ValueError(f"PKCE verifier는 최소 {VERIFIER_BYTES}바이트 필요: {num_bytes}")

    code_verifier = _b64url(secrets.token_bytes(num_bytes))

    return PKCEChallenge(
        code_verifier=code_verifier,
        code_challenge=compute_code_challenge(code_verifier),
        code_challenge_method="S256",
    )

"""Qwen model registry

에디터에 노출할 모델 목록과 요청 옵션 보정.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ModelInfo:
    """모델 메타데이터."""

    id: str
    display_name: str
    family: str
    version: str
    context_window: int
    max_output_tokens: int


QWEN_MODELS: dict[str, ModelInfo] = {
    "qwen3-coder-plus": ModelInfo(
        id="qwen3-coder-plus",
        display_name="Qwen 3 Coder Plus",
        family="qwen3-coder",
        version="plus",
        context_window=1_000_000,
        max_output_tokens=65_536,
    ),
    "qwen3-coder-flash": ModelInfo(
        id="qwen3-coder-flash",
        display_name="Qwen 3 Coder Flash",
        family="qwen3-coder",
        version="flash",
        context_window=1_000_000,
        max_output_tokens=65_536,
    ),
}

DEFAULT_TEMPERATURE = 0.3

# 호스트마다 다른 이름을 쓰므로 순서대로 확인
_MAX_TOKENS_OPTION_KEYS = ("maxOutputTokens", "maxTokens", "max_tokens")


def get_model(model_id: str) -> ModelInfo:
    """모델 조회

    Raises:
        KeyError: 알 수 없는 모델
    """
    return QWEN_MODELS[model_id]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def resolve_max_tokens(model: ModelInfo, options: dict[str, Any] | None = None) -> int:
    """요청 max_tokens 결정 (모델 상한으로 제한)"""
    for key in _MAX_TOKENS_OPTION_KEYS:
        value = (options or {}).get(key)
        if _is_number(value):
            return min(int(value), model.max_output_tokens)
    return model.max_output_tokens


def resolve_temperature(options: dict[str, Any] | None = None) -> float:
    """요청 temperature 결정"""
    value = (options or {}).get("temperature")
    return float(value) if _is_number(value) else DEFAULT_TEMPERATURE

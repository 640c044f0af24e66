"""모델 레지스트리 테스트"""

import pytest

from qwen_copilot.models import (
    DEFAULT_TEMPERATURE,
    QWEN_MODELS,
    get_model,
    resolve_max_tokens,
    resolve_temperature,
)


class TestRegistry:
    def test_models(self):
        assert list(QWEN_MODELS) == ["qwen3-coder-plus", "qwen3-coder-flash"]
        for model_id, info in QWEN_MODELS.items():
            assert info.id == model_id
            assert info.context_window == 1_000_000
            assert info.max_output_tokens == 65_536

    def test_unknown_model(self):
        with pytest.raises(KeyError):
            get_model("gpt-4")


class TestResolveMaxTokens:
    @pytest.fixture
    def model(self):
        return get_model("qwen3-coder-plus")

    def test_default_is_model_limit(self, model):
        assert resolve_max_tokens(model) == 65_536
        assert resolve_max_tokens(model, {}) == 65_536

    @pytest.mark.parametrize("key", ["maxOutputTokens", "maxTokens", "max_tokens"])
    def test_option_keys(self, model, key):
        assert resolve_max_tokens(model, {key: 1024}) == 1024

    def test_key_priority(self, model):
        """maxOutputTokens가 우선"""
        options = {"max_tokens": 10, "maxTokens": 20, "maxOutputTokens": 30}
        assert resolve_max_tokens(model, options) == 30

    def test_clamped(self, model):
        assert resolve_max_tokens(model, {"maxTokens": 1_000_000}) == 65_536

    def test_non_numeric_ignored(self, model):
        assert resolve_max_tokens(model, {"maxOutputTokens": "big", "maxTokens": None}) == 65_536
        assert resolve_max_tokens(model, {"maxTokens": True}) == 65_536


class TestResolveTemperature:
    def test_default(self):
        assert resolve_temperature() == DEFAULT_TEMPERATURE == 0.3
        assert resolve_temperature({"temperature": None}) == 0.3

    def test_override(self):
        assert resolve_temperature({"temperature": 0}) == 0.0
        assert resolve_temperature({"temperature": 0.9}) == 0.9

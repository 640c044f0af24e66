"""Qwen Client

OpenAI 호환 chat completions 스트리밍 클라이언트.
AuthSession에서 유효한 토큰과 base URL을 받아 사용.
"""

import json
import logging
import math
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

import httpx

from qwen_copilot.auth import AuthSession, RetryLimitExceededError, TransportError
from qwen_copilot.clients.stream_aggregator import StreamEvent, aggregate_stream
from qwen_copilot.models import DEFAULT_TEMPERATURE, QWEN_MODELS

logger = logging.getLogger(__name__)


class QwenClient:
    """Qwen chat 클라이언트

    API 세션(base URL, 인증 헤더)은 access token이 바뀌거나 AuthSession이
    리셋되면 다음 요청 때 다시 만든다.

    Example:
        client = QwenClient(session)
        async for event in client.stream_chat_completion(
            model="qwen3-coder-plus",
            messages=[{"role": "user", "content": "hello"}],
        ):
            if event.type == "text":
                print(event.text, end="")
    """

    USER_AGENT = "qwen-copilot/0.1.0"
    DEFAULT_MAX_TOKENS = 4096

    # 토큰 수 추정: 약 4글자당 1토큰 + 메시지당 고정 오버헤드
    CHARS_PER_TOKEN = 4
    TOKENS_PER_MESSAGE = 3

    def __init__(
        self,
        session: AuthSession,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session = session
        self.timeout = timeout
        self._transport = transport
        self._api_key: str | None = None
        self._base_url: str | None = None
        self._max_auth_retries = 1  # 401 시 강제 갱신 후 재시도 횟수
        session.add_reset_listener(self.reset)

    async def initialize(self) -> None:
        """API 세션 미리 준비 (토큰 확인, base URL 결정)"""
        await self._ensure_client()

    async def list_models(self) -> list[str]:
        """사용 가능한 모델 ID 목록"""
        return list(QWEN_MODELS)

    def is_ready(self) -> bool:
        """API 세션 준비 여부"""
        return self._api_key is not None

    def reset(self) -> None:
        """API 세션 폐기 (로그아웃, 토큰 갱신 시)"""
        self._api_key = None
        self._base_url = None

    async def _ensure_client(self) -> None:
        api_key = await self.session.get_valid_access_token()
        if self._api_key == api_key and self._base_url:
            return

        self._base_url = self.session.get_base_url()
        self._api_key = api_key
        logger.debug("Qwen API session created: %s", self._base_url)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "User-Agent": self.USER_AGENT,
        }

    def build_request(
        self,
        model: str,
        messages: list[dict],
        tools: list[dict] | None = None,
        tool_choice: str | dict | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        """chat completions 요청 payload 생성

        tools가 비어 있으면 tools, tool_choice 모두 생략.
        """
        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens or self.DEFAULT_MAX_TOKENS,
            "temperature": DEFAULT_TEMPERATURE if temperature is None else temperature,
            "stream": True,
        }
        if tools:
            payload["tools"] = tools
            if tool_choice:
                payload["tool_choice"] = tool_choice
        return payload

    async def stream_chat_completion(
        self,
        model: str,
        messages: list[dict],
        tools: list[dict] | None = None,
        tool_choice: str | dict | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """chat completion 스트리밍

        호출마다 새 HTTP 스트림을 연다.

        Yields:
            TextEvent (도착 즉시), ToolCallEvent (스트림 종료 후 index 순)

        Raises:
            ConfigurationError: 로그인 필요
            RetryLimitExceededError: 갱신 후에도 401
            TransportError: 네트워크/HTTP 실패
        """
        payload = self.build_request(
            model=model,
            messages=messages,
            tools=tools,
            tool_choice=tool_choice,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        # 소비자가 중간에 멈추면 HTTP 응답까지 바로 닫는다
        async with aclosing(aggregate_stream(self._stream_deltas(payload))) as events:
            async for event in events:
                yield event

    async def _stream_deltas(self, payload: dict[str, Any]) -> AsyncIterator[dict]:
        """SSE 응답에서 choices[0].delta만 추출"""
        for attempt in range(self._max_auth_retries + 1):
            await self._ensure_client()
            endpoint = f"{self._base_url}/chat/completions"

            try:
                async with httpx.AsyncClient(
                    transport=self._transport, timeout=self.timeout
                ) as client, client.stream(
                    "POST", endpoint, headers=self._headers(), json=payload
                ) as response:
                    if response.status_code == 401:
                        await response.aread()
                        if attempt >= self._max_auth_retries:
                            raise RetryLimitExceededError(
                                "Authentication failed after retry. "
                                "Please sign in to Qwen again.",
                                max_retries=self._max_auth_retries,
                                attempts=attempt + 1,
                                provider="qwen",
                            )
                        logger.warning("Qwen API returned 401, refreshing token")
                        await self.session.refresh(force=True)
                        continue

                    if response.status_code != 200:
                        body = await response.aread()
                        error_detail = body.decode(errors="replace")[:500] if body else ""
                        raise TransportError(
                            f"Qwen API error: {response.status_code} {error_detail}",
                            endpoint=endpoint,
                            status_code=response.status_code,
                            body=error_detail,
                        )

                    async for line in response.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        data_str = line[5:].strip()
                        if data_str == "[DONE]":
                            return
                        try:
                            chunk = json.loads(data_str)
                        except json.JSONDecodeError:
                            logger.debug("Skipping malformed SSE chunk: %s", data_str[:100])
                            continue

                        if not isinstance(chunk, dict):
                            logger.debug("Skipping non-object SSE chunk: %s", data_str[:100])
                            continue

                        choices = chunk.get("choices")
                        if not isinstance(choices, list) or not choices:
                            continue
                        choice = choices[0]
                        delta = choice.get("delta") if isinstance(choice, dict) else None
                        yield delta if isinstance(delta, dict) else {}
                    return
            except httpx.HTTPError as e:
                raise TransportError(
                    f"Qwen API request failed: {e}", endpoint=endpoint
                ) from e

    async def count_tokens(self, messages: list[dict]) -> int:
        """메시지 토큰 수 추정

        content 문자열, 리스트 content의 text 파트, tool call 이름과 인자의
        글자 수 합 / 4 (올림) + 메시지당 3.
        """
        total_chars = 0

        for message in messages:
            content = message.get("content")
            if isinstance(content, str):
                total_chars += len(content)
            elif isinstance(content, list):
                for part in content:
                    if isinstance(part, dict) and "text" in part:
                        total_chars += len(str(part.get("text") or ""))

            for call in message.get("tool_calls") or []:
                function = call.get("function") or {}
                if function.get("name"):
                    total_chars += len(function["name"])
                if function.get("arguments"):
                    total_chars += len(function["arguments"])

        return math.ceil(total_chars / self.CHARS_PER_TOKEN) + len(messages) * self.TOKENS_PER_MESSAGE

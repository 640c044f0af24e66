"""Stream Aggregator

OpenAI 호환 chat completion 스트림의 delta를 이벤트로 변환.

- content는 도착 즉시 TextEvent로 방출
- tool_calls 조각은 index별로 누적했다가 스트림이 끝난 뒤
  index 오름차순으로 ToolCallEvent 방출
- 소비자가 중간에 멈추면 미완성 tool call은 방출하지 않음
"""

import json
import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class TextEvent:
    """증분 텍스트 이벤트."""

    text: str
    type: str = field(default="text", init=False)


@dataclass
class ToolCallEvent:
    """완성된 tool call 이벤트.

    Attributes:
        call_id: tool call ID
        name: 함수 이름
        input: 파싱된 인자 (파싱 실패 시 {"_raw": 원문})
    """

    call_id: str
    name: str
    input: Any
    type: str = field(default="tool_call", init=False)


StreamEvent = TextEvent | ToolCallEvent


@dataclass
class ToolCallAccumulator:
    """index 하나에 대한 tool call 누적 버퍼."""

    id: str
    name: str | None = None
    arguments: str = ""


class ToolCallAggregator:
    """index별 tool call 조각 병합기.

    같은 index의 조각은 도착 순서대로 병합:
    id, name은 마지막 값 우선, arguments는 이어붙이기.

    Example:
        aggregator = ToolCallAggregator()
        aggregator.feed([{"index": 0, "function": {"arguments": '{"a":'}}])
        aggregator.feed([{"index": 0, "function": {"arguments": "1}"}}])
        aggregator.finalize()  # [ToolCallEvent(call_id="tool_call_0", ...)]
    """

    DEFAULT_TOOL_NAME = "tool"
    RAW_ARGUMENTS_KEY = "_raw"

    def __init__(self):
        self._calls: dict[int, ToolCallAccumulator] = {}

    def __len__(self) -> int:
        return len(self._calls)

    def feed(self, fragments: list[dict]) -> None:
        """delta.tool_calls 조각 목록 처리."""
        for fragment in fragments:
            index = fragment.get("index")
            if not isinstance(index, int):
                index = 0

            accumulator = self._calls.get(index)
            if accumulator is None:
                accumulator = ToolCallAccumulator(id=f"tool_call_{index}")
                self._calls[index] = accumulator

            if fragment.get("id"):
                accumulator.id = fragment["id"]

            function = fragment.get("function") or {}
            if function.get("name"):
                accumulator.name = function["name"]
            if function.get("arguments"):
                accumulator.arguments += function["arguments"]

    def _parse_arguments(self, accumulator: ToolCallAccumulator) -> Any:
        if not accumulator.arguments.strip():
            return {}
        try:
            return json.loads(accumulator.arguments)
        except json.JSONDecodeError:
            logger.warning(
                "Tool call %s: arguments JSON parse failed, returning raw string",
                accumulator.id,
            )
            return {self.RAW_ARGUMENTS_KEY: accumulator.arguments}

    def finalize(self) -> list[ToolCallEvent]:
        """스트림 종료 후 index 오름차순으로 완성된 tool call 반환."""
        return [
            ToolCallEvent(
                call_id=accumulator.id,
                name=accumulator.name or self.DEFAULT_TOOL_NAME,
                input=self._parse_arguments(accumulator),
            )
            for _, accumulator in sorted(self._calls.items())
        ]


async def aggregate_stream(deltas: AsyncGenerator[dict, None]) -> AsyncIterator[StreamEvent]:
    """delta 스트림을 StreamEvent 스트림으로 변환.

    Args:
        deltas: choices[0].delta 딕셔너리의 async generator (종료 시 함께 닫힘)

    Yields:
        TextEvent (도착 순), 이후 ToolCallEvent (index 순)
    """
    aggregator = ToolCallAggregator()

    async with aclosing(deltas):
        async for delta in deltas:
            content = delta.get("content")
            if content:
                yield TextEvent(text=content)

            tool_calls = delta.get("tool_calls")
            if tool_calls:
                aggregator.feed(tool_calls)

    # 스트림이 정상 종료된 경우에만 도달
    for event in aggregator.finalize():
        yield event

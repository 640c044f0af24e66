"""Cancellation Token

Device code 폴링 루프 취소용 신호.
대기 중인 sleep도 즉시 깨운다.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """협조적 취소 신호.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(session.start_device_flow(cancellation_token=token))
        token.cancel()
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """취소 요청 (여러 번 호출해도 안전)"""
        if self._event.is_set():
            return
        self._event.set()
        for callback in self._callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning("Cancellation callback failed: %s", e)

    def on_cancellation_requested(self, callback: Callable[[], None]) -> None:
        """취소 시 호출될 콜백 등록 (이미 취소됐으면 즉시 호출)"""
        if self._event.is_set():
            callback()
            return
        self._callbacks.append(callback)

    async def wait(self) -> None:
        """취소될 때까지 대기"""
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """취소 가능한 sleep.

        Returns:
            bool: 대기 중 취소되었으면 True
        """
        if seconds <= 0:
            return self.is_cancellation_requested
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        return self.is_cancellation_requested

"""时钟与定时器

引擎只通过 Clock 读取当前时间、挂载一次性定时器。生产环境使用 asyncio 事件循环，
测试中可以替换为手动推进的假时钟。
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, Protocol

__all__ = ["TimerHandle", "Clock", "AsyncioClock"]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(ABC):
    @abstractmethod
    def now_ms(self) -> int:
        """当前 epoch 毫秒"""

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        """delay_ms 毫秒后调用 callback，返回可取消的句柄"""


class AsyncioClock(Clock):
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now_ms(self) -> int:
        return int(time.time() * 1000)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(0, delay_ms) / 1000, callback)

"""快照轮询

定期从数据层读取未完成任务列表，交给提醒引擎比较差异。
单次读取失败只记录日志，下一轮继续。
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol

from taskminder.core.engine import ReminderEngine
from taskminder.datamodel import Task
from taskminder.logger import logger

__shutdown_event: asyncio.Event | None = None
__last_poll_at_epoch: float | None = None
__last_error: str | None = None


class SnapshotSource(Protocol):
    async def get_open_tasks(self) -> list[Task]: ...


def get_status() -> dict[str, object]:
    running = __shutdown_event is not None and not __shutdown_event.is_set()
    return {
        "running": running,
        "last_poll_at_epoch": __last_poll_at_epoch,
        "last_error": __last_error,
    }


async def _poll_once(engine: ReminderEngine, source: SnapshotSource, first: bool) -> bool:
    global __last_poll_at_epoch, __last_error
    __last_poll_at_epoch = time.time()
    try:
        tasks = await source.get_open_tasks()
    except Exception as e:
        __last_error = str(e)
        logger.exception("读取任务快照失败")
        return False

    __last_error = None
    if first:
        engine.start(tasks)
    else:
        engine.apply_snapshot(tasks)
    return True


async def main_loop(
    engine: ReminderEngine,
    source: SnapshotSource,
    shutdown_event: asyncio.Event,
    poll_seconds: float = 5.0,
) -> None:
    global __shutdown_event
    __shutdown_event = shutdown_event
    logger.info(f"任务快照轮询已启动: interval={poll_seconds}s")

    started = False
    try:
        while not shutdown_event.is_set():
            ok = await _poll_once(engine, source, first=not started)
            started = started or ok
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=poll_seconds)
            except asyncio.TimeoutError:
                pass
    finally:
        engine.dispose()
        logger.info("任务快照轮询已关闭")

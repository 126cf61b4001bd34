"""用户对展示中的提醒执行的操作

状态修改先乐观地作用于引擎，再交给数据层持久化；持久化失败时回滚并向上抛出。
"""

from __future__ import annotations

from typing import List, Protocol

from taskminder.datamodel import Status
from taskminder.logger import logger
from taskminder.core.engine import ReminderEngine

__all__ = ["TaskStatusStore", "ReminderActions"]


class TaskStatusStore(Protocol):
    async def update_task_status(self, task_id: str, status: Status) -> None: ...


class ReminderActions:
    def __init__(self, engine: ReminderEngine, store: TaskStatusStore) -> None:
        self.engine = engine
        self.store = store

    async def complete(self, task_id: str) -> bool:
        return await self._set_status(task_id, Status.COMPLETE)

    async def undo_complete(self, task_id: str) -> bool:
        return await self._set_status(task_id, Status.OPEN)

    async def complete_all(self) -> List[str]:
        targets = [r.id for r in self.engine.displayed_records() if r.status != Status.COMPLETE]
        for task_id in targets:
            await self.complete(task_id)
        return targets

    async def undo_all(self) -> List[str]:
        targets = [r.id for r in self.engine.displayed_records() if r.status == Status.COMPLETE]
        for task_id in targets:
            await self.undo_complete(task_id)
        return targets

    async def _set_status(self, task_id: str, status: Status) -> bool:
        previous = self.engine.set_task_status(task_id, status)
        if previous is None:
            return False
        try:
            await self.store.update_task_status(task_id, status)
        except Exception:
            logger.exception(f"任务状态持久化失败，已回滚: id={task_id}, status={status.value}")
            self.engine.set_task_status(task_id, previous.status)
            raise
        return True

"""快照同步

数据层每次提供的是任务列表的完整快照，这里按 id 与上一次快照比较，
把差异翻译成注册表的 register / unregister / update。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from taskminder.datamodel import ReminderRecord, Task
from taskminder.logger import logger
from taskminder.metrics import runtime_metrics
from taskminder.core.coalescer import NotificationCoalescer
from taskminder.core.registry import ReminderRegistry

__all__ = ["SnapshotDiff", "diff_snapshots", "SyncReconciler"]


@dataclass
class SnapshotDiff:
    added: List[Task] = field(default_factory=list)
    removed: List[Task] = field(default_factory=list)
    modified: List[Task] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)


def index_snapshot(tasks: Iterable[Optional[Task]]) -> Dict[str, Task]:
    """按 id 建索引，同一快照内重复的 id 只保留第一次出现"""
    indexed: Dict[str, Task] = {}
    for task in tasks:
        if task is not None and task.id not in indexed:
            indexed[task.id] = task
    return indexed


def diff_snapshots(previous: Dict[str, Task], current: Dict[str, Task]) -> SnapshotDiff:
    diff = SnapshotDiff()
    for task_id, task in previous.items():
        if task_id not in current:
            diff.removed.append(task)
    for task_id, task in current.items():
        prev = previous.get(task_id)
        if prev is None:
            diff.added.append(task)
        elif prev != task:
            diff.modified.append(task)
    return diff


class SyncReconciler:
    def __init__(
        self,
        registry: ReminderRegistry,
        coalescer: NotificationCoalescer,
        feed: Callable[..., None],
    ) -> None:
        self.registry = registry
        self.coalescer = coalescer
        self._feed = feed
        self._previous: Dict[str, Task] = {}

    @property
    def previous(self) -> Dict[str, Task]:
        return dict(self._previous)

    def get(self, task_id: str) -> Optional[Task]:
        return self._previous.get(task_id)

    def forget(self, task_ids: Iterable[str]) -> None:
        """从保留的快照中移除任务，相当于数据层缓存中删除已完成的任务"""
        for task_id in task_ids:
            self._previous.pop(task_id, None)

    def apply(self, tasks: Iterable[Optional[Task]]) -> SnapshotDiff:
        current = index_snapshot(tasks)
        diff = diff_snapshots(self._previous, current)
        self._previous = current

        for task in diff.removed:
            self.registry.unregister(task.id)

        for task in diff.added:
            record = ReminderRecord.from_task(task)
            if record is not None:
                self.registry.register(record)

        updated: List[ReminderRecord] = []
        for task in diff.modified:
            record = ReminderRecord.from_task(task)
            if record is None:
                # 提醒被取消
                self.registry.unregister(task.id)
                continue
            self.registry.update(record)
            updated.append(record)

        # 展示打开时，已展示的记录立即按新数据刷新；关闭的展示不会因编辑而打开
        if self.coalescer.is_open:
            displayed = [r for r in updated if self.coalescer.is_displayed(r.id)]
            if displayed:
                self._feed(*displayed)

        self.registry.timers.sync_rearm_loop()
        runtime_metrics.record_snapshot()
        if not diff.is_empty:
            logger.debug(
                f"快照已同步: added={len(diff.added)}, removed={len(diff.removed)}, "
                f"modified={len(diff.modified)}, registered={len(self.registry)}"
            )
        return diff

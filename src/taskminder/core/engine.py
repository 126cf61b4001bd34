"""提醒引擎

把注册表、定时器、合并器和快照同步装配在一起，对外只暴露少量入口：
    start / apply_snapshot   数据层快照
    set_task_status          乐观地修改任务状态 (完成 / 撤销)
    dismiss                  关闭展示
    set_view_focused         是否处于提醒所在视图 (决定角标)
    dispose                  释放所有定时器

# 数据流
快照 -> SyncReconciler 比较差异 -> ReminderRegistry 注册/注销/更新 -> TimerController 挂载定时器
-> 定时器触发后进入 BatchDebouncer -> NotificationCoalescer 计算新的展示状态并通过事件总线发出。
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional, Set

from taskminder.config.settings import EngineConfig
from taskminder.datamodel import DisplayGroup, ReminderRecord, Status, Task
from taskminder.events import Bus, E
from taskminder.logger import logger
from taskminder.metrics import runtime_metrics
from taskminder.core.coalescer import BatchDebouncer, NotificationCoalescer
from taskminder.core.reconciler import SnapshotDiff, SyncReconciler
from taskminder.core.registry import ReminderRegistry
from taskminder.core.timers import TimerController
from taskminder.world.clock import AsyncioClock, Clock

__all__ = ["ReminderEngine", "configure_engine", "require_engine"]


class ReminderEngine:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
        bus: Optional[Bus] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.clock = clock or AsyncioClock()
        self.bus = bus or Bus()

        self.timers = TimerController(
            self.clock,
            self.config,
            on_fire=self._on_fire,
            on_withdraw=self._on_withdraw,
        )
        self.registry = ReminderRegistry(self.timers)
        self.coalescer = NotificationCoalescer(self.registry, self.bus)
        self.debouncer = BatchDebouncer(self.clock, self.config.debounce_ms, self._deliver)
        self.reconciler = SyncReconciler(self.registry, self.coalescer, feed=self._refresh)
        # 合并窗口内仅因编辑而排队的记录 id
        self._refresh_ids: Set[str] = set()
        self._started = False
        self._disposed = False

    # ------------------------------------------------------------------
    # 数据层入口
    # ------------------------------------------------------------------

    def start(self, tasks: Iterable[Optional[Task]]) -> SnapshotDiff:
        """首次加载：注册全部任务，并在合并窗口结束后展示已到期的提醒"""
        diff = self.apply_snapshot(tasks)
        self._started = True
        self.debouncer.push()
        logger.info(
            f"提醒引擎已启动: registered={len(self.registry)}, "
            f"scheduled={self.timers.scheduled_count}, deferred={self.timers.deferred_count}"
        )
        return diff

    def apply_snapshot(self, tasks: Iterable[Optional[Task]]) -> SnapshotDiff:
        snapshot = [t for t in tasks if t is not None]
        present = {t.id for t in snapshot}
        # 已完成但仍在展示中的任务保留到关闭展示为止
        for task_id in self._pinned_ids():
            task = self.reconciler.get(task_id)
            if task_id not in present and task is not None:
                snapshot.append(task)

        diff = self.reconciler.apply(snapshot)
        if not diff.is_empty:
            self._emit(E.SNAPSHOT_APPLIED, diff=diff)
        return diff

    def set_task_status(self, task_id: str, status: Status) -> Optional[Task]:
        """乐观更新任务状态，返回修改前的任务；任务未知时返回 None"""
        previous = self.reconciler.get(task_id)
        if previous is None:
            displayed = self._displayed(task_id)
            if displayed is None:
                logger.warning(f"修改状态时找不到任务: id={task_id}")
                return None
            previous = displayed.to_task()

        snapshot = [t for t in self.reconciler.previous.values() if t.id != task_id]
        snapshot.append(replace(previous, status=status))
        logger.info(f"任务状态变更: id={task_id}, {previous.status.value} -> {status.value}")
        self.reconciler.apply(snapshot)
        return previous

    # ------------------------------------------------------------------
    # 渲染层 / 宿主入口
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.coalescer.is_open

    @property
    def display(self) -> List[DisplayGroup]:
        return self.coalescer.display

    def displayed_records(self) -> List[ReminderRecord]:
        return self.coalescer.displayed_records()

    def due_groups(self) -> List[DisplayGroup]:
        return self.registry.due_groups()

    @property
    def bulk_action(self) -> Optional[str]:
        """多于一条时提供批量操作：存在未完成的为 complete_all，否则为 undo_all"""
        records = self.displayed_records()
        if len(records) <= 1:
            return None
        if any(r.status != Status.COMPLETE for r in records):
            return "complete_all"
        return "undo_all"

    def dismiss(self) -> List[ReminderRecord]:
        # 编辑刷新只作用于打开的展示，关闭后不能借此重新打开
        for record_id in self._refresh_ids:
            self.debouncer.discard(record_id)
        self._refresh_ids.clear()
        dismissed = self.coalescer.dismiss()
        completed = [r.id for r in dismissed if r.status == Status.COMPLETE]
        self.reconciler.forget(completed)
        return dismissed

    def set_view_focused(self, focused: bool) -> None:
        self.coalescer.set_view_focused(focused)

    def flush(self) -> None:
        """立即投递合并窗口内积累的触发"""
        self.debouncer.flush()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self.debouncer.cancel()
        self.timers.dispose()
        logger.info("提醒引擎已释放")

    def get_status(self) -> dict[str, object]:
        return {
            "started": self._started,
            "disposed": self._disposed,
            "registered": len(self.registry),
            "buckets": len(self.registry.bucket_keys()),
            "scheduled": self.timers.scheduled_count,
            "deferred": self.timers.deferred_count,
            "rearm_loop_running": self.timers.is_rearm_loop_running,
            "display_open": self.coalescer.is_open,
            "displayed": len(self.displayed_records()),
            "view_focused": self.coalescer.view_focused,
            "badge_raised": self.coalescer.badge_raised,
            "pending_batch": len(self.debouncer.pending),
            "metrics": runtime_metrics.snapshot(),
        }

    # ------------------------------------------------------------------
    # 内部
    # ------------------------------------------------------------------

    def _refresh(self, *records: ReminderRecord) -> None:
        self._refresh_ids.update(r.id for r in records)
        self.debouncer.push(*records)

    def _deliver(self, batch: List[ReminderRecord]) -> None:
        self._refresh_ids.clear()
        self.coalescer.show(batch)

    def _on_fire(self, record: ReminderRecord) -> None:
        self._refresh_ids.discard(record.id)
        self.debouncer.push(record)
        self._emit(E.REMINDER_FIRED, record=record)

    def _on_withdraw(self, record_id: str) -> None:
        self._refresh_ids.discard(record_id)
        if self.debouncer.discard(record_id):
            logger.debug(f"已撤回尚未投递的提醒: id={record_id}")

    def _pinned_ids(self) -> List[str]:
        return [r.id for r in self.displayed_records() if r.status == Status.COMPLETE]

    def _displayed(self, task_id: str) -> Optional[ReminderRecord]:
        for record in self.displayed_records():
            if record.id == task_id:
                return record
        return None

    def _emit(self, event: str, **kwargs) -> None:
        try:
            self.bus.emit(event, **kwargs)
        except Exception:
            runtime_metrics.record_host_error()
            logger.exception(f"事件处理器执行失败: {event}")


_engine: ReminderEngine | None = None

def configure_engine(engine: ReminderEngine) -> None:
    global _engine
    _engine = engine


def require_engine() -> ReminderEngine:
    if _engine is None:
        raise RuntimeError("提醒引擎尚未配置，请先调用 configure_engine()")
    return _engine

"""通知合并

BatchDebouncer 把一个时间窗内到达的触发记录累积成一批，窗口结束后一次性交给
NotificationCoalescer.show。show 根据展示是否已打开决定新分组的位置：
- 展示关闭时：本批新分组放在最前，其后是其余已到期分组 (按分组键升序);
- 展示打开时：已存在的记录原地更新状态，新记录分组后追加到末尾。
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from taskminder.datamodel import (
    BadgeConfig,
    DisplayGroup,
    NotificationConfig,
    ReminderRecord,
    Status,
    TimerState,
)
from taskminder.events import Bus, E
from taskminder.logger import logger
from taskminder.metrics import runtime_metrics
from taskminder.core.registry import ReminderRegistry
from taskminder.world.clock import Clock, TimerHandle

__all__ = ["BatchDebouncer", "NotificationCoalescer"]


class BatchDebouncer:
    """显式的累积器 + 单次定时器 (后沿触发)"""

    def __init__(
        self,
        clock: Clock,
        window_ms: int,
        callback: Callable[[List[ReminderRecord]], None],
    ) -> None:
        self.clock = clock
        self.window_ms = window_ms
        self._callback = callback
        self._pending: List[ReminderRecord] = []
        self._handle: Optional[TimerHandle] = None

    @property
    def is_pending(self) -> bool:
        return self._handle is not None

    @property
    def pending(self) -> List[ReminderRecord]:
        return list(self._pending)

    def push(self, *records: ReminderRecord) -> None:
        # 不带参数时同样会安排一次投递
        self._pending.extend(records)
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self.clock.call_later(self.window_ms, self.flush)

    def discard(self, record_id: str) -> int:
        before = len(self._pending)
        self._pending = [r for r in self._pending if r.id != record_id]
        return before - len(self._pending)

    def flush(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        batch, self._pending = self._pending, []
        self._callback(batch)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = []


class NotificationCoalescer:
    def __init__(self, registry: ReminderRegistry, bus: Bus) -> None:
        self.registry = registry
        self.bus = bus
        self._display: List[DisplayGroup] = []
        self._open = False
        self._view_focused = False
        self._badge_raised = False

    # ------------------------------------------------------------------
    # 展示状态
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def display(self) -> List[DisplayGroup]:
        return [DisplayGroup(g.bucket_key, list(g.records)) for g in self._display]

    def displayed_records(self) -> List[ReminderRecord]:
        return [r for g in self._display for r in g.records]

    def is_displayed(self, record_id: str) -> bool:
        return any(r.id == record_id for r in self.displayed_records())

    @property
    def view_focused(self) -> bool:
        return self._view_focused

    @property
    def badge_raised(self) -> bool:
        return self._badge_raised

    # ------------------------------------------------------------------
    # 合并
    # ------------------------------------------------------------------

    def show(self, records: Sequence[ReminderRecord]) -> None:
        batch = _dedupe(records)
        keys_before = {g.bucket_key for g in self._display}

        if self._open:
            next_display, changed = self._merge_into_open(batch)
            if not changed:
                return
        else:
            next_display = self._rebuild(batch)
            if not next_display:
                return

        self._display = next_display
        self._open = True
        introduced = {g.bucket_key for g in next_display} - keys_before
        logger.info(
            f"提醒展示已更新: groups={len(next_display)}, "
            f"records={len(self.displayed_records())}, new_keys={sorted(introduced)}"
        )
        self._publish(notify=bool(introduced))

    def _rebuild(self, batch: List[ReminderRecord]) -> List[DisplayGroup]:
        fresh = self._group(batch)
        due = self.registry.due_groups(exclude=[r.id for r in batch])
        # 本批展示过后即视为已提醒
        for record in batch:
            record.timer_state = TimerState.FIRED
        return fresh + due

    def _merge_into_open(self, batch: List[ReminderRecord]) -> Tuple[List[DisplayGroup], bool]:
        next_display = self.display
        positions: Dict[str, Tuple[int, int]] = {}
        for gi, group in enumerate(next_display):
            for ri, record in enumerate(group.records):
                positions[record.id] = (gi, ri)

        changed = False
        new_records: List[ReminderRecord] = []
        for record in batch:
            position = positions.get(record.id)
            if position is None:
                new_records.append(record)
                continue
            gi, ri = position
            existing = next_display[gi].records[ri]
            # 只更新状态，避免新标题出现在旧日期下
            if existing.status != record.status:
                next_display[gi].records[ri] = replace(existing, status=record.status)
                changed = True

        for record in new_records:
            record.timer_state = TimerState.FIRED
        if new_records:
            next_display.extend(self._group(new_records))
            changed = True
        return next_display, changed

    def _group(self, records: List[ReminderRecord]) -> List[DisplayGroup]:
        groups: Dict[str, List[ReminderRecord]] = {}
        for record in records:
            groups.setdefault(self.registry.key_of(record), []).append(record)
        return [DisplayGroup(bucket_key=k, records=v) for k, v in groups.items()]

    def dismiss(self) -> List[ReminderRecord]:
        dismissed = self.displayed_records()
        self._display = []
        self._open = False
        logger.info(f"提醒展示已关闭: records={len(dismissed)}")
        self._emit(E.DISPLAY_CHANGED, groups=[])
        self._emit(E.DISPLAY_DISMISSED, completed=[r for r in dismissed if r.status == Status.COMPLETE])
        self._clear_badge()
        return dismissed

    # ------------------------------------------------------------------
    # 宿主信号
    # ------------------------------------------------------------------

    def set_view_focused(self, focused: bool) -> None:
        self._view_focused = focused
        if focused:
            self._clear_badge()

    def _publish(self, notify: bool) -> None:
        runtime_metrics.record_display_change()
        self._emit(E.DISPLAY_CHANGED, groups=self.display)
        if notify:
            runtime_metrics.record_notify()
            self._emit(E.HOST_NOTIFY, config=NotificationConfig(play_sound=True, show_popup=False))
        if not self._view_focused and self._display:
            self._badge_raised = True
            runtime_metrics.record_badge_update()
            self._emit(
                E.HOST_BADGE,
                badge=BadgeConfig(show=True, count=len(self.displayed_records()), show_count=True),
            )

    def _clear_badge(self) -> None:
        if self._badge_raised:
            self._badge_raised = False
            runtime_metrics.record_badge_update()
            self._emit(E.HOST_BADGE, badge=BadgeConfig(show=False))

    def _emit(self, event: str, **kwargs) -> None:
        # 下游处理器的异常不能影响注册表和展示状态
        try:
            self.bus.emit(event, **kwargs)
        except Exception:
            runtime_metrics.record_host_error()
            logger.exception(f"事件处理器执行失败: {event}")


def _dedupe(records: Sequence[ReminderRecord]) -> List[ReminderRecord]:
    """按 id 去重：保留首次出现的位置，使用最后一次的数据"""
    order: List[str] = []
    latest: Dict[str, ReminderRecord] = {}
    for record in records:
        if record.id not in latest:
            order.append(record.id)
        latest[record.id] = record
    return [latest[i] for i in order]

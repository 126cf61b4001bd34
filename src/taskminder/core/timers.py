"""提醒定时器控制

所有调度状态的迁移都集中在这里，记录本身只携带 timer_state：
    IDLE -> SCHEDULED -> FIRED
    IDLE -> DEFERRED -> SCHEDULED -> FIRED
距离触发时间超过 max_direct_delay_ms 的提醒进入 DEFERRED，由周期性的重新挂载循环负责，
循环只在存在 DEFERRED 记录时运行。
"""

from __future__ import annotations

from typing import Callable, Dict, Optional

from taskminder.config.settings import EngineConfig
from taskminder.datamodel import ReminderRecord, TimerState
from taskminder.logger import logger
from taskminder.metrics import runtime_metrics
from taskminder.utils import effective_fire_time
from taskminder.world.clock import Clock, TimerHandle

__all__ = ["TimerController"]

FireSink = Callable[[ReminderRecord], None]
WithdrawSink = Callable[[str], None]


class TimerController:
    def __init__(
        self,
        clock: Clock,
        config: EngineConfig,
        on_fire: FireSink,
        on_withdraw: Optional[WithdrawSink] = None,
    ) -> None:
        self.clock = clock
        self.config = config
        self._on_fire = on_fire
        self._on_withdraw = on_withdraw
        self._handles: Dict[str, TimerHandle] = {}
        self._deferred: Dict[str, ReminderRecord] = {}  # 保持插入顺序
        self._rearm_handle: Optional[TimerHandle] = None

    # ------------------------------------------------------------------
    # 挂载 / 取消
    # ------------------------------------------------------------------

    def arm(self, record: ReminderRecord) -> TimerState:
        """按剩余时间挂载定时器，返回新的状态"""
        self._clear_handle(record.id)
        self._deferred.pop(record.id, None)

        delay = effective_fire_time(record, self.config.timezone) - self.clock.now_ms()
        if delay < 0:
            # 已经到期，无需定时器
            record.timer_state = TimerState.FIRED
        elif delay <= self.config.max_direct_delay_ms:
            self._handles[record.id] = self.clock.call_later(delay, lambda: self._fire(record))
            record.timer_state = TimerState.SCHEDULED
            logger.trace(f"提醒定时器已挂载: id={record.id}, delay_ms={delay}")
        else:
            self._deferred[record.id] = record
            record.timer_state = TimerState.DEFERRED
            runtime_metrics.record_reminder_deferred()
            logger.debug(f"提醒距离过远，延后挂载: id={record.id}, delay_ms={delay}")
            self._ensure_rearm_loop()
        return record.timer_state

    def cancel(self, record: ReminderRecord) -> None:
        self._clear_handle(record.id)
        self._deferred.pop(record.id, None)
        if self._on_withdraw is not None:
            # 已触发但尚未投递的也一并撤回
            self._on_withdraw(record.id)
        record.timer_state = TimerState.IDLE
        self.sync_rearm_loop()

    def _clear_handle(self, record_id: str) -> None:
        handle = self._handles.pop(record_id, None)
        if handle is not None:
            handle.cancel()

    def _fire(self, record: ReminderRecord) -> None:
        self._handles.pop(record.id, None)
        record.timer_state = TimerState.FIRED
        runtime_metrics.record_reminder_fired()
        logger.debug(f"提醒已触发: id={record.id}, title={record.title}")
        self._on_fire(record)

    # ------------------------------------------------------------------
    # 重新挂载循环
    # ------------------------------------------------------------------

    @property
    def is_rearm_loop_running(self) -> bool:
        return self._rearm_handle is not None

    @property
    def deferred_count(self) -> int:
        return len(self._deferred)

    @property
    def scheduled_count(self) -> int:
        return len(self._handles)

    def sync_rearm_loop(self) -> None:
        """存在 DEFERRED 记录时保证循环运行，否则停止"""
        if self._deferred:
            self._ensure_rearm_loop()
        elif self._rearm_handle is not None:
            self._rearm_handle.cancel()
            self._rearm_handle = None
            logger.debug("没有延后的提醒，重新挂载循环已停止")

    def _ensure_rearm_loop(self) -> None:
        if self._rearm_handle is None:
            self._rearm_handle = self.clock.call_later(self.config.rearm_interval_ms, self._rearm_tick)
            logger.debug(f"重新挂载循环已启动: interval_ms={self.config.rearm_interval_ms}")

    def _rearm_tick(self) -> None:
        self._rearm_handle = None
        runtime_metrics.record_rearm_tick()
        pending = list(self._deferred.values())
        logger.trace(f"重新挂载循环: deferred={len(pending)}")
        for record in pending:
            if self.arm(record) == TimerState.FIRED:
                # 延后期间已越过触发时刻，不会再有定时器投递它
                self._fire(record)
        if self._deferred:
            self._ensure_rearm_loop()

    def dispose(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        self._deferred.clear()
        self.sync_rearm_loop()

"""
一个简单的运行时指标收集类，用于统计提醒触发次数、展示变更与宿主通知等信息，方便后续扩展和监控。
"""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class RuntimeMetrics:
    reminder_fired_count: int = 0
    reminder_deferred_count: int = 0
    rearm_tick_count: int = 0
    display_change_count: int = 0
    notify_count: int = 0
    badge_update_count: int = 0
    host_error_count: int = 0
    snapshot_count: int = 0
    last_snapshot_at: float | None = None

    def record_reminder_fired(self) -> None:
        self.reminder_fired_count += 1

    def record_reminder_deferred(self) -> None:
        self.reminder_deferred_count += 1

    def record_rearm_tick(self) -> None:
        self.rearm_tick_count += 1

    def record_display_change(self) -> None:
        self.display_change_count += 1

    def record_notify(self) -> None:
        self.notify_count += 1

    def record_badge_update(self) -> None:
        self.badge_update_count += 1

    def record_host_error(self) -> None:
        self.host_error_count += 1

    def record_snapshot(self) -> None:
        self.snapshot_count += 1
        self.last_snapshot_at = time.time()

    def snapshot(self) -> dict:
        return {
            "reminder_fired_count": self.reminder_fired_count,
            "reminder_deferred_count": self.reminder_deferred_count,
            "rearm_tick_count": self.rearm_tick_count,
            "display_change_count": self.display_change_count,
            "notify_count": self.notify_count,
            "badge_update_count": self.badge_update_count,
            "host_error_count": self.host_error_count,
            "snapshot_count": self.snapshot_count,
            "last_snapshot_at_epoch": self.last_snapshot_at,
            "last_snapshot_at_utc": (
                time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.last_snapshot_at))
                if self.last_snapshot_at is not None
                else None
            ),
        }


runtime_metrics = RuntimeMetrics()


__all__ = ["RuntimeMetrics", "runtime_metrics"]

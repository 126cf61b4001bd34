"""事件总线模块，定义了事件总线类 Bus 及事件名集合 E

提醒引擎通过事件总线向外部协作方（渲染层、宿主通知/角标）发出信号，
协作方只需订阅对应事件即可，不直接接触引擎内部状态。
处理器均为同步函数；处理器抛出的异常由发出方捕获并记录。
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from pyee.asyncio import AsyncIOEventEmitter

from taskminder.logger import logger

Handler = Callable[..., Any]


# 事件名集中定义
class E:
    # 渲染层
    DISPLAY_CHANGED = "display.changed"      # groups: list[DisplayGroup]
    DISPLAY_DISMISSED = "display.dismissed"  # completed: list[ReminderRecord]
    # 宿主
    HOST_NOTIFY = "host.notify"              # config: NotificationConfig
    HOST_BADGE = "host.badge"                # badge: BadgeConfig
    # 引擎内部动态，仅供观察
    REMINDER_FIRED = "reminder.fired"        # record: ReminderRecord
    SNAPSHOT_APPLIED = "snapshot.applied"    # diff: SnapshotDiff


class Bus(AsyncIOEventEmitter):
    def on(self, event: str, handler: Optional[Handler] = None):
        """注册事件处理器，既可直接调用，也可作为装饰器使用"""
        def decorator(f: Handler) -> Handler:
            logger.debug(f"注册事件处理器: {event} -> {getattr(f, '__name__', f)}")
            super(Bus, self).on(event, f)
            return f

        if handler is None:
            return decorator
        return decorator(handler)


bus = Bus()

__all__ = ["Bus", "bus", "E"]

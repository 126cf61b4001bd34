"""taskminder: 任务提醒调度与通知合并引擎"""

from taskminder.datamodel import (
    BadgeConfig,
    DisplayGroup,
    NotificationConfig,
    Priority,
    ReminderRecord,
    Status,
    Task,
    TimerState,
)
from taskminder.config.settings import EngineConfig
from taskminder.core.engine import ReminderEngine

__version__ = "1.0.0"

__all__ = [
    "BadgeConfig", "DisplayGroup", "NotificationConfig", "Priority", "ReminderRecord",
    "Status", "Task", "TimerState", "EngineConfig", "ReminderEngine",
]

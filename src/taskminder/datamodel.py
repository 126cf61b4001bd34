from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

__all__ = [
    "Priority", "Status", "Task",
    "TimerState", "ReminderRecord",
    "DisplayGroup", "NotificationConfig", "BadgeConfig",
]


# ----------------- Task 数据模型 ----------------
class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Status(str, Enum):
    OPEN = "OPEN"
    COMPLETE = "COMPLETE"


@dataclass(frozen=True)
class Task:
    """数据层提供的任务，按值比较"""
    id: str
    title: str
    priority: Priority = Priority.MEDIUM
    status: Status = Status.OPEN
    reminder_at: Optional[int] = None  # epoch 毫秒
    reminder_all_day: Optional[bool] = None  # 仅在 reminder_at 有值时有意义

    @property
    def has_reminder(self) -> bool:
        return self.reminder_at is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """兼容 snake_case 与数据层的 camelCase 字段名"""
        reminder_at = data.get("reminder_at", data.get("reminderAt"))
        reminder_all_day = data.get("reminder_all_day", data.get("reminderAllDay"))
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            priority=Priority(data.get("priority", Priority.MEDIUM)),
            status=Status(data.get("status", Status.OPEN)),
            reminder_at=int(reminder_at) if reminder_at is not None else None,
            reminder_all_day=bool(reminder_all_day) if reminder_all_day is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "priority": self.priority.value,
            "status": self.status.value,
            "reminderAt": self.reminder_at,
            "reminderAllDay": self.reminder_all_day,
        }


# ----------------- Reminder 数据模型 ----------------
class TimerState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"  # 已挂定时器
    DEFERRED = "deferred"    # 距离过远，等待重新挂载
    FIRED = "fired"          # 已到期，不再等待定时器


@dataclass
class ReminderRecord:
    """带提醒的任务投影，调度状态不参与相等比较"""
    id: str
    title: str
    priority: Priority
    status: Status
    reminder_at: int
    reminder_all_day: bool = False
    timer_state: TimerState = field(default=TimerState.IDLE, compare=False)

    @classmethod
    def from_task(cls, task: Task) -> Optional["ReminderRecord"]:
        if task.reminder_at is None:
            return None
        return cls(
            id=task.id,
            title=task.title,
            priority=task.priority,
            status=task.status,
            reminder_at=task.reminder_at,
            reminder_all_day=task.reminder_all_day is True,
        )

    def to_task(self) -> Task:
        return Task(
            id=self.id,
            title=self.title,
            priority=self.priority,
            status=self.status,
            reminder_at=self.reminder_at,
            reminder_all_day=self.reminder_all_day,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.to_task().to_dict(),
            "timerState": self.timer_state.value,
        }


# ----------------- 展示与宿主信号 ----------------
@dataclass
class DisplayGroup:
    bucket_key: str
    records: List[ReminderRecord]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bucketKey": self.bucket_key,
            "reminders": [r.to_dict() for r in self.records],
        }


@dataclass(frozen=True)
class NotificationConfig:
    play_sound: bool = True
    show_popup: bool = False


@dataclass(frozen=True)
class BadgeConfig:
    show: bool
    count: int = 0
    show_count: bool = False

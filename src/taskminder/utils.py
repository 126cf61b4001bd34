"""时间相关的工具函数

提醒时间统一使用 epoch 毫秒；分组键、"今天"的判断都在用户时区下进行。
分组键格式: 带时间 "YYYY-MM-DD HH:MM"，全天 "YYYY-MM-DD"，字典序即时间顺序，
且同一天的全天键是带时间键的前缀，因此总是排在前面。
"""

import time
from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from taskminder.datamodel import ReminderRecord

__all__ = [
    "DATE_KEY_FORMAT", "DATE_TIME_KEY_FORMAT",
    "now_ms", "to_user_local", "format_timestamp", "bucket_key", "bucket_label",
    "start_of_day_ms", "is_same_day", "is_today",
    "effective_fire_time", "is_reminder_valid", "is_reminder_visible",
]

DATE_KEY_FORMAT = "%Y-%m-%d"
DATE_TIME_KEY_FORMAT = "%Y-%m-%d %H:%M"

DATE_LABEL_FORMAT = "%b %d, %Y"
DATE_TIME_LABEL_FORMAT = "%b %d, %Y - %H:%M"


@lru_cache(maxsize=32)
def _zone(user_tz: str) -> ZoneInfo:
    return ZoneInfo(user_tz)


def now_ms() -> int:
    """获取当前 epoch 毫秒"""
    return int(time.time() * 1000)


def to_user_local(ts_ms: int, user_tz: str) -> datetime:
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).astimezone(_zone(user_tz))


def format_timestamp(ts_ms: int, user_tz: str, include_time: bool = True) -> str:
    fmt = DATE_TIME_KEY_FORMAT if include_time else DATE_KEY_FORMAT
    return to_user_local(ts_ms, user_tz).strftime(fmt)


def bucket_key(record: ReminderRecord, user_tz: str) -> str:
    return format_timestamp(record.reminder_at, user_tz, include_time=not record.reminder_all_day)


def bucket_label(key: str) -> str:
    """把分组键转成展示用文本，例如 "Mar 18, 2024 - 16:33" """
    if len(key) > len("YYYY-MM-DD"):
        return datetime.strptime(key, DATE_TIME_KEY_FORMAT).strftime(DATE_TIME_LABEL_FORMAT)
    return datetime.strptime(key, DATE_KEY_FORMAT).strftime(DATE_LABEL_FORMAT)


def start_of_day_ms(ts_ms: int, user_tz: str) -> int:
    local = to_user_local(ts_ms, user_tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


def is_same_day(a_ms: int, b_ms: int, user_tz: str) -> bool:
    return to_user_local(a_ms, user_tz).date() == to_user_local(b_ms, user_tz).date()


def is_today(ts_ms: int, now: int, user_tz: str) -> bool:
    return is_same_day(ts_ms, now, user_tz)


# ----------------- 提醒规则 ----------------
def effective_fire_time(record: ReminderRecord, user_tz: str) -> int:
    """全天提醒在当天零点触发，其余在设定时刻触发"""
    if record.reminder_all_day:
        return start_of_day_ms(record.reminder_at, user_tz)
    return record.reminder_at


def is_reminder_valid(record: ReminderRecord, now: int, user_tz: str) -> bool:
    # 当天的提醒以及未来的提醒都有效：会话可能跨过午夜，届时要展示第二天的提醒
    return is_today(record.reminder_at, now, user_tz) or record.reminder_at > now


def is_reminder_visible(record: ReminderRecord, now: int, user_tz: str) -> bool:
    # 只展示当天的提醒
    return is_today(record.reminder_at, now, user_tz) and (
        record.reminder_all_day or record.reminder_at <= now
    )


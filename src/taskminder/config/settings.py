import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from taskminder.logger import logger

load_dotenv()

__all__ = [
    "USER_TIMEZONE",
    "REMINDER_MAX_DIRECT_DELAY_MS", "REMINDER_REARM_INTERVAL_MS", "REMINDER_DEBOUNCE_MS",
    "TASKS_DB_PATH", "SNAPSHOT_POLL_SECONDS",
    "ADMIN_HTTP_ENABLED", "ADMIN_HTTP_HOST", "ADMIN_HTTP_PORT", "ADMIN_AUTH_TOKEN",
    "LOG_LEVEL", "LOG_FILE",
    "EngineConfig",
]


def _parse_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on", "y")


def _parse_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{name} 非法: {raw!r}, 已回退到 {default}")
        return default


def _parse_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"{name} 非法: {raw!r}, 已回退到 {default}")
        return default


# 用户时区，决定提醒的分组键以及“今天”的边界
USER_TIMEZONE = os.getenv("USER_TIMEZONE", "UTC")

# 提醒调度
# 超过该时长的提醒不直接挂定时器，而是交给周期性的重新挂载循环 (与浏览器 setTimeout 上限一致)
REMINDER_MAX_DIRECT_DELAY_MS = _parse_int("REMINDER_MAX_DIRECT_DELAY_MS", 2_147_483_647)
REMINDER_REARM_INTERVAL_MS = _parse_int("REMINDER_REARM_INTERVAL_MS", 60 * 60 * 1000)
REMINDER_DEBOUNCE_MS = _parse_int("REMINDER_DEBOUNCE_MS", 100)

# 任务数据源
TASKS_DB_PATH = os.getenv("TASKS_DB_PATH", "data/tasks.db")
SNAPSHOT_POLL_SECONDS = _parse_float("SNAPSHOT_POLL_SECONDS", 5.0)

# Admin API
ADMIN_HTTP_ENABLED = _parse_bool("ADMIN_HTTP_ENABLED", True)
ADMIN_HTTP_HOST = os.getenv("ADMIN_HTTP_HOST", "127.0.0.1")
ADMIN_HTTP_PORT = _parse_int("ADMIN_HTTP_PORT", 18080)
ADMIN_AUTH_TOKEN = os.getenv("ADMIN_AUTH_TOKEN", "")

# 日志
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_FILE = os.getenv("LOG_FILE", "logs/taskminder.log")


@dataclass
class EngineConfig:
    """单个提醒引擎实例的配置，默认值取自环境变量"""

    timezone: str = USER_TIMEZONE
    max_direct_delay_ms: int = REMINDER_MAX_DIRECT_DELAY_MS
    rearm_interval_ms: int = REMINDER_REARM_INTERVAL_MS
    debounce_ms: int = REMINDER_DEBOUNCE_MS

    def __post_init__(self) -> None:
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"未知的时区: {self.timezone}") from e
        if self.max_direct_delay_ms < 0:
            raise ValueError("max_direct_delay_ms 不能为负数")
        if self.rearm_interval_ms <= 0:
            raise ValueError("rearm_interval_ms 必须为正数")
        if self.debounce_ms < 0:
            raise ValueError("debounce_ms 不能为负数")

"""控制台通道：把提醒展示写入日志，声音提示用终端响铃代替"""

import sys
from typing import List, TextIO

from taskminder.channels.base import HostChannel
from taskminder.datamodel import BadgeConfig, DisplayGroup, NotificationConfig, ReminderRecord, Status
from taskminder.logger import logger
from taskminder.utils import bucket_label

__all__ = ["ConsoleChannel", "format_display"]


def _format_record(record: ReminderRecord) -> str:
    if record.status == Status.COMPLETE:
        return f"  [x] {record.title} (Completed)"
    return f"  [ ] {record.title} ({record.priority.value.lower()})"


def format_display(groups: List[DisplayGroup]) -> str:
    lines: List[str] = []
    for group in groups:
        lines.append(f"Remind me on {bucket_label(group.bucket_key)}")
        lines.extend(_format_record(r) for r in group.records)
    return "\n".join(lines)


class ConsoleChannel(HostChannel):
    def __init__(self, stream: TextIO | None = None, bell: bool = True) -> None:
        self.stream = stream or sys.stdout
        self.bell = bell
        self.badge: BadgeConfig = BadgeConfig(show=False)

    def render(self, groups: List[DisplayGroup]) -> None:
        if not groups:
            logger.info("任务提醒: 无")
            return
        logger.info("任务提醒:\n" + format_display(groups))

    def notify(self, config: NotificationConfig) -> None:
        if config.play_sound and self.bell:
            self.stream.write("\a")
            self.stream.flush()
        if config.show_popup:
            logger.info("新的任务提醒")

    def set_badge(self, badge: BadgeConfig) -> None:
        self.badge = badge
        if badge.show:
            logger.info(f"提醒角标: {badge.count if badge.show_count else ''}")
        else:
            logger.debug("提醒角标已清除")

    def dismissed(self, completed: List[ReminderRecord]) -> None:
        if completed:
            logger.info(f"关闭提醒，已完成 {len(completed)} 项")

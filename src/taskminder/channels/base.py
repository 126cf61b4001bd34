from abc import ABC, abstractmethod
from typing import List

from taskminder.datamodel import BadgeConfig, DisplayGroup, NotificationConfig, ReminderRecord
from taskminder.events import Bus, E
from taskminder.logger import logger

__all__ = ["HostChannel"]


class HostChannel(ABC):
    """渲染层与宿主通知的协作方，通过事件总线接收引擎信号"""

    def attach(self, bus: Bus) -> None:
        bus.on(E.DISPLAY_CHANGED, self._handle_display_changed)
        bus.on(E.DISPLAY_DISMISSED, self._handle_display_dismissed)
        bus.on(E.HOST_NOTIFY, self._handle_notify)
        bus.on(E.HOST_BADGE, self._handle_badge)
        logger.debug(f"宿主通道已挂载: {self.__class__.__name__}")

    def _handle_display_changed(self, groups: List[DisplayGroup]) -> None:
        self.render(groups)

    def _handle_display_dismissed(self, completed: List[ReminderRecord]) -> None:
        self.dismissed(completed)

    def _handle_notify(self, config: NotificationConfig) -> None:
        self.notify(config)

    def _handle_badge(self, badge: BadgeConfig) -> None:
        self.set_badge(badge)

    @abstractmethod
    def render(self, groups: List[DisplayGroup]) -> None:
        """展示当前的提醒分组，空列表表示没有需要展示的内容"""

    @abstractmethod
    def notify(self, config: NotificationConfig) -> None:
        pass

    @abstractmethod
    def set_badge(self, badge: BadgeConfig) -> None:
        pass

    def dismissed(self, completed: List[ReminderRecord]) -> None:
        pass

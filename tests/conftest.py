"""Shared fixtures: a manually advanced clock, a ready-made engine and a bus recorder."""

from __future__ import annotations

import heapq
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from taskminder.config.settings import EngineConfig
from taskminder.core.engine import ReminderEngine
from taskminder.datamodel import Priority, Status, Task
from taskminder.events import Bus, E
from taskminder.world.clock import Clock

SECOND = 1_000
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE
DEBOUNCE_MS = 100

# 2024-03-18 16:33:00 UTC
NOW = int(datetime(2024, 3, 18, 16, 33, tzinfo=timezone.utc).timestamp() * 1000)


class FakeTimer:
    def __init__(self, when: int, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock(Clock):
    """Timers only run when the test calls advance()."""

    def __init__(self, now: int = NOW) -> None:
        self._now = now
        self._seq = 0
        self._timers: List[Tuple[int, int, FakeTimer]] = []

    def now_ms(self) -> int:
        return self._now

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self._now + max(0, delay_ms), callback)
        heapq.heappush(self._timers, (timer.when, self._seq, timer))
        self._seq += 1
        return timer

    def advance(self, ms: int) -> None:
        target = self._now + ms
        while self._timers and self._timers[0][0] <= target:
            when, _, timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now = when
            timer.callback()
        self._now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._timers if not timer.cancelled)


class BusRecorder:
    EVENTS = (
        E.DISPLAY_CHANGED,
        E.DISPLAY_DISMISSED,
        E.HOST_NOTIFY,
        E.HOST_BADGE,
        E.REMINDER_FIRED,
        E.SNAPSHOT_APPLIED,
    )

    def __init__(self, bus: Bus) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        for name in self.EVENTS:
            bus.on(name, self._handler(name))

    def _handler(self, name: str) -> Callable[..., None]:
        def handle(**kwargs: Any) -> None:
            self.events.append((name, kwargs))

        return handle

    def of(self, name: str) -> List[Dict[str, Any]]:
        return [kwargs for event, kwargs in self.events if event == name]

    def clear(self) -> None:
        self.events.clear()


def make_task(
    task_id: str,
    at: Optional[int],
    *,
    title: Optional[str] = None,
    all_day: Optional[bool] = None,
    status: Status = Status.OPEN,
    priority: Priority = Priority.MEDIUM,
) -> Task:
    return Task(
        id=task_id,
        title=title or f"task {task_id}",
        priority=priority,
        status=status,
        reminder_at=at,
        reminder_all_day=all_day,
    )


def display_keys(engine: ReminderEngine) -> List[str]:
    return [group.bucket_key for group in engine.display]


def display_ids(engine: ReminderEngine) -> List[str]:
    return [record.id for record in engine.displayed_records()]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(
        timezone="UTC",
        max_direct_delay_ms=2_147_483_647,
        rearm_interval_ms=HOUR,
        debounce_ms=DEBOUNCE_MS,
    )


@pytest.fixture
def bus() -> Bus:
    return Bus()


@pytest.fixture
def recorder(bus: Bus) -> BusRecorder:
    return BusRecorder(bus)


@pytest.fixture
def engine(config: EngineConfig, clock: FakeClock, bus: Bus, recorder: BusRecorder) -> ReminderEngine:
    engine = ReminderEngine(config=config, clock=clock, bus=bus)
    yield engine
    engine.dispose()

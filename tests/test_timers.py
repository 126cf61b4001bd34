import pytest

from conftest import DEBOUNCE_MS, HOUR, MINUTE, NOW, FakeClock, display_ids, make_task
from taskminder.config.settings import EngineConfig
from taskminder.core.engine import ReminderEngine
from taskminder.core.timers import TimerController
from taskminder.datamodel import ReminderRecord, TimerState


@pytest.fixture
def fired():
    return []


@pytest.fixture
def withdrawn():
    return []


@pytest.fixture
def timers(clock, fired, withdrawn):
    config = EngineConfig(
        timezone="UTC",
        max_direct_delay_ms=HOUR,
        rearm_interval_ms=30 * MINUTE,
        debounce_ms=0,
    )
    return TimerController(clock, config, on_fire=fired.append, on_withdraw=withdrawn.append)


def rec(task_id, at, **kwargs):
    return ReminderRecord.from_task(make_task(task_id, at, **kwargs))


def test_arm_overdue_fires_without_timer(timers, clock, fired):
    record = rec("a", NOW - MINUTE)

    assert timers.arm(record) == TimerState.FIRED
    assert clock.pending == 0
    # overdue records are shown by the due query, not pushed
    assert fired == []


def test_arm_within_direct_delay_schedules(timers, clock, fired):
    record = rec("a", NOW + 10 * MINUTE)

    assert timers.arm(record) == TimerState.SCHEDULED
    clock.advance(10 * MINUTE - 1)
    assert fired == []

    clock.advance(1)
    assert fired == [record]
    assert record.timer_state == TimerState.FIRED
    assert timers.scheduled_count == 0


def test_zero_delay_still_goes_through_timer(timers, clock, fired):
    record = rec("a", NOW)

    assert timers.arm(record) == TimerState.SCHEDULED
    clock.advance(0)
    assert fired == [record]


def test_all_day_reminder_fires_at_start_of_day(timers, clock, fired):
    record = rec("a", NOW + 8 * HOUR, all_day=True)  # 2024-03-19, all day

    assert timers.arm(record) == TimerState.DEFERRED
    clock.advance(7 * HOUR + 27 * MINUTE - 1)
    assert record.timer_state == TimerState.SCHEDULED
    assert fired == []

    clock.advance(1)
    assert fired == [record]
    assert not timers.is_rearm_loop_running


def test_far_reminder_is_deferred_until_rearm_brings_it_in_range(timers, clock, fired):
    record = rec("a", NOW + 2 * HOUR)

    assert timers.arm(record) == TimerState.DEFERRED
    assert timers.is_rearm_loop_running
    assert timers.deferred_count == 1

    clock.advance(30 * MINUTE)
    assert record.timer_state == TimerState.DEFERRED
    assert timers.is_rearm_loop_running

    clock.advance(30 * MINUTE)
    assert record.timer_state == TimerState.SCHEDULED
    assert not timers.is_rearm_loop_running
    assert timers.deferred_count == 0

    clock.advance(HOUR)
    assert fired == [record]


def test_deferred_record_overdue_at_rearm_still_fires(clock, fired):
    # re-arm interval longer than the direct-delay window
    config = EngineConfig(
        timezone="UTC",
        max_direct_delay_ms=10 * MINUTE,
        rearm_interval_ms=HOUR,
        debounce_ms=0,
    )
    timers = TimerController(clock, config, on_fire=fired.append)
    record = rec("a", NOW + 30 * MINUTE)

    assert timers.arm(record) == TimerState.DEFERRED
    clock.advance(HOUR)

    assert fired == [record]
    assert record.timer_state == TimerState.FIRED
    assert timers.deferred_count == 0
    assert not timers.is_rearm_loop_running


def test_engine_shows_reminder_that_passed_while_deferred(clock, bus):
    config = EngineConfig(
        timezone="UTC",
        max_direct_delay_ms=10 * MINUTE,
        rearm_interval_ms=HOUR,
        debounce_ms=DEBOUNCE_MS,
    )
    engine = ReminderEngine(config=config, clock=clock, bus=bus)
    try:
        engine.start([make_task("a", NOW + 30 * MINUTE)])
        clock.advance(2 * HOUR)

        assert engine.is_open
        assert display_ids(engine) == ["a"]
    finally:
        engine.dispose()


def test_cancel_prevents_firing_and_withdraws(timers, clock, fired, withdrawn):
    record = rec("a", NOW + MINUTE)
    timers.arm(record)

    timers.cancel(record)
    clock.advance(HOUR)

    assert fired == []
    assert withdrawn == ["a"]
    assert record.timer_state == TimerState.IDLE


def test_rearm_loop_stops_when_last_deferred_record_is_cancelled(timers, clock):
    record = rec("a", NOW + 3 * HOUR)
    timers.arm(record)
    assert timers.is_rearm_loop_running

    timers.cancel(record)

    assert not timers.is_rearm_loop_running
    assert clock.pending == 0


def test_rearming_replaces_previous_timer(timers, clock, fired):
    old = rec("a", NOW + MINUTE)
    new = rec("a", NOW + 5 * MINUTE)
    timers.arm(old)

    timers.cancel(old)
    timers.arm(new)
    clock.advance(2 * MINUTE)
    assert fired == []

    clock.advance(3 * MINUTE)
    assert fired == [new]


def test_dispose_cancels_everything(timers, clock, fired):
    timers.arm(rec("a", NOW + MINUTE))
    timers.arm(rec("b", NOW + 5 * HOUR))

    timers.dispose()
    clock.advance(10 * HOUR)

    assert fired == []
    assert clock.pending == 0
    assert not timers.is_rearm_loop_running


def test_fake_clock_runs_timers_in_order():
    clock = FakeClock()
    calls = []
    clock.call_later(20, lambda: calls.append("b"))
    clock.call_later(10, lambda: calls.append("a"))
    clock.call_later(20, lambda: calls.append("c"))

    clock.advance(20)

    assert calls == ["a", "b", "c"]

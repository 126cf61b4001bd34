import asyncio

import pytest

import taskminder.world.sync as snapshot_sync
from conftest import DEBOUNCE_MS, MINUTE, NOW, make_task


class FakeSource:
    def __init__(self, snapshots, shutdown_event=None):
        self.snapshots = list(snapshots)
        self.shutdown_event = shutdown_event
        self.calls = 0

    async def get_open_tasks(self):
        self.calls += 1
        result = self.snapshots.pop(0)
        if not self.snapshots and self.shutdown_event is not None:
            self.shutdown_event.set()
        if isinstance(result, Exception):
            raise result
        return result


@pytest.mark.asyncio
async def test_first_poll_starts_engine(engine, clock):
    source = FakeSource([[make_task("a", NOW - MINUTE)]])

    assert await snapshot_sync._poll_once(engine, source, first=True)
    clock.advance(DEBOUNCE_MS)

    assert engine.get_status()["started"] is True
    assert engine.is_open


@pytest.mark.asyncio
async def test_failed_poll_is_reported(engine):
    source = FakeSource([OSError("db locked")])

    assert not await snapshot_sync._poll_once(engine, source, first=True)

    status = snapshot_sync.get_status()
    assert status["last_error"] == "db locked"
    assert status["last_poll_at_epoch"] is not None
    assert engine.get_status()["started"] is False


@pytest.mark.asyncio
async def test_main_loop_retries_start_after_failure(engine):
    shutdown_event = asyncio.Event()
    source = FakeSource(
        [OSError("db locked"), [make_task("a", NOW + MINUTE)], []],
        shutdown_event=shutdown_event,
    )

    await snapshot_sync.main_loop(engine, source, shutdown_event, poll_seconds=0.01)

    assert source.calls == 3
    assert engine.get_status()["started"] is True
    assert engine.get_status()["disposed"] is True
    assert "a" not in engine.registry
    assert snapshot_sync.get_status()["running"] is False

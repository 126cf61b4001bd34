import io

from conftest import DEBOUNCE_MS, MINUTE, NOW, make_task
from taskminder.channels.console import ConsoleChannel, format_display
from taskminder.datamodel import DisplayGroup, Priority, ReminderRecord, Status


def rec(task_id, at, **kwargs):
    return ReminderRecord.from_task(make_task(task_id, at, **kwargs))


def test_format_display():
    groups = [
        DisplayGroup("2024-03-18", [rec("a", NOW, title="Water plants", all_day=True)]),
        DisplayGroup("2024-03-18 16:33", [
            rec("b", NOW, title="Call Bob", priority=Priority.HIGH),
            rec("c", NOW, title="Stretch", status=Status.COMPLETE),
        ]),
    ]

    assert format_display(groups) == "\n".join([
        "Remind me on Mar 18, 2024",
        "  [ ] Water plants (medium)",
        "Remind me on Mar 18, 2024 - 16:33",
        "  [ ] Call Bob (high)",
        "  [x] Stretch (Completed)",
    ])


def test_console_channel_follows_engine_signals(engine, bus, clock):
    stream = io.StringIO()
    channel = ConsoleChannel(stream=stream)
    channel.attach(bus)

    engine.start([make_task("a", NOW - MINUTE)])
    clock.advance(DEBOUNCE_MS)

    assert stream.getvalue() == "\a"
    assert channel.badge.show and channel.badge.count == 1

    engine.set_view_focused(True)
    assert not channel.badge.show


def test_console_channel_without_bell(engine, bus, clock):
    stream = io.StringIO()
    ConsoleChannel(stream=stream, bell=False).attach(bus)

    engine.start([make_task("a", NOW - MINUTE)])
    clock.advance(DEBOUNCE_MS)
    engine.dismiss()

    assert stream.getvalue() == ""

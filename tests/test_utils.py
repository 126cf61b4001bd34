from datetime import datetime, timezone

from conftest import HOUR, MINUTE, NOW, make_task
from taskminder.datamodel import ReminderRecord
from taskminder.utils import (
    bucket_key,
    bucket_label,
    effective_fire_time,
    format_timestamp,
    is_reminder_valid,
    is_reminder_visible,
    start_of_day_ms,
)

DAY = 24 * HOUR
MIDNIGHT = int(datetime(2024, 3, 18, tzinfo=timezone.utc).timestamp() * 1000)


def record(at, all_day=False):
    return ReminderRecord.from_task(make_task("r", at, all_day=all_day))


def test_bucket_key_formats():
    assert bucket_key(record(NOW), "UTC") == "2024-03-18 16:33"
    assert bucket_key(record(NOW, all_day=True), "UTC") == "2024-03-18"
    # seconds are dropped, records within the same minute share a key
    assert bucket_key(record(NOW + 59_000), "UTC") == "2024-03-18 16:33"


def test_bucket_key_uses_user_timezone():
    assert bucket_key(record(NOW), "Asia/Shanghai") == "2024-03-19 00:33"
    assert format_timestamp(NOW, "America/New_York", include_time=False) == "2024-03-18"


def test_all_day_key_sorts_before_timed_keys_of_the_same_day():
    keys = [
        bucket_key(record(NOW + 2 * HOUR), "UTC"),
        bucket_key(record(NOW, all_day=True), "UTC"),
        bucket_key(record(NOW - DAY), "UTC"),
        bucket_key(record(MIDNIGHT), "UTC"),
    ]
    assert sorted(keys) == [
        "2024-03-17 16:33",
        "2024-03-18",
        "2024-03-18 00:00",
        "2024-03-18 18:33",
    ]


def test_bucket_label():
    assert bucket_label("2024-03-18 16:33") == "Mar 18, 2024 - 16:33"
    assert bucket_label("2024-03-18") == "Mar 18, 2024"


def test_effective_fire_time():
    assert effective_fire_time(record(NOW), "UTC") == NOW
    assert effective_fire_time(record(NOW, all_day=True), "UTC") == MIDNIGHT
    assert start_of_day_ms(NOW, "UTC") == MIDNIGHT


def test_validity():
    now = NOW
    assert is_reminder_valid(record(now - 5 * MINUTE), now, "UTC")
    assert is_reminder_valid(record(now + DAY), now, "UTC")
    assert is_reminder_valid(record(MIDNIGHT, all_day=True), now, "UTC")
    assert not is_reminder_valid(record(now - DAY), now, "UTC")


def test_visibility():
    now = NOW
    assert is_reminder_visible(record(now - MINUTE), now, "UTC")
    assert is_reminder_visible(record(now), now, "UTC")
    assert is_reminder_visible(record(now + HOUR, all_day=True), now, "UTC")
    assert not is_reminder_visible(record(now + MINUTE), now, "UTC")
    assert not is_reminder_visible(record(now + DAY, all_day=True), now, "UTC")


def test_due_boundary():
    now = NOW
    assert is_reminder_visible(record(now), now, "UTC")
    assert not is_reminder_visible(record(now + 1), now, "UTC")
    assert is_reminder_visible(record(MIDNIGHT, all_day=True), now, "UTC")
    # yesterday's all-day reminder is no longer registered
    assert not is_reminder_valid(record(MIDNIGHT - 1, all_day=True), now, "UTC")

"""提醒注册表

以分组键 (见 utils.bucket_key) 为键，保存按插入顺序排列的提醒记录。
不变式:
1. 记录存在于注册表中，当且仅当其状态不是 COMPLETE 且提醒有效 (当天或未来);
2. 同一记录最多出现在一个分组中;
3. 不保留空分组。
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from taskminder.datamodel import DisplayGroup, ReminderRecord, Status, TimerState
from taskminder.logger import logger
from taskminder.utils import bucket_key, is_reminder_valid, is_reminder_visible
from taskminder.core.timers import TimerController

__all__ = ["ReminderRegistry"]


class ReminderRegistry:
    def __init__(self, timers: TimerController) -> None:
        self.timers = timers
        self._buckets: Dict[str, List[ReminderRecord]] = {}
        self._index: Dict[str, str] = {}  # record id -> bucket key

    @property
    def timezone(self) -> str:
        return self.timers.config.timezone

    def _now(self) -> int:
        return self.timers.clock.now_ms()

    def key_of(self, record: ReminderRecord) -> str:
        return bucket_key(record, self.timezone)

    # ------------------------------------------------------------------
    # 注册 / 注销 / 更新
    # ------------------------------------------------------------------

    def register(self, record: ReminderRecord) -> bool:
        if record.id in self._index:
            return False
        if record.status == Status.COMPLETE:
            return False
        if not is_reminder_valid(record, self._now(), self.timezone):
            return False

        key = self.key_of(record)
        self._buckets.setdefault(key, []).append(record)
        self._index[record.id] = key
        self.timers.arm(record)
        logger.debug(f"提醒已注册: id={record.id}, key={key}, state={record.timer_state.value}")
        return True

    def unregister(self, record_id: str) -> Optional[ReminderRecord]:
        key = self._index.pop(record_id, None)
        if key is None:
            return None
        removed = self._pop_from_bucket(key, record_id)
        self.timers.cancel(removed)
        logger.debug(f"提醒已注销: id={record_id}, key={key}")
        return removed

    def update(self, record: ReminderRecord) -> bool:
        """用新记录替换已注册的同 id 记录；未注册时按 register 处理。返回记录是否仍在注册表中"""
        prev_key = self._index.get(record.id)
        if prev_key is None:
            return self.register(record)

        prev_bucket = self._buckets[prev_key]
        prev_index = self._position(prev_bucket, record.id)
        self.timers.cancel(prev_bucket[prev_index])

        if record.status == Status.COMPLETE or not is_reminder_valid(record, self._now(), self.timezone):
            self._pop_from_bucket(prev_key, record.id)
            del self._index[record.id]
            logger.debug(f"提醒已移除: id={record.id}, status={record.status.value}")
            return False

        self.timers.arm(record)
        new_key = self.key_of(record)
        if new_key == prev_key:
            # 分组键不变时保持原位置
            prev_bucket[prev_index] = record
        else:
            self._pop_from_bucket(prev_key, record.id)
            self._buckets.setdefault(new_key, []).append(record)
            self._index[record.id] = new_key
        logger.debug(f"提醒已更新: id={record.id}, key={prev_key} -> {new_key}")
        return True

    def _position(self, bucket: List[ReminderRecord], record_id: str) -> int:
        for i, item in enumerate(bucket):
            if item.id == record_id:
                return i
        raise KeyError(record_id)

    def _pop_from_bucket(self, key: str, record_id: str) -> ReminderRecord:
        bucket = self._buckets[key]
        removed = bucket.pop(self._position(bucket, record_id))
        if not bucket:
            del self._buckets[key]
        return removed

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def due_groups(self, exclude: Iterable[str] = ()) -> List[DisplayGroup]:
        """按分组键升序返回当前应展示且已到期的提醒"""
        excluded = set(exclude)
        now = self._now()
        groups: List[DisplayGroup] = []
        for key in sorted(self._buckets):
            bucket = self._buckets[key]
            # 同组记录的日期一致，只需检查第一条
            if not is_reminder_visible(bucket[0], now, self.timezone):
                continue
            fired = [
                r for r in bucket
                if r.timer_state == TimerState.FIRED and r.id not in excluded
            ]
            if fired:
                groups.append(DisplayGroup(bucket_key=key, records=fired))
        return groups

    def get(self, record_id: str) -> Optional[ReminderRecord]:
        key = self._index.get(record_id)
        if key is None:
            return None
        bucket = self._buckets[key]
        return bucket[self._position(bucket, record_id)]

    def bucket_keys(self) -> List[str]:
        return list(self._buckets)

    def bucket(self, key: str) -> List[ReminderRecord]:
        return list(self._buckets.get(key, []))

    def records(self) -> Iterator[ReminderRecord]:
        for bucket in self._buckets.values():
            yield from bucket

    def clear(self) -> None:
        for record in list(self.records()):
            self.timers.cancel(record)
        self._buckets.clear()
        self._index.clear()

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._index

    def __len__(self) -> int:
        return len(self._index)

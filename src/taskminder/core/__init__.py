from taskminder.core.timers import TimerController
from taskminder.core.registry import ReminderRegistry
from taskminder.core.coalescer import BatchDebouncer, NotificationCoalescer
from taskminder.core.reconciler import SnapshotDiff, SyncReconciler, diff_snapshots
from taskminder.core.engine import ReminderEngine

__all__ = [
    "TimerController", "ReminderRegistry", "BatchDebouncer", "NotificationCoalescer",
    "SnapshotDiff", "SyncReconciler", "diff_snapshots", "ReminderEngine",
]

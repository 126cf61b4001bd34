import uuid
from typing import Optional

import taskminder.storage.db_config as db_config
from taskminder.datamodel import Priority, Status, Task
from taskminder.logger import logger

__all__ = [
    "create_task", "get_task", "get_open_tasks",
    "update_task_status", "update_task_reminder", "delete_task",
    "TaskStore",
]

_COLUMNS = "task_id, title, priority, status, reminder_at, reminder_all_day"


def _ensure_conn():
    if db_config.conn is None:
        raise RuntimeError("数据库未初始化，请先调用 init_db()")


def _row_to_task(row) -> Task:
    return Task(
        id=row[0],
        title=row[1],
        priority=Priority(row[2]),
        status=Status(row[3]),
        reminder_at=row[4],
        reminder_all_day=bool(row[5]) if row[5] is not None else None,
    )


async def create_task(
    title: str,
    priority: Priority = Priority.MEDIUM,
    reminder_at: Optional[int] = None,
    reminder_all_day: Optional[bool] = None,
    task_id: Optional[str] = None,
) -> Task:
    """创建任务"""
    _ensure_conn()
    task = Task(
        id=task_id or str(uuid.uuid4()),
        title=title,
        priority=priority,
        status=Status.OPEN,
        reminder_at=reminder_at,
        reminder_all_day=reminder_all_day,
    )
    await db_config.conn.execute(
        f"INSERT INTO tasks ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
        (
            task.id, task.title, task.priority.value, task.status.value, task.reminder_at,
            int(task.reminder_all_day) if task.reminder_all_day is not None else None,
        ),
    )
    await db_config.conn.commit()
    logger.trace(f"创建任务: task_id={task.id}, title={title}, reminder_at={reminder_at}")
    return task


async def get_task(task_id: str) -> Optional[Task]:
    _ensure_conn()
    async with db_config.conn.execute(
        f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?", (task_id,)
    ) as cursor:
        row = await cursor.fetchone()
        return _row_to_task(row) if row else None


async def get_open_tasks() -> list[Task]:
    """获取所有未完成的任务，按创建顺序排列"""
    _ensure_conn()
    async with db_config.conn.execute(
        f"SELECT {_COLUMNS} FROM tasks WHERE status = ? ORDER BY rowid",
        (Status.OPEN.value,),
    ) as cursor:
        rows = await cursor.fetchall()
        return [_row_to_task(row) for row in rows]


async def update_task_status(task_id: str, status: Status) -> None:
    _ensure_conn()
    cursor = await db_config.conn.execute(
        "UPDATE tasks SET status = ?, updated_at_utc = CURRENT_TIMESTAMP WHERE task_id = ?",
        (status.value, task_id),
    )
    await db_config.conn.commit()
    if cursor.rowcount == 0:
        raise KeyError(f"任务不存在: {task_id}")
    logger.trace(f"更新任务状态: task_id={task_id}, status={status.value}")


async def update_task_reminder(task_id: str, reminder_at: Optional[int], reminder_all_day: Optional[bool]) -> None:
    _ensure_conn()
    cursor = await db_config.conn.execute(
        "UPDATE tasks SET reminder_at = ?, reminder_all_day = ?, updated_at_utc = CURRENT_TIMESTAMP WHERE task_id = ?",
        (reminder_at, int(reminder_all_day) if reminder_all_day is not None else None, task_id),
    )
    await db_config.conn.commit()
    if cursor.rowcount == 0:
        raise KeyError(f"任务不存在: {task_id}")
    logger.trace(f"更新任务提醒: task_id={task_id}, reminder_at={reminder_at}, all_day={reminder_all_day}")


async def delete_task(task_id: str) -> None:
    _ensure_conn()
    await db_config.conn.execute("DELETE FROM tasks WHERE task_id = ?", (task_id,))
    await db_config.conn.commit()
    logger.trace(f"删除任务: task_id={task_id}")


class TaskStore:
    """供引擎使用的数据层适配器"""

    async def get_open_tasks(self) -> list[Task]:
        return await get_open_tasks()

    async def update_task_status(self, task_id: str, status: Status) -> None:
        await update_task_status(task_id, status)

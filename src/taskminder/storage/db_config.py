import os

import aiosqlite

from taskminder.logger import logger


conn: aiosqlite.Connection | None = None


_INIT_SQL_V1 = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id            TEXT PRIMARY KEY,
    title              TEXT NOT NULL,
    priority           TEXT NOT NULL DEFAULT 'MEDIUM',
    status             TEXT NOT NULL DEFAULT 'OPEN',
    reminder_at        INTEGER DEFAULT NULL,
    reminder_all_day   INTEGER DEFAULT NULL,
    created_at_utc     TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at_utc     TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks (status);
"""


async def init_db(db_path: str) -> None:
    db_dir = os.path.dirname(db_path)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir, exist_ok=True)
    global conn
    conn = await aiosqlite.connect(db_path)

    async with conn.execute("PRAGMA user_version") as cursor:
        row = await cursor.fetchone()
        user_version = row[0]

    if user_version == 0:
        await conn.executescript(_INIT_SQL_V1)
        await conn.execute("PRAGMA user_version = 1")

    # 数据库升级逻辑可以在这里继续添加
    await conn.commit()
    logger.info(f"任务数据库已就绪: {db_path}")


async def close_db() -> None:
    global conn
    if conn is not None:
        await conn.close()
        conn = None


__all__ = ["conn", "init_db", "close_db"]

from taskminder.logger import setup_logging, logger
from taskminder.config.settings import *
setup_logging(
    log_level=LOG_LEVEL,
    log_file=LOG_FILE,
    console_level="INFO",
)

import asyncio
import signal

from taskminder.admin.http_server import main_loop as admin_http_main
from taskminder.channels.console import ConsoleChannel
from taskminder.core.actions import ReminderActions
from taskminder.core.engine import ReminderEngine, configure_engine
from taskminder.events import bus
import taskminder.storage.db_config as db_config
from taskminder.storage.task import TaskStore
import taskminder.world.sync as snapshot_sync

shutdown_event = asyncio.Event()


def signal_handler(sig, frame):
    """处理 SIGINT (Ctrl+C) / SIGTERM 信号"""
    logger.info("收到中断信号,正在依次关闭组件...")
    shutdown_event.set()


async def main():
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    engine = ReminderEngine(config=EngineConfig(), bus=bus)
    configure_engine(engine)
    ConsoleChannel().attach(bus)

    store = TaskStore()
    actions = ReminderActions(engine, store)

    await db_config.init_db(TASKS_DB_PATH)

    try:
        tasks = [
            snapshot_sync.main_loop(engine, store, shutdown_event, poll_seconds=SNAPSHOT_POLL_SECONDS),
        ]

        if ADMIN_HTTP_ENABLED:
            tasks.append(admin_http_main(shutdown_event, engine, actions))
        else:
            logger.warning("Admin HTTP 服务已禁用")

        await asyncio.gather(*tasks)
    finally:
        engine.dispose()
        logger.info("关闭数据库连接...")
        await db_config.close_db()
        logger.info("taskminder 已关闭")


def run() -> None:
    logger.info("启动 taskminder...")
    asyncio.run(main())


if __name__ == "__main__":
    run()

from __future__ import annotations

import asyncio
import time

import uvicorn

from taskminder.admin.app import create_app
from taskminder.admin.schemas import RuntimeControl
from taskminder.config.settings import ADMIN_HTTP_HOST, ADMIN_HTTP_PORT
from taskminder.core.actions import ReminderActions
from taskminder.core.engine import ReminderEngine
from taskminder.logger import logger


def build_server(control: RuntimeControl, engine: ReminderEngine, actions: ReminderActions) -> uvicorn.Server:
    config = uvicorn.Config(
        create_app(control, engine, actions),
        host=ADMIN_HTTP_HOST,
        port=ADMIN_HTTP_PORT,
        # 日志已由 taskminder.logger 转接到 loguru，不让 uvicorn 覆盖
        log_config=None,
        access_log=False,
    )
    server = uvicorn.Server(config)
    # 信号由 main.py 统一处理
    server.install_signal_handlers = lambda: None
    return server


async def main_loop(
    shutdown_event: asyncio.Event,
    engine: ReminderEngine,
    actions: ReminderActions,
) -> None:
    control = RuntimeControl(shutdown_event=shutdown_event, started_at=time.time())
    server = build_server(control, engine, actions)

    async def stop_on_shutdown() -> None:
        await shutdown_event.wait()
        server.should_exit = True

    stopper = asyncio.create_task(stop_on_shutdown())
    logger.info(f"Admin HTTP 服务监听 http://{ADMIN_HTTP_HOST}:{ADMIN_HTTP_PORT}")
    try:
        await server.serve()
    finally:
        stopper.cancel()
        await asyncio.gather(stopper, return_exceptions=True)
        logger.info("Admin HTTP 服务已停止")

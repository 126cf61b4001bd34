"""Admin HTTP API

公开接口只有健康检查；其余接口挂在受令牌保护的 /api/v1 路由下，
供外部渲染层读取提醒展示、执行完成/撤销操作、上报视图焦点。
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, TypeVar

from fastapi import APIRouter, Depends, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from taskminder.admin.auth import token_guard
from taskminder.admin.schemas import ActionResult, RuntimeControl, ViewFocusRequest
from taskminder.config.settings import ADMIN_AUTH_TOKEN
from taskminder.core.actions import ReminderActions
from taskminder.core.engine import ReminderEngine
from taskminder.logger import logger
from taskminder.metrics import runtime_metrics
from taskminder.utils import bucket_label
from taskminder.world import sync as snapshot_sync

T = TypeVar("T")


def _display_payload(engine: ReminderEngine) -> dict[str, Any]:
    groups = []
    for group in engine.display:
        entry = group.to_dict()
        entry["label"] = bucket_label(group.bucket_key)
        groups.append(entry)
    return {"open": engine.is_open, "groups": groups, "bulkAction": engine.bulk_action}


async def _run_action(pending: Awaitable[T]) -> T:
    """把数据层错误映射为 HTTP 错误：任务不存在 404，持久化失败 502"""
    try:
        return await pending
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"任务不存在: {e}")
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"任务状态保存失败: {e}")


async def _single_action(task_id: str, pending: Awaitable[bool]) -> ActionResult:
    if not await _run_action(pending):
        raise HTTPException(status_code=404, detail=f"任务不存在: {task_id}")
    return ActionResult(task_ids=[task_id])


def create_app(
    control: RuntimeControl,
    engine: ReminderEngine,
    actions: ReminderActions,
    auth_token: str = ADMIN_AUTH_TOKEN,
) -> FastAPI:
    if not auth_token:
        logger.warning("未配置 ADMIN_AUTH_TOKEN，管理 API 将不可访问")

    app = FastAPI(title="taskminder Admin API", version="1.0.0")
    api = APIRouter(prefix="/api/v1", dependencies=[Depends(token_guard(auth_token))])

    @app.get("/healthz", include_in_schema=False)
    async def healthz() -> PlainTextResponse:
        return PlainTextResponse("ok")

    @app.get("/api/v1/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "now_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "uptime_seconds": max(0.0, time.time() - control.started_at),
            "shutdown_requested": control.shutdown_event.is_set(),
        }

    @api.get("/metrics")
    async def metrics() -> dict[str, Any]:
        return {
            "runtime": runtime_metrics.snapshot(),
            "components": {
                "engine": engine.get_status(),
                "sync": snapshot_sync.get_status(),
            },
            "active_tasks": len(asyncio.all_tasks()),
        }

    @api.get("/reminders")
    async def reminders() -> dict[str, Any]:
        return _display_payload(engine)

    @api.post("/reminders/dismiss")
    async def dismiss() -> dict[str, Any]:
        dismissed = engine.dismiss()
        return {"dismissed": [r.id for r in dismissed], **_display_payload(engine)}

    @api.post("/reminders/complete-all")
    async def complete_all() -> ActionResult:
        return ActionResult(task_ids=await _run_action(actions.complete_all()))

    @api.post("/reminders/undo-all")
    async def undo_all() -> ActionResult:
        return ActionResult(task_ids=await _run_action(actions.undo_all()))

    @api.post("/reminders/{task_id}/complete")
    async def complete(task_id: str) -> ActionResult:
        return await _single_action(task_id, actions.complete(task_id))

    @api.post("/reminders/{task_id}/undo")
    async def undo(task_id: str) -> ActionResult:
        return await _single_action(task_id, actions.undo_complete(task_id))

    @api.post("/view-focus")
    async def view_focus(payload: ViewFocusRequest) -> dict[str, Any]:
        engine.set_view_focused(payload.focused)
        return {"focused": payload.focused, "badgeRaised": engine.coalescer.badge_raised}

    app.include_router(api)
    return app

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic import BaseModel, Field


@dataclass
class RuntimeControl:
    shutdown_event: asyncio.Event
    started_at: float


class ViewFocusRequest(BaseModel):
    focused: bool = Field(default=True)


class ActionResult(BaseModel):
    ok: bool = True
    task_ids: list[str] = Field(default_factory=list)

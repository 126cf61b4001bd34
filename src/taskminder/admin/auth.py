"""Admin API 鉴权：静态令牌，支持 Authorization: Bearer 与 X-Taskminder-Token 两种请求头"""

from __future__ import annotations

import hmac
from typing import Callable

from fastapi import HTTPException, Request

TOKEN_HEADER = "X-Taskminder-Token"


def extract_token(request: Request) -> str | None:
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.headers.get(TOKEN_HEADER, "").strip() or None


def token_guard(expected: str) -> Callable[[Request], None]:
    """生成 FastAPI 依赖；未配置令牌时所有受保护的接口返回 503"""

    def guard(request: Request) -> None:
        if not expected:
            raise HTTPException(status_code=503, detail="ADMIN_AUTH_TOKEN 未配置，管理 API 已停用")
        token = extract_token(request)
        if token is None or not hmac.compare_digest(token.encode(), expected.encode()):
            raise HTTPException(status_code=401, detail="令牌无效", headers={"WWW-Authenticate": "Bearer"})

    return guard


__all__ = ["TOKEN_HEADER", "extract_token", "token_guard"]

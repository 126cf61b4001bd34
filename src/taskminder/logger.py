"""日志模块

级别支持: TRACE/DEBUG/INFO/WARNING/ERROR/CRITICAL (兼容别名 FATAL -> CRITICAL)

使用：进程入口调用一次 setup_logging，其余模块直接 from taskminder.logger import logger。
未调用 setup_logging 时沿用 loguru 默认的 stderr 输出，测试和嵌入使用时无需额外配置。
uvicorn 等使用标准库 logging 的组件会被转接到 loguru，统一输出格式与文件。
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Literal, Optional, Union

from loguru import logger

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "FATAL"]

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level:<8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}"

ROTATION = "10 MB"
RETENTION = "14 days"
ERROR_RETENTION = "60 days"

# 转接到 loguru 的标准库 logger
BRIDGED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "aiosqlite")


def _level_name(level: Union[str, LogLevel]) -> str:
    name = str(level).upper()
    return "CRITICAL" if name == "FATAL" else name


class _StdlibBridge(logging.Handler):
    """把标准库 logging 记录转发给 loguru，保留原始级别与调用位置"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Union[str, int] = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _bridge_stdlib(level: str) -> None:
    # 标准库没有 TRACE 级别
    std_level = level if level in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL") else "DEBUG"
    bridge = _StdlibBridge()
    for name in BRIDGED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [bridge]
        std_logger.setLevel(std_level)
        std_logger.propagate = False


def _sinks(log_level: str, log_file: Optional[Path], console_level: str) -> list[dict]:
    sinks: list[dict] = [
        {"sink": sys.stderr, "level": console_level, "format": CONSOLE_FORMAT, "colorize": True},
    ]
    if log_file is None:
        return sinks

    log_file.parent.mkdir(parents=True, exist_ok=True)
    error_file = log_file.with_name(f"{log_file.stem}_error{log_file.suffix}")
    for path, level, retention in (
        (log_file, log_level, RETENTION),
        (error_file, "ERROR", ERROR_RETENTION),
    ):
        sinks.append({
            "sink": path,
            "level": level,
            "format": FILE_FORMAT,
            "rotation": ROTATION,
            "retention": retention,
            "compression": "zip",
            "encoding": "utf-8",
        })
    return sinks


def setup_logging(
    log_level: LogLevel,
    log_file: Union[str, Path, None],
    console_level: LogLevel = "INFO",
) -> None:
    """log_file 为空时只输出到控制台"""
    file_level = _level_name(log_level)
    logger.configure(
        handlers=_sinks(file_level, Path(log_file) if log_file else None, _level_name(console_level))
    )
    _bridge_stdlib(file_level)


__all__ = ["setup_logging", "logger", "LogLevel"]

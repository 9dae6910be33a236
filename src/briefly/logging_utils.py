"""Runtime logging helpers."""

from __future__ import annotations

import sys
from contextvars import ContextVar, Token
from typing import Literal

import loguru
from loguru import logger

LogProfile = Literal["default", "server"]

_PROFILE_FORMATS: dict[LogProfile, str] = {
    "server": "{time:HH:mm:ss.SSS} | {level:<6} | {extra[run_id]} | {message}",
    "default": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {extra[run_id]} | {message}",
}
_CONFIGURED_PROFILE: LogProfile | None = None

_current_run: ContextVar[str] = ContextVar("briefly_run_id", default="-")


def current_run() -> str:
    return _current_run.get()


def bind_run(run_id: str) -> Token[str]:
    """Attach *run_id* to log records emitted by the current task."""
    return _current_run.set(run_id)


def reset_run(token: Token[str]) -> None:
    _current_run.reset(token)


def configure_logging(*, profile: LogProfile = "default", level: str = "INFO") -> None:
    """Configure process-level logging once."""

    def inject_context(record: loguru.Record) -> None:
        record["extra"]["run_id"] = current_run()

    global _CONFIGURED_PROFILE
    if profile == _CONFIGURED_PROFILE:
        return

    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=_PROFILE_FORMATS[profile],
        backtrace=False,
        diagnose=False,
    )
    logger.configure(patcher=inject_context)
    _CONFIGURED_PROFILE = profile

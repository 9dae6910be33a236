"""Helpers around republic's tool primitives."""

from __future__ import annotations

import inspect
from typing import Any

from republic import Tool, ToolContext

OWNER_META_KEY = "owner_id"


def run_context(run_id: str, owner_id: str | None = None) -> ToolContext:
    """Build the per-run context handed to tools that ask for one."""
    meta = {OWNER_META_KEY: owner_id} if owner_id else {}
    return ToolContext(tape=None, run_id=run_id, meta=meta)


def context_owner(context: ToolContext | None) -> str | None:
    if context is None:
        return None
    owner = (getattr(context, "meta", None) or {}).get(OWNER_META_KEY)
    return owner if isinstance(owner, str) and owner else None


async def run_tool(tool: Tool, kwargs: dict[str, Any], context: ToolContext | None = None) -> Any:
    """Run *tool* and await whatever it hands back; handlers may be async."""
    result = tool.run(context=context, **kwargs) if tool.context else tool.run(**kwargs)
    while inspect.isawaitable(result):
        result = await result
    return result

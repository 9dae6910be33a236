"""Memory save tool factory."""

from __future__ import annotations

from republic import Tool, ToolContext, tool_from_model

from briefly.memory.store import MemoryStore
from briefly.tools.base import context_owner
from briefly.tools.factories.shared import MemorySaveInput


def create_memory_save_tool(store: MemoryStore) -> Tool:
    """Create the explicit "remember this" tool; the owner comes from the run context."""

    async def _handler(params: MemorySaveInput, context: ToolContext | None = None) -> str:
        owner_id = context_owner(context)
        if not owner_id:
            return "error: memory is unavailable for anonymous conversations"
        record = await store.save(owner_id, params.takeaway)
        if record is None:
            return "error: the takeaway could not be saved"
        return "saved"

    return tool_from_model(
        MemorySaveInput,
        _handler,
        name="memory.save",
        description=(
            "Saves a key takeaway from the conversation to long-term memory to improve future "
            "interactions. Use this to remember user preferences or durable context."
        ),
        context=True,
    )

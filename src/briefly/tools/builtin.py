"""Built-in tool registration."""

from __future__ import annotations

from briefly.memory.store import MemoryStore
from briefly.providers import ImageBackend
from briefly.tools.factories import (
    WebFetcher,
    create_clock_tool,
    create_image_tool,
    create_memory_save_tool,
    create_web_fetch_tool,
)
from briefly.tools.registry import ToolRegistry


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    image_backend: ImageBackend | None,
    web_fetcher: WebFetcher | None = None,
    memory_store: MemoryStore | None = None,
) -> None:
    """Register the shipped tools. Image and memory tools need their backends."""
    registry.add(create_clock_tool(), detail="Static location table; unknown places get an apology, never an error.")
    registry.add(
        create_web_fetch_tool(web_fetcher),
        detail="Bounded timeout; strips scripts, navigation and footers; failures come back as text.",
    )
    if image_backend is not None:
        registry.add(
            create_image_tool(image_backend),
            detail="Appends style and aspect ratio modifiers; raises when the backend returns no media.",
        )
    if memory_store is not None and memory_store.available:
        registry.add(create_memory_save_tool(memory_store), detail="Owner-scoped; failures are swallowed.")

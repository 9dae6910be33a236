"""Serialize orchestrator events onto a line-delimited wire channel."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from briefly.streaming.events import Error, StreamEvent, TextDelta, ToolResult

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred while generating the response."
MISSING_TERMINAL_MESSAGE = "The response stream ended before completion."
NDJSON_MEDIA_TYPE = "application/x-ndjson"


@dataclass
class CollectedResponse:
    """A whole run folded into one value, for non-streaming callers."""

    text: str = ""
    tool_results: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.text, "tool_results": self.tool_results, "error": self.error}


class StreamEmitter:
    """Enforces the stream contract on top of any event source.

    Events pass through in order and unbuffered. Exactly one terminal event
    closes the stream: later events are dropped, a failing source becomes a
    single ``Error``, and a source that stops early gets one synthesized.
    Closing the emitter closes the source.
    """

    async def events(self, source: AsyncIterator[StreamEvent]) -> AsyncIterator[StreamEvent]:
        terminated = False
        failed = False
        try:
            async for event in source:
                yield event
                if event.terminal:
                    terminated = True
                    break
        except Exception:
            logger.exception("stream.source.error")
            failed = True
        finally:
            await _aclose(source)

        if failed:
            yield Error(UNEXPECTED_ERROR_MESSAGE)
        elif not terminated:
            logger.warning("stream.source.no_terminal")
            yield Error(MISSING_TERMINAL_MESSAGE)

    async def frames(self, source: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
        """Yield one NDJSON line per event."""
        guarded = self.events(source)
        try:
            async for event in guarded:
                yield event.encode()
        finally:
            await guarded.aclose()

    async def collect(self, source: AsyncIterator[StreamEvent]) -> CollectedResponse:
        collected = CollectedResponse()
        parts: list[str] = []
        async for event in self.events(source):
            if isinstance(event, TextDelta):
                parts.append(event.text)
            elif isinstance(event, ToolResult):
                collected.tool_results.append(event.payload())
            elif isinstance(event, Error):
                collected.error = event.message
        collected.text = "".join(parts)
        return collected


async def _aclose(source: AsyncIterator[StreamEvent]) -> None:
    aclose = getattr(source, "aclose", None)
    if aclose is not None:
        await aclose()

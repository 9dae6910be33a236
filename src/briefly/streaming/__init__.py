"""Streaming protocol: event types and the wire emitter."""

from briefly.streaming.emitter import NDJSON_MEDIA_TYPE, CollectedResponse, StreamEmitter
from briefly.streaming.events import Done, Error, StreamEvent, TextDelta, ToolInvoked, ToolResult

__all__ = [
    "NDJSON_MEDIA_TYPE",
    "CollectedResponse",
    "Done",
    "Error",
    "StreamEmitter",
    "StreamEvent",
    "TextDelta",
    "ToolInvoked",
    "ToolResult",
]

"""Stream event models and wire framing."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, ClassVar


def _jsonable(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value


@dataclass(frozen=True)
class StreamEvent:
    """Base class for one unit of the incremental response protocol."""

    type: ClassVar[str] = "event"
    terminal: ClassVar[bool] = False

    def payload(self) -> dict[str, Any]:
        return {}

    def to_frame(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload()}

    def encode(self) -> str:
        return json.dumps(self.to_frame(), ensure_ascii=False, default=str) + "\n"


@dataclass(frozen=True)
class TextDelta(StreamEvent):
    text: str
    type: ClassVar[str] = "text"

    def payload(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class ToolInvoked(StreamEvent):
    name: str
    input: dict[str, Any]
    type: ClassVar[str] = "tool_invoked"

    def payload(self) -> dict[str, Any]:
        return {"name": self.name, "input": _jsonable(self.input)}


@dataclass(frozen=True)
class ToolResult(StreamEvent):
    name: str
    output: Any
    type: ClassVar[str] = "tool_result"

    def payload(self) -> dict[str, Any]:
        return {"name": self.name, "output": _jsonable(self.output)}


@dataclass(frozen=True)
class Error(StreamEvent):
    message: str
    type: ClassVar[str] = "error"
    terminal: ClassVar[bool] = True

    def payload(self) -> dict[str, Any]:
        return {"message": self.message}


@dataclass(frozen=True)
class Done(StreamEvent):
    type: ClassVar[str] = "done"
    terminal: ClassVar[bool] = True

"""Shared value types for the agent core."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["user", "assistant"]
MessageRole = Literal["user", "assistant", "tool"]

USER_ROLE: Role = "user"
ASSISTANT_ROLE: Role = "assistant"


@dataclass(frozen=True)
class Turn:
    """One message of a conversation.

    Attachments are opaque media references (URLs or ``data:`` URIs) and are
    passed through untouched.
    """

    role: str
    content: str
    attachments: tuple[str, ...] = ()


@dataclass(frozen=True)
class ChatRequest:
    """Inbound call: the full history plus an optional owner id."""

    history: Sequence[Turn]
    owner_id: str | None = None


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ModelMessage:
    """Provider-neutral message sent to a model provider."""

    role: MessageRole
    content: str
    attachments: tuple[str, ...] = ()
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class ModelResponse:
    """One model answer: optional text plus zero or more tool calls."""

    text: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

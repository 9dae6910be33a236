"""Republic integration: the model provider adapter."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from typing import Any

from loguru import logger
from republic import LLM, Tool

from briefly.config import Settings
from briefly.errors import ProviderError
from briefly.types import ModelMessage, ModelResponse, ToolCall


def build_llm(settings: Settings) -> LLM:
    """Build the Republic LLM client configured for Briefly."""

    return LLM(
        settings.require_model(),
        api_key=settings.resolved_api_key,
        api_base=settings.api_base,
    )


def to_openai_messages(system_prompt: str, messages: Sequence[ModelMessage]) -> list[dict[str, Any]]:
    rendered: list[dict[str, Any]] = []
    if system_prompt:
        rendered.append({"role": "system", "content": system_prompt})
    for message in messages:
        if message.role == "tool":
            rendered.append({
                "role": "tool",
                "tool_call_id": message.tool_call_id,
                "content": message.content,
            })
            continue
        entry: dict[str, Any] = {"role": message.role, "content": _render_content(message)}
        if message.tool_calls:
            entry["content"] = message.content or None
            entry["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.arguments, ensure_ascii=False)},
                }
                for call in message.tool_calls
            ]
        rendered.append(entry)
    return rendered


def _render_content(message: ModelMessage) -> str | list[dict[str, Any]]:
    if not message.attachments or message.role != "user":
        return message.content
    parts: list[dict[str, Any]] = []
    if message.content:
        parts.append({"type": "text", "text": message.content})
    parts.extend({"type": "image_url", "image_url": {"url": ref}} for ref in message.attachments)
    return parts


def parse_response(response: Any) -> ModelResponse:
    """Read an OpenAI-style chat completion into a ``ModelResponse``."""
    if isinstance(response, str):
        return ModelResponse(text=response)
    choices = getattr(response, "choices", None)
    if not choices:
        return ModelResponse()
    message = getattr(choices[0], "message", None)
    if message is None:
        return ModelResponse()

    text = getattr(message, "content", None)
    calls: list[ToolCall] = []
    for idx, tool_call in enumerate(getattr(message, "tool_calls", None) or []):
        function = getattr(tool_call, "function", None)
        if function is None:
            continue
        name = getattr(function, "name", "") or ""
        if not name:
            continue
        call_id = getattr(tool_call, "id", None) or f"call_{idx}"
        calls.append(ToolCall(id=call_id, name=name, arguments=_parse_arguments(getattr(function, "arguments", None))))
    return ModelResponse(text=text if isinstance(text, str) else None, tool_calls=tuple(calls))


def _parse_arguments(arguments: object) -> dict[str, Any]:
    if isinstance(arguments, dict):
        return arguments
    if not isinstance(arguments, str) or not arguments.strip():
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError:
        logger.warning("model.tool_call.bad_arguments raw={!r}", arguments[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}


class RepublicModelProvider:
    """Model provider backed by a Republic ``LLM`` client.

    The client call is synchronous, so it runs in a worker thread.
    """

    def __init__(self, llm: LLM, *, max_tokens: int) -> None:
        self._llm = llm
        self._max_tokens = max_tokens

    async def generate(
        self,
        system_prompt: str,
        messages: Sequence[ModelMessage],
        tools: Sequence[Tool],
    ) -> ModelResponse:
        payload = to_openai_messages(system_prompt, messages)
        try:
            response = await asyncio.to_thread(
                self._llm.chat.raw,
                messages=payload,
                tools=list(tools),
                max_tokens=self._max_tokens,
            )
        except Exception as exc:
            logger.exception("model.call.error")
            raise ProviderError(f"model_call_error: {exc!s}") from exc
        return parse_response(response)

"""One conversational turn, from raw history to stream events."""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing, suppress
from typing import Any

from loguru import logger
from pydantic import ValidationError
from republic import Tool, ToolContext

from briefly.core.history import DEFAULT_WINDOW_TURNS, normalize_history, window_history
from briefly.core.intent import IMAGE_TOOL_NAME, ShortcutDetector, extract_image_directive, strip_image_directive
from briefly.core.prompt import SystemPromptBuilder
from briefly.errors import BrieflyError, ModelTimeoutError, ProviderError
from briefly.logging_utils import bind_run, reset_run
from briefly.providers import ModelProvider
from briefly.streaming.events import Done, Error, StreamEvent, TextDelta, ToolInvoked, ToolResult
from briefly.tools.base import run_context
from briefly.tools.registry import ToolRegistry
from briefly.types import USER_ROLE, ChatRequest, ModelMessage, ModelResponse, ToolCall, Turn

EMPTY_HISTORY_REPLY = (
    "I'm sorry, but I can't respond to an empty message. Please send a message to start the conversation."
)
ROUND_LIMIT_REPLY = "I was unable to complete this after several attempts."
UNEXPECTED_ERROR_REPLY = "Something went wrong while generating the response. Please try again."
DEFAULT_MAX_ROUNDS = 5


def to_model_message(turn: Turn) -> ModelMessage:
    role = USER_ROLE if turn.role == USER_ROLE else "assistant"
    return ModelMessage(role=role, content=turn.content, attachments=turn.attachments)


def render_tool_output(output: Any) -> str:
    if isinstance(output, str):
        return output
    try:
        return json.dumps(output, ensure_ascii=False)
    except TypeError:
        return str(output)


class Orchestrator:
    """Drives one turn: normalize, window, shortcut or model/tool loop, respond.

    ``run`` always ends with exactly one ``Done`` or ``Error``. Cancellation is
    never turned into an event; it propagates to the caller.
    """

    def __init__(
        self,
        *,
        model: ModelProvider,
        registry: ToolRegistry,
        prompts: SystemPromptBuilder,
        shortcut: ShortcutDetector | None = None,
        history_window: int = DEFAULT_WINDOW_TURNS,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        model_timeout_seconds: float | None = None,
    ) -> None:
        if max_rounds < 1:
            raise ValueError(f"max_rounds must be >= 1, got {max_rounds}")
        self._model = model
        self._registry = registry
        self._prompts = prompts
        self._shortcut = shortcut
        self._history_window = history_window
        self._max_rounds = max_rounds
        self._model_timeout_seconds = model_timeout_seconds

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def run(self, request: ChatRequest) -> AsyncIterator[StreamEvent]:
        run_id = uuid.uuid4().hex[:12]
        token = bind_run(run_id)
        context = run_context(run_id, request.owner_id)
        start = time.monotonic()
        status = "ok"
        logger.info("agent.run.start turns={} owner={}", len(request.history), request.owner_id or "-")
        try:
            async with aclosing(self._run(request, context)) as events:
                async for event in events:
                    yield event
        except Exception as exc:
            status = "error"
            logger.exception("agent.run.error")
            yield Error(_error_message(exc))
        finally:
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.info("agent.run.finish status={} elapsed={:.1f}ms", status, elapsed_ms)
            with suppress(ValueError):
                reset_run(token)

    async def _run(self, request: ChatRequest, context: ToolContext) -> AsyncIterator[StreamEvent]:
        history = normalize_history(request.history)
        if not history:
            logger.info("agent.run.empty_history")
            yield TextDelta(EMPTY_HISTORY_REPLY)
            yield Done()
            return

        window = window_history(history, self._history_window)
        latest = history[-1]

        if latest.role == USER_ROLE and self._shortcut is not None:
            shortcut = self._shortcut.detect(latest)
            if shortcut is not None and self._registry.has(shortcut.tool_name):
                logger.info("agent.shortcut phrase={!r} tool={}", shortcut.matched_phrase, shortcut.tool_name)
                output = await self._registry.execute(shortcut.tool_name, kwargs=shortcut.arguments, context=context)
                yield ToolResult(name=shortcut.tool_name, output=output)
                yield Done()
                return

        query = _latest_user_text(history)
        system_prompt = await self._prompts.build(request.owner_id, query)
        messages = [to_model_message(turn) for turn in window]
        tools = self._registry.model_tools()

        for round_index in range(1, self._max_rounds + 1):
            response = await self._call_model(system_prompt, messages, tools, round_index)
            if not response.has_tool_calls:
                async for event in self._respond(response.text or "", context):
                    yield event
                return

            if response.text and response.text.strip():
                yield TextDelta(response.text)
            messages.append(ModelMessage(role="assistant", content=response.text or "", tool_calls=response.tool_calls))
            for call in response.tool_calls:
                name = self._display_name(call.name)
                yield ToolInvoked(name=name, input=call.arguments)
                output = await self._dispatch(call, context)
                yield ToolResult(name=name, output=output)
                messages.append(
                    ModelMessage(
                        role="tool",
                        content=render_tool_output(output),
                        tool_call_id=call.id,
                        name=call.name,
                    )
                )

        logger.warning("agent.rounds.exhausted max_rounds={}", self._max_rounds)
        yield TextDelta(ROUND_LIMIT_REPLY)
        yield Done()

    async def _respond(self, text: str, context: ToolContext) -> AsyncIterator[StreamEvent]:
        directive = extract_image_directive(text)
        if directive is not None and self._registry.has(IMAGE_TOOL_NAME):
            visible = strip_image_directive(text)
            if visible:
                yield TextDelta(visible)
            arguments = {"prompt": directive}
            yield ToolInvoked(name=IMAGE_TOOL_NAME, input=arguments)
            output = await self._registry.execute(IMAGE_TOOL_NAME, kwargs=arguments, context=context)
            yield ToolResult(name=IMAGE_TOOL_NAME, output=output)
            yield Done()
            return

        if not text.strip():
            raise ProviderError("The model returned an empty response.")
        yield TextDelta(text)
        yield Done()

    async def _call_model(
        self,
        system_prompt: str,
        messages: Sequence[ModelMessage],
        tools: Sequence[Tool],
        round_index: int,
    ) -> ModelResponse:
        logger.info("agent.model.call round={} messages={} tools={}", round_index, len(messages), len(tools))
        start = time.monotonic()
        try:
            async with asyncio.timeout(self._model_timeout_seconds):
                response = await self._model.generate(system_prompt, list(messages), list(tools))
        except TimeoutError as exc:
            raise ModelTimeoutError(
                f"The model did not respond within {self._model_timeout_seconds:g} seconds."
            ) from exc
        logger.info(
            "agent.model.done round={} tool_calls={} elapsed={:.1f}ms",
            round_index,
            len(response.tool_calls),
            (time.monotonic() - start) * 1000,
        )
        return response

    async def _dispatch(self, call: ToolCall, context: ToolContext) -> Any:
        descriptor = self._registry.resolve(call.name)
        if descriptor is None:
            logger.warning("agent.tool.unknown name={}", call.name)
            return f"error: unknown tool {call.name}"
        try:
            return await self._registry.execute(descriptor.name, kwargs=call.arguments, context=context)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'input'}: {error['msg']}" for error in exc.errors()
            )
            return f"error: invalid arguments for {descriptor.name}: {problems}"

    def _display_name(self, name: str) -> str:
        descriptor = self._registry.resolve(name)
        return descriptor.name if descriptor is not None else name


def _latest_user_text(history: Sequence[Turn]) -> str:
    for turn in reversed(history):
        if turn.role == USER_ROLE:
            return turn.content
    return ""


def _error_message(exc: Exception) -> str:
    if isinstance(exc, BrieflyError):
        return str(exc) or UNEXPECTED_ERROR_REPLY
    return UNEXPECTED_ERROR_REPLY

import asyncio
from collections.abc import Sequence

import httpx
import pytest
from conftest import KeywordEmbedder, RecordingImageBackend, ScriptedModel
from pydantic import BaseModel
from republic import Tool, tool_from_model

from briefly.core.intent import ImageIntentDetector
from briefly.core.orchestrator import (
    EMPTY_HISTORY_REPLY,
    ROUND_LIMIT_REPLY,
    UNEXPECTED_ERROR_REPLY,
    Orchestrator,
)
from briefly.core.prompt import BASELINE_PERSONA, MEMORY_SECTION_HEADER, SystemPromptBuilder
from briefly.errors import ProviderError
from briefly.integrations.profiles import StaticProfileStore
from briefly.memory import InMemoryVectorIndex, MemoryStore
from briefly.streaming.events import Done, Error, StreamEvent, TextDelta, ToolInvoked, ToolResult
from briefly.tools.builtin import register_builtin_tools
from briefly.tools.factories.web import WebFetcher
from briefly.tools.registry import ToolRegistry
from briefly.types import ChatRequest, ModelMessage, ModelResponse, ToolCall, Turn

ATLANTIS_REPLY = (
    "I'm sorry, I don't have the exact timezone information for Atlantis. I can only provide time for major cities."
)


def _build(
    model: object,
    *,
    image_backend: RecordingImageBackend | None = None,
    memory: MemoryStore | None = None,
    profiles: object | None = None,
    shortcut: bool = True,
    max_rounds: int = 5,
    history_window: int = 11,
    model_timeout_seconds: float | None = None,
) -> Orchestrator:
    registry = ToolRegistry()
    register_builtin_tools(
        registry,
        image_backend=image_backend,
        web_fetcher=WebFetcher(transport=httpx.MockTransport(lambda _request: httpx.Response(200, text="ok"))),
        memory_store=memory,
    )
    return Orchestrator(
        model=model,
        registry=registry,
        prompts=SystemPromptBuilder(profiles=profiles, memory=memory),
        shortcut=ImageIntentDetector() if shortcut else None,
        history_window=history_window,
        max_rounds=max_rounds,
        model_timeout_seconds=model_timeout_seconds,
    )


async def _run(orchestrator: Orchestrator, *turns: Turn, owner_id: str | None = None) -> list[StreamEvent]:
    request = ChatRequest(history=list(turns), owner_id=owner_id)
    return [event async for event in orchestrator.run(request)]


def _user(text: str, *attachments: str) -> Turn:
    return Turn(role="user", content=text, attachments=attachments)


def _assert_single_terminal(events: list[StreamEvent]) -> None:
    terminals = [event for event in events if event.terminal]
    assert len(terminals) == 1
    assert events[-1] is terminals[0]


@pytest.mark.asyncio
async def test_empty_history_gets_canned_reply_without_model_call() -> None:
    model = ScriptedModel()

    events = await _run(_build(model))

    assert events == [TextDelta(EMPTY_HISTORY_REPLY), Done()]
    assert model.calls == []


@pytest.mark.asyncio
async def test_history_with_only_assistant_turns_is_empty() -> None:
    model = ScriptedModel()

    events = await _run(_build(model), Turn(role="assistant", content="hello"))

    assert events == [TextDelta(EMPTY_HISTORY_REPLY), Done()]


@pytest.mark.asyncio
async def test_plain_answer_streams_text_then_done() -> None:
    model = ScriptedModel([ModelResponse(text="Here is your poem.")])

    events = await _run(_build(model), _user("write a poem"))

    assert events == [TextDelta("Here is your poem."), Done()]
    system_prompt, messages, tools = model.calls[0]
    assert system_prompt == BASELINE_PERSONA
    assert messages == [ModelMessage(role="user", content="write a poem")]
    assert {tool.name for tool in tools} == {"clock_now", "web_fetch"}


@pytest.mark.asyncio
async def test_model_sees_windowed_history() -> None:
    turns = [Turn(role="user" if idx % 2 else "assistant", content=f"t{idx}") for idx in range(1, 16)]
    model = ScriptedModel([ModelResponse(text="ok")])

    await _run(_build(model), *turns)

    messages = model.calls[0][1]
    assert [message.content for message in messages] == ["t1", *[f"t{idx}" for idx in range(6, 16)]]


@pytest.mark.asyncio
async def test_image_shortcut_bypasses_model(image_backend: RecordingImageBackend) -> None:
    model = ScriptedModel()

    events = await _run(_build(model, image_backend=image_backend), _user("generate an image of a red fox in snow"))

    assert events == [ToolResult(name="image.generate", output={"images": ["https://img.test/1.png"]}), Done()]
    assert model.calls == []
    assert image_backend.calls == [("generate an image of a red fox in snow", ())]


@pytest.mark.asyncio
async def test_image_shortcut_forwards_attachments(image_backend: RecordingImageBackend) -> None:
    orchestrator = _build(ScriptedModel(), image_backend=image_backend)

    await _run(orchestrator, _user("Draw a picture in this style", "https://img.test/ref.png"))

    assert image_backend.calls == [("Draw a picture in this style", ("https://img.test/ref.png",))]


@pytest.mark.asyncio
async def test_image_shortcut_failure_is_an_error_event() -> None:
    orchestrator = _build(ScriptedModel(), image_backend=RecordingImageBackend(fail=True))

    events = await _run(orchestrator, _user("generate an image of a cat"))

    assert len(events) == 1
    assert isinstance(events[0], Error)
    assert events[0].message.startswith("Image generation failed to return any images.")


@pytest.mark.asyncio
async def test_shortcut_needs_the_image_tool() -> None:
    model = ScriptedModel([ModelResponse(text="I can't draw right now.")])

    events = await _run(_build(model), _user("generate an image of a cat"))

    assert events == [TextDelta("I can't draw right now."), Done()]
    assert len(model.calls) == 1


@pytest.mark.asyncio
async def test_shortcut_can_be_turned_off(image_backend: RecordingImageBackend) -> None:
    model = ScriptedModel([ModelResponse(text="Sure.")])

    await _run(_build(model, image_backend=image_backend, shortcut=False), _user("generate an image of a cat"))

    assert len(model.calls) == 1
    assert image_backend.calls == []


@pytest.mark.asyncio
async def test_tool_round_then_answer() -> None:
    model = ScriptedModel([
        ModelResponse(
            text="Let me check.",
            tool_calls=(ToolCall(id="call_1", name="clock_now", arguments={"location": "Atlantis"}),),
        ),
        ModelResponse(text="I don't know Atlantis time."),
    ])

    events = await _run(_build(model), _user("what time is it in Atlantis?"))

    assert events == [
        TextDelta("Let me check."),
        ToolInvoked(name="clock.now", input={"location": "Atlantis"}),
        ToolResult(name="clock.now", output=ATLANTIS_REPLY),
        TextDelta("I don't know Atlantis time."),
        Done(),
    ]
    follow_up = model.calls[1][1]
    assert follow_up[-2].role == "assistant"
    assert follow_up[-2].tool_calls[0].id == "call_1"
    assert follow_up[-1] == ModelMessage(role="tool", content=ATLANTIS_REPLY, tool_call_id="call_1", name="clock_now")


@pytest.mark.asyncio
async def test_unknown_tool_and_bad_arguments_are_reported_to_the_model() -> None:
    model = ScriptedModel([
        ModelResponse(
            tool_calls=(
                ToolCall(id="a", name="nope", arguments={}),
                ToolCall(id="b", name="clock_now", arguments={}),
            ),
        ),
        ModelResponse(text="Sorry about that."),
    ])

    events = await _run(_build(model), _user("time?"))

    results = [event for event in events if isinstance(event, ToolResult)]
    assert results[0] == ToolResult(name="nope", output="error: unknown tool nope")
    assert results[1].name == "clock.now"
    assert results[1].output.startswith("error: invalid arguments for clock.now: location")
    assert events[-1] == Done()


@pytest.mark.asyncio
async def test_malformed_url_is_reported_to_the_model() -> None:
    model = ScriptedModel([
        ModelResponse(tool_calls=(ToolCall(id="w", name="web_fetch", arguments={"url": "https://[::1"}),)),
        ModelResponse(text="That link looks broken."),
    ])

    events = await _run(_build(model), _user("summarize https://[::1"))

    results = [event for event in events if isinstance(event, ToolResult)]
    assert results[0].name == "web.fetch"
    assert results[0].output.startswith("Error: Failed to fetch the page at https://[::1.")
    assert events[-2:] == [TextDelta("That link looks broken."), Done()]
    _assert_single_terminal(events)


@pytest.mark.asyncio
async def test_cancelling_the_consumer_cancels_the_model_call() -> None:
    started = asyncio.Event()
    cancelled = asyncio.Event()

    class _HangingModel:
        async def generate(
            self,
            system_prompt: str,
            messages: Sequence[ModelMessage],
            tools: Sequence[Tool],
        ) -> ModelResponse:
            started.set()
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return ModelResponse(text="never")

    seen: list[StreamEvent] = []

    async def _consume() -> None:
        async for event in _build(_HangingModel()).run(ChatRequest(history=[_user("hello")])):
            seen.append(event)

    task = asyncio.create_task(_consume())
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert cancelled.is_set()
    assert not any(isinstance(event, Error) for event in seen)


@pytest.mark.asyncio
async def test_cancelling_the_consumer_cancels_the_running_tool() -> None:
    started = asyncio.Event()
    cancelled = asyncio.Event()

    class _WaitInput(BaseModel):
        seconds: float

    async def _wait(params: _WaitInput) -> str:
        started.set()
        try:
            await asyncio.sleep(params.seconds)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return "waited"

    registry = ToolRegistry()
    registry.add(tool_from_model(_WaitInput, _wait, name="slow.wait", description="wait"))
    model = ScriptedModel([
        ModelResponse(tool_calls=(ToolCall(id="s", name="slow_wait", arguments={"seconds": 30}),)),
    ])
    orchestrator = Orchestrator(model=model, registry=registry, prompts=SystemPromptBuilder())
    seen: list[StreamEvent] = []

    async def _consume() -> None:
        async for event in orchestrator.run(ChatRequest(history=[_user("wait please")])):
            seen.append(event)

    task = asyncio.create_task(_consume())
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert cancelled.is_set()
    assert seen == [ToolInvoked(name="slow.wait", input={"seconds": 30})]


@pytest.mark.asyncio
async def test_round_limit_has_a_fallback_answer() -> None:
    looping = ModelResponse(tool_calls=(ToolCall(id="x", name="clock_now", arguments={"location": "Atlantis"}),))
    model = ScriptedModel([looping, looping])

    events = await _run(_build(model, max_rounds=2), _user("time?"))

    assert events[-2:] == [TextDelta(ROUND_LIMIT_REPLY), Done()]
    assert len(model.calls) == 2
    _assert_single_terminal(events)


@pytest.mark.asyncio
async def test_image_directive_in_text_answer_runs_the_image_tool(image_backend: RecordingImageBackend) -> None:
    model = ScriptedModel([ModelResponse(text="[IMAGE_GENERATION]A lighthouse at dusk[/IMAGE_GENERATION]")])

    events = await _run(_build(model, image_backend=image_backend, shortcut=False), _user("something visual"))

    assert events == [
        ToolInvoked(name="image.generate", input={"prompt": "A lighthouse at dusk"}),
        ToolResult(name="image.generate", output={"images": ["https://img.test/1.png"]}),
        Done(),
    ]


@pytest.mark.asyncio
async def test_provider_error_becomes_single_error_event() -> None:
    model = ScriptedModel([ProviderError("model_call_error: upstream 500")])

    events = await _run(_build(model), _user("hello"))

    assert events == [Error("model_call_error: upstream 500")]


@pytest.mark.asyncio
async def test_unexpected_error_message_is_generic() -> None:
    model = ScriptedModel([RuntimeError("secret internals")])

    events = await _run(_build(model), _user("hello"))

    assert events == [Error(UNEXPECTED_ERROR_REPLY)]


@pytest.mark.asyncio
async def test_empty_model_answer_is_an_error() -> None:
    events = await _run(_build(ScriptedModel([ModelResponse(text="  ")])), _user("hello"))

    assert events == [Error("The model returned an empty response.")]


@pytest.mark.asyncio
async def test_model_timeout_becomes_error_event() -> None:
    class _SlowModel:
        async def generate(
            self,
            system_prompt: str,
            messages: Sequence[ModelMessage],
            tools: Sequence[Tool],
        ) -> ModelResponse:
            await asyncio.sleep(1.0)
            return ModelResponse(text="too late")

    events = await _run(_build(_SlowModel(), model_timeout_seconds=0.05), _user("hello"))

    assert len(events) == 1
    assert isinstance(events[0], Error)
    assert events[0].message == "The model did not respond within 0.05 seconds."


@pytest.mark.asyncio
async def test_memory_failure_falls_back_to_baseline_prompt() -> None:
    memory = MemoryStore(KeywordEmbedder(fail=True), InMemoryVectorIndex())
    model = ScriptedModel([ModelResponse(text="Our plans start at $10.")])

    events = await _run(_build(model, memory=memory), _user("pricing question"), owner_id="alice")

    assert events == [TextDelta("Our plans start at $10."), Done()]
    assert model.calls[0][0] == BASELINE_PERSONA


@pytest.mark.asyncio
async def test_recalled_memories_and_profile_are_added_to_prompt(embedder: KeywordEmbedder) -> None:
    memory = MemoryStore(embedder, InMemoryVectorIndex())
    await memory.save("alice", "Asked about pricing for the team plan")
    profiles = StaticProfileStore({"alice": "Always answer in French."})
    model = ScriptedModel([ModelResponse(text="Bonjour.")])

    await _run(_build(model, memory=memory, profiles=profiles), _user("pricing question"), owner_id="alice")

    system_prompt, _, tools = model.calls[0]
    assert system_prompt.startswith(BASELINE_PERSONA)
    assert "Always answer in French." in system_prompt
    assert f"{MEMORY_SECTION_HEADER}\n- Asked about pricing for the team plan" in system_prompt
    assert "memory_save" in {tool.name for tool in tools}


@pytest.mark.asyncio
async def test_profile_failure_falls_back_to_baseline() -> None:
    class _BrokenProfiles:
        async def get_system_prompt(self, owner_id: str) -> str | None:
            raise OSError("disk gone")

    model = ScriptedModel([ModelResponse(text="hi")])

    await _run(_build(model, profiles=_BrokenProfiles()), _user("hello"), owner_id="alice")

    assert model.calls[0][0] == BASELINE_PERSONA


@pytest.mark.asyncio
async def test_memory_tool_saves_for_request_owner(embedder: KeywordEmbedder) -> None:
    index = InMemoryVectorIndex()
    memory = MemoryStore(embedder, index)
    model = ScriptedModel([
        ModelResponse(tool_calls=(ToolCall(id="m", name="memory_save", arguments={"takeaway": "Prefers a witty tone"}),)),
        ModelResponse(text="Noted!"),
    ])

    events = await _run(_build(model, memory=memory), _user("I like witty answers"), owner_id="alice")

    assert ToolResult(name="memory.save", output="saved") in events
    assert [record.takeaway for record in index.records("alice")] == ["Prefers a witty tone"]

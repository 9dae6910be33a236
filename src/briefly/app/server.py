"""HTTP surface: streaming and collected chat endpoints."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import FastAPI
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from briefly import __version__
from briefly.core.orchestrator import Orchestrator
from briefly.streaming.emitter import NDJSON_MEDIA_TYPE, StreamEmitter
from briefly.types import ChatRequest, Turn


class TurnIn(BaseModel):
    # Roles stay free-form here; the history normalizer drops unknown ones.
    role: str
    content: str = ""
    attachments: list[str] = Field(default_factory=list)


class ChatRequestIn(BaseModel):
    history: list[TurnIn] = Field(default_factory=list)
    owner_id: str | None = None

    def to_request(self) -> ChatRequest:
        turns = [Turn(role=t.role, content=t.content, attachments=tuple(t.attachments)) for t in self.history]
        return ChatRequest(history=turns, owner_id=self.owner_id or None)


class ChatResponseOut(BaseModel):
    content: str
    tool_results: list[dict[str, Any]]
    error: str | None = None


def create_app(orchestrator: Orchestrator | Callable[[], Orchestrator]) -> FastAPI:
    """Build the API around an orchestrator, or a factory resolved on first use."""
    app = FastAPI(title="Briefly", version=__version__)
    emitter = StreamEmitter()
    resolved: list[Orchestrator] = []

    def get_orchestrator() -> Orchestrator:
        if isinstance(orchestrator, Orchestrator):
            return orchestrator
        if not resolved:
            resolved.append(orchestrator())
        return resolved[0]

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"ok": True, "version": __version__}

    @app.post("/chat/stream")
    async def chat_stream(body: ChatRequestIn) -> StreamingResponse:
        source = get_orchestrator().run(body.to_request())
        return StreamingResponse(emitter.frames(source), media_type=NDJSON_MEDIA_TYPE)

    @app.post("/chat", response_model=ChatResponseOut)
    async def chat(body: ChatRequestIn) -> ChatResponseOut:
        collected = await emitter.collect(get_orchestrator().run(body.to_request()))
        return ChatResponseOut(**collected.to_dict())

    return app

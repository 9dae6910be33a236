from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

import pytest
from republic import Tool

from briefly.types import ModelMessage, ModelResponse


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for key in list(os.environ):
        if key.startswith("BRIEFLY_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


class ScriptedModel:
    """Model provider double that replays canned responses and records every call."""

    def __init__(self, responses: Sequence[ModelResponse | Exception] = ()) -> None:
        self._responses = list(responses)
        self.calls: list[tuple[str, list[ModelMessage], list[Tool]]] = []

    async def generate(
        self,
        system_prompt: str,
        messages: Sequence[ModelMessage],
        tools: Sequence[Tool],
    ) -> ModelResponse:
        self.calls.append((system_prompt, list(messages), list(tools)))
        if not self._responses:
            raise AssertionError("model called more often than scripted")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class RecordingImageBackend:
    def __init__(self, media: Sequence[str] = ("https://img.test/1.png",), *, fail: bool = False) -> None:
        self.media = list(media)
        self.fail = fail
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    async def generate(self, prompt: str, reference_images: Sequence[str] = ()) -> list[str]:
        self.calls.append((prompt, tuple(reference_images)))
        if self.fail:
            raise RuntimeError("backend down")
        return list(self.media)


class KeywordEmbedder:
    """Deterministic embeddings: one dimension per known keyword."""

    KEYWORDS = ("pricing", "tone", "weather", "python")

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("embedding service unavailable")
        lowered = text.lower()
        vector = [1.0 if word in lowered else 0.0 for word in self.KEYWORDS]
        vector.append(0.1)
        return vector


@pytest.fixture
def image_backend() -> RecordingImageBackend:
    return RecordingImageBackend()


@pytest.fixture
def embedder() -> KeywordEmbedder:
    return KeywordEmbedder()

"""Interfaces of the external collaborators the agent core talks to."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from republic import Tool

from briefly.types import ModelMessage, ModelResponse


class ModelProvider(Protocol):
    """The single source of reasoning."""

    async def generate(
        self,
        system_prompt: str,
        messages: Sequence[ModelMessage],
        tools: Sequence[Tool],
    ) -> ModelResponse: ...


class EmbeddingProvider(Protocol):
    async def embed(self, text: str) -> list[float]: ...


class ImageBackend(Protocol):
    """Generates one image per call and returns its media references."""

    async def generate(self, prompt: str, reference_images: Sequence[str] = ()) -> list[str]: ...


class ProfileStore(Protocol):
    """Owner-specific system prompt overrides. ``None`` means no override."""

    async def get_system_prompt(self, owner_id: str) -> str | None: ...

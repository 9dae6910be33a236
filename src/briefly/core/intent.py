"""Cheap intent detection ahead of the model loop."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from briefly.config import DEFAULT_SHORTCUT_PHRASES
from briefly.types import Turn

IMAGE_TOOL_NAME = "image.generate"
IMAGE_DIRECTIVE_RE = re.compile(r"\[IMAGE_GENERATION\](.*?)\[/IMAGE_GENERATION\]", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class ShortcutRequest:
    """Direct tool invocation that bypasses the model."""

    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    matched_phrase: str = ""


class ShortcutDetector(Protocol):
    def detect(self, turn: Turn) -> ShortcutRequest | None: ...


class ImageIntentDetector:
    """Keyword shortcut for explicit image generation requests.

    Matching is a case-insensitive substring test against a fixed phrase set.
    Attached media is forwarded as reference images.
    """

    def __init__(self, phrases: Iterable[str] = DEFAULT_SHORTCUT_PHRASES, *, enabled: bool = True) -> None:
        self._phrases = tuple(phrase.casefold() for phrase in phrases if phrase.strip())
        self._enabled = enabled

    @property
    def phrases(self) -> tuple[str, ...]:
        return self._phrases

    def detect(self, turn: Turn) -> ShortcutRequest | None:
        if not self._enabled:
            return None
        text = turn.content.strip()
        if not text:
            return None
        lowered = text.casefold()
        for phrase in self._phrases:
            if phrase in lowered:
                arguments: dict[str, Any] = {"prompt": text}
                if turn.attachments:
                    arguments["reference_images"] = list(turn.attachments)
                return ShortcutRequest(tool_name=IMAGE_TOOL_NAME, arguments=arguments, matched_phrase=phrase)
        return None


def extract_image_directive(text: str) -> str | None:
    """Return the description inside an ``[IMAGE_GENERATION]`` block, if any."""
    match = IMAGE_DIRECTIVE_RE.search(text)
    if match is None:
        return None
    description = match.group(1).strip()
    return description or None


def strip_image_directive(text: str) -> str:
    return IMAGE_DIRECTIVE_RE.sub("", text).strip()

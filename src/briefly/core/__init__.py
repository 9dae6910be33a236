"""Conversational agent core."""

from briefly.core.history import normalize_history, window_history
from briefly.core.intent import ImageIntentDetector, ShortcutDetector, ShortcutRequest, extract_image_directive
from briefly.core.orchestrator import EMPTY_HISTORY_REPLY, ROUND_LIMIT_REPLY, Orchestrator
from briefly.core.prompt import BASELINE_PERSONA, SystemPromptBuilder

__all__ = [
    "BASELINE_PERSONA",
    "EMPTY_HISTORY_REPLY",
    "ROUND_LIMIT_REPLY",
    "ImageIntentDetector",
    "Orchestrator",
    "ShortcutDetector",
    "ShortcutRequest",
    "SystemPromptBuilder",
    "extract_image_directive",
    "normalize_history",
    "window_history",
]

"""Runtime bootstrap helpers."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from briefly.config import Settings, get_settings
from briefly.core.intent import ImageIntentDetector
from briefly.core.orchestrator import Orchestrator
from briefly.core.prompt import BASELINE_PERSONA, SystemPromptBuilder
from briefly.integrations.openai_http import HttpEmbeddingProvider, HttpImageBackend
from briefly.integrations.profiles import FileProfileStore
from briefly.integrations.republic_client import RepublicModelProvider, build_llm
from briefly.memory import JsonlVectorIndex, MemoryStore
from briefly.tools.builtin import register_builtin_tools
from briefly.tools.factories.web import WebFetcher
from briefly.tools.registry import ToolRegistry


@dataclass(frozen=True)
class Runtime:
    settings: Settings
    orchestrator: Orchestrator
    memory: MemoryStore | None


def build_memory_store(settings: Settings) -> MemoryStore | None:
    if not settings.memory_enabled:
        return None
    api_key = settings.embedding_api_key or settings.resolved_api_key
    if not api_key and not settings.embedding_api_base:
        logger.info("memory.disabled reason=no_embedding_credentials")
        return None
    embedder = HttpEmbeddingProvider(
        model=settings.embedding_model,
        api_base=settings.embedding_api_base,
        api_key=api_key,
        timeout_seconds=settings.embedding_timeout_seconds,
    )
    index = JsonlVectorIndex.in_home(settings.resolve_home())
    return MemoryStore(embedder, index, top_k=settings.memory_top_k)


def build_image_backend(settings: Settings) -> HttpImageBackend | None:
    api_key = settings.image_api_key or settings.resolved_api_key
    if not api_key and not settings.image_api_base:
        logger.info("image.disabled reason=no_image_credentials")
        return None
    return HttpImageBackend(
        model=settings.image_model,
        api_base=settings.image_api_base,
        api_key=api_key,
        timeout_seconds=settings.image_timeout_seconds,
    )


def build_runtime(settings: Settings | None = None) -> Runtime:
    """Wire the orchestrator and its collaborators from settings.

    Raises ``ConfigurationError`` when the model string is missing or malformed.
    """
    settings = settings or get_settings()
    llm = build_llm(settings)

    memory = build_memory_store(settings)
    registry = ToolRegistry()
    register_builtin_tools(
        registry,
        image_backend=build_image_backend(settings),
        web_fetcher=WebFetcher(
            timeout_seconds=settings.web_fetch_timeout_seconds,
            max_chars=settings.web_fetch_max_chars,
        ),
        memory_store=memory,
    )

    prompts = SystemPromptBuilder(
        baseline=settings.system_prompt or BASELINE_PERSONA,
        profiles=FileProfileStore.in_home(settings.resolve_home()),
        memory=memory,
    )
    orchestrator = Orchestrator(
        model=RepublicModelProvider(llm, max_tokens=settings.max_tokens),
        registry=registry,
        prompts=prompts,
        shortcut=ImageIntentDetector(settings.shortcut_phrases, enabled=settings.shortcut_enabled),
        history_window=settings.history_window,
        max_rounds=settings.max_tool_rounds,
        model_timeout_seconds=settings.model_timeout_seconds,
    )
    logger.info("runtime.ready model={} tools={}", settings.model, ",".join(d.name for d in registry.descriptors()))
    return Runtime(settings=settings, orchestrator=orchestrator, memory=memory)

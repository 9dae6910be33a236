"""System prompt assembly."""

from __future__ import annotations

import asyncio

from loguru import logger

from briefly.memory.store import MemoryStore
from briefly.providers import ProfileStore

BASELINE_PERSONA = """You are BrieflyAI, a multi-modal AI co-pilot for content creation. Be helpful, creative, and resourceful.

Your core capabilities:
* Content generation and editing: emails, articles, stories, poems, scripts and marketing copy; proofreading, tone adjustments and rephrasing; summaries of long texts.
* Ideation: creative concepts, project names, slogans, brainstorming.
* Learning: explaining complex topics simply, study guides and quizzes.
* Research: use the web fetch tool when the user gives you a URL or asks about a specific page.
* Time: use the clock tool when asked for the current time or date somewhere.
* Visual content: use the image tool when asked for an image, illustration or logo. If you cannot call tools, respond ONLY with [IMAGE_GENERATION]A detailed description of the image.[/IMAGE_GENERATION].
* Technical help: explain and write code; use markdown code blocks.

Always strive to provide the best possible response. Be proactive and engaging."""

MEMORY_SECTION_HEADER = "Things you remember about this user from earlier conversations:"


class SystemPromptBuilder:
    """Merges the baseline persona, an owner override and recalled memories.

    Profile and memory lookups are best effort: a failure drops that block and
    the turn goes on with what is left.
    """

    def __init__(
        self,
        *,
        baseline: str = BASELINE_PERSONA,
        profiles: ProfileStore | None = None,
        memory: MemoryStore | None = None,
    ) -> None:
        self._baseline = baseline.strip()
        self._profiles = profiles
        self._memory = memory

    @property
    def baseline(self) -> str:
        return self._baseline

    async def build(self, owner_id: str | None, query: str) -> str:
        if not owner_id:
            return self._baseline

        override, memories = await asyncio.gather(
            self._owner_override(owner_id),
            self._recall(owner_id, query),
        )
        blocks = [self._baseline]
        if override:
            blocks.append(override)
        if memories:
            blocks.append(f"{MEMORY_SECTION_HEADER}\n- {memories}")
        return "\n\n---\n\n".join(block for block in blocks if block.strip())

    async def _owner_override(self, owner_id: str) -> str | None:
        if self._profiles is None:
            return None
        try:
            override = await self._profiles.get_system_prompt(owner_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("prompt.profile.error owner={} error={}", owner_id, exc)
            return None
        return override.strip() if override else None

    async def _recall(self, owner_id: str, query: str) -> str | None:
        if self._memory is None:
            return None
        return await self._memory.retrieve(owner_id, query)

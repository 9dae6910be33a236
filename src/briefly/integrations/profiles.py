"""Profile stores: owner-specific system prompt overrides."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping
from pathlib import Path

PROFILES_DIR_NAME = "profiles"
MAX_PROFILE_PROMPT_CHARS = 12_000
_SAFE_OWNER_RE = re.compile(r"^[A-Za-z0-9_.@-]{1,128}$")


class StaticProfileStore:
    def __init__(self, prompts: Mapping[str, str] | None = None) -> None:
        self._prompts = dict(prompts or {})

    async def get_system_prompt(self, owner_id: str) -> str | None:
        return self._prompts.get(owner_id)


class FileProfileStore:
    """Reads ``<root>/<owner_id>.md``; oversized prompts are cut in the middle."""

    def __init__(self, root: Path) -> None:
        self.root = root

    @classmethod
    def in_home(cls, home: Path) -> FileProfileStore:
        return cls(home / PROFILES_DIR_NAME)

    async def get_system_prompt(self, owner_id: str) -> str | None:
        if _SAFE_OWNER_RE.fullmatch(owner_id) is None or owner_id.startswith("."):
            raise ValueError(f"unsupported owner id: {owner_id!r}")
        return await asyncio.to_thread(self._read, self.root / f"{owner_id}.md")

    @staticmethod
    def _read(path: Path) -> str | None:
        if not path.is_file():
            return None
        content = path.read_text(encoding="utf-8").strip()
        if not content:
            return None
        return truncate_middle(content, MAX_PROFILE_PROMPT_CHARS)


def truncate_middle(content: str, limit: int) -> str:
    if len(content) <= limit:
        return content

    marker = "\n\n[profile truncated: middle content removed]\n\n"
    head_len = (limit - len(marker)) // 2
    tail_len = limit - len(marker) - head_len
    if head_len <= 0 or tail_len <= 0:
        return content[:limit]
    return f"{content[:head_len]}{marker}{content[-tail_len:]}"

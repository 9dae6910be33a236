"""Long-term memory: embed takeaways, store them, recall the closest ones.

Memory is an enhancement, never a correctness requirement: neither ``save``
nor ``retrieve`` lets an exception escape to the caller.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from briefly.memory.index import MemoryRecord, VectorIndex
from briefly.providers import EmbeddingProvider

DEFAULT_TOP_K = 3
MEMORY_JOINER = "\n- "


class MemoryStore:
    def __init__(self, embedder: EmbeddingProvider | None, index: VectorIndex, *, top_k: int = DEFAULT_TOP_K) -> None:
        self._embedder = embedder
        self._index = index
        self._top_k = top_k

    @property
    def available(self) -> bool:
        return self._embedder is not None

    async def save(self, owner_id: str, takeaway: str) -> MemoryRecord | None:
        """Embed and persist *takeaway*; returns ``None`` when nothing was stored."""
        cleaned = takeaway.strip()
        if not owner_id or not cleaned:
            return None
        if self._embedder is None:
            logger.warning("memory.save.skipped owner={} reason=no_embedder", owner_id)
            return None
        try:
            embedding = await self._embedder.embed(cleaned)
            record = MemoryRecord(owner_id=owner_id, takeaway=cleaned, embedding=tuple(embedding))
            await asyncio.to_thread(self._index.add, record)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("memory.save.error owner={}", owner_id)
            return None
        logger.info("memory.save.ok owner={} chars={}", owner_id, len(cleaned))
        return record

    async def retrieve(self, owner_id: str, query: str) -> str | None:
        """Return the top takeaways for *query* joined into one string, or ``None``."""
        if not owner_id or not query.strip():
            return None
        if self._embedder is None:
            return None
        try:
            vector = await self._embedder.embed(query)
            records = await asyncio.to_thread(self._index.nearest, owner_id, vector, limit=self._top_k)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("memory.retrieve.error owner={} error={}", owner_id, exc)
            return None
        if not records:
            return None
        logger.debug("memory.retrieve.ok owner={} hits={}", owner_id, len(records))
        return MEMORY_JOINER.join(record.takeaway for record in records)

"""Owner-scoped nearest-neighbour indexes for memory records."""

from __future__ import annotations

import json
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

import numpy as np
from loguru import logger

MEMORY_FILE_NAME = "memories.jsonl"


@dataclass(frozen=True)
class MemoryRecord:
    """One persisted takeaway with its embedding."""

    owner_id: str
    takeaway: str
    embedding: tuple[float, ...]
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_payload(self) -> dict[str, object]:
        return {
            "owner_id": self.owner_id,
            "takeaway": self.takeaway,
            "embedding": list(self.embedding),
            "created_at": self.created_at,
        }

    @classmethod
    def from_payload(cls, payload: object) -> MemoryRecord | None:
        if not isinstance(payload, dict):
            return None
        owner_id = payload.get("owner_id")
        takeaway = payload.get("takeaway")
        embedding = payload.get("embedding")
        created_at = payload.get("created_at")
        if not isinstance(owner_id, str) or not isinstance(takeaway, str):
            return None
        if not isinstance(embedding, list) or not embedding:
            return None
        try:
            vector = tuple(float(value) for value in embedding)
        except (TypeError, ValueError):
            return None
        return cls(
            owner_id=owner_id,
            takeaway=takeaway,
            embedding=vector,
            created_at=created_at if isinstance(created_at, str) else "",
        )


class VectorIndex(Protocol):
    def add(self, record: MemoryRecord) -> None: ...

    def nearest(self, owner_id: str, vector: Sequence[float], *, limit: int) -> list[MemoryRecord]: ...


def rank_by_cosine(records: Sequence[MemoryRecord], vector: Sequence[float], *, limit: int) -> list[MemoryRecord]:
    """Return up to *limit* records ordered by ascending cosine distance to *vector*."""
    query = np.asarray(vector, dtype=float)
    query_norm = np.linalg.norm(query)
    if query_norm == 0 or not records:
        return []

    candidates = [record for record in records if len(record.embedding) == query.shape[0]]
    if len(candidates) != len(records):
        logger.warning("memory.index.dimension_mismatch skipped={}", len(records) - len(candidates))
    if not candidates:
        return []

    matrix = np.asarray([record.embedding for record in candidates], dtype=float)
    norms = np.linalg.norm(matrix, axis=1)
    norms[norms == 0] = np.inf
    similarities = matrix @ query / (norms * query_norm)
    order = np.argsort(-similarities, kind="stable")[:limit]
    return [candidates[int(idx)] for idx in order]


class InMemoryVectorIndex:
    """Process-local index, mostly for tests and single-node deployments."""

    def __init__(self) -> None:
        self._records: dict[str, list[MemoryRecord]] = {}
        self._lock = threading.Lock()

    def add(self, record: MemoryRecord) -> None:
        with self._lock:
            self._records.setdefault(record.owner_id, []).append(record)

    def records(self, owner_id: str) -> list[MemoryRecord]:
        with self._lock:
            return list(self._records.get(owner_id, []))

    def nearest(self, owner_id: str, vector: Sequence[float], *, limit: int) -> list[MemoryRecord]:
        return rank_by_cosine(self.records(owner_id), vector, limit=limit)


class JsonlVectorIndex(InMemoryVectorIndex):
    """Append-only JSON-lines index persisted under the application home."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        self._loaded = False
        self._file_lock = threading.Lock()

    @classmethod
    def in_home(cls, home: Path) -> JsonlVectorIndex:
        return cls(home / MEMORY_FILE_NAME)

    def add(self, record: MemoryRecord) -> None:
        self._ensure_loaded()
        line = json.dumps(record.to_payload(), ensure_ascii=False)
        with self._file_lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        super().add(record)

    def nearest(self, owner_id: str, vector: Sequence[float], *, limit: int) -> list[MemoryRecord]:
        self._ensure_loaded()
        return super().nearest(owner_id, vector, limit=limit)

    def _ensure_loaded(self) -> None:
        with self._file_lock:
            if self._loaded:
                return
            loaded = skipped = 0
            if self.path.exists():
                with self.path.open("r", encoding="utf-8", errors="replace") as handle:
                    for raw_line in handle:
                        line = raw_line.strip()
                        if not line:
                            continue
                        try:
                            payload = json.loads(line)
                        except json.JSONDecodeError:
                            skipped += 1
                            continue
                        record = MemoryRecord.from_payload(payload)
                        if record is None:
                            skipped += 1
                            continue
                        super().add(record)
                        loaded += 1
            self._loaded = True
        if skipped:
            logger.warning("memory.index.corrupt_lines path={} skipped={}", self.path, skipped)
        logger.info("memory.index.loaded path={} records={}", self.path, loaded)

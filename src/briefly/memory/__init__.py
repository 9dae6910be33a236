"""Long-term memory package."""

from briefly.memory.index import InMemoryVectorIndex, JsonlVectorIndex, MemoryRecord, VectorIndex
from briefly.memory.store import MemoryStore

__all__ = [
    "InMemoryVectorIndex",
    "JsonlVectorIndex",
    "MemoryRecord",
    "MemoryStore",
    "VectorIndex",
]

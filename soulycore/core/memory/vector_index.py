"""
soulycore.core.memory.vector_index - Vector similarity index

Two interchangeable backends:
- InMemoryVectorIndex: process-local, cosine similarity (tests, local dev)
- PgVectorIndex: knowledge_chunks table with pgvector cosine distance
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from soulycore.core.memory.exceptions import storage_errors
from soulycore.models.memory import KnowledgeChunk


@dataclass
class VectorMatch:
    """One similarity hit. Higher ``score`` means more similar."""

    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


class VectorIndex(ABC):
    """Similarity index contract used by semantic memory."""

    backend: str = "vector"

    @abstractmethod
    async def upsert(self, id: str, vector: list[float], metadata: dict[str, Any]) -> None:
        """Insert or replace the vector stored under ``id``."""

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        top_k: int,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        """Return up to ``top_k`` matches by descending similarity."""

    @abstractmethod
    async def delete(self, id: str) -> int:
        """Remove ``id``. Returns the number of vectors removed."""


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryVectorIndex(VectorIndex):
    """
    Dict-backed index.

    Query results are sorted by descending score; equal scores keep insertion
    order so repeated queries are byte-for-byte stable.
    """

    backend = "memory-vector"

    def __init__(self) -> None:
        self._vectors: dict[str, tuple[list[float], dict[str, Any]]] = {}

    def __len__(self) -> int:
        return len(self._vectors)

    async def upsert(self, id: str, vector: list[float], metadata: dict[str, Any]) -> None:
        self._vectors[id] = (list(vector), dict(metadata))

    async def query(
        self,
        vector: list[float],
        top_k: int,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        if top_k < 1:
            return []

        matches = [
            VectorMatch(id=key, score=cosine_similarity(vector, stored), metadata=dict(metadata))
            for key, (stored, metadata) in self._vectors.items()
            if not metadata_filter
            or all(metadata.get(k) == v for k, v in metadata_filter.items())
        ]
        # sorted() is stable, so ties stay in insertion order
        matches = sorted(matches, key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def delete(self, id: str) -> int:
        return 1 if self._vectors.pop(id, None) is not None else 0


class PgVectorIndex(VectorIndex):
    """
    knowledge_chunks-backed index using pgvector's cosine distance.

    Metadata is limited to the chunk columns: ``text`` and ``source``.
    """

    backend = "pgvector"

    FILTER_COLUMNS = {"text": KnowledgeChunk.text, "source": KnowledgeChunk.source}

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def upsert(self, id: str, vector: list[float], metadata: dict[str, Any]) -> None:
        async with storage_errors(self.backend), self.session_factory() as session:
            chunk = await session.get(KnowledgeChunk, UUID(id))
            if chunk is None:
                chunk = KnowledgeChunk(id=UUID(id))
                session.add(chunk)
            chunk.text = metadata["text"]
            chunk.source = metadata.get("source")
            chunk.embedding = vector
            await session.commit()

    async def query(
        self,
        vector: list[float],
        top_k: int,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        if top_k < 1:
            return []

        distance = KnowledgeChunk.embedding.cosine_distance(vector)
        stmt = select(KnowledgeChunk, distance.label("distance"))
        for key, value in (metadata_filter or {}).items():
            column = self.FILTER_COLUMNS.get(key)
            if column is None:
                raise ValueError(f"Unsupported metadata filter key: {key}")
            stmt = stmt.where(column == value)
        stmt = stmt.order_by(distance, KnowledgeChunk.created_at, KnowledgeChunk.id).limit(top_k)

        async with storage_errors(self.backend), self.session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        return [
            VectorMatch(
                id=str(chunk.id),
                score=1.0 - float(dist),
                metadata={"text": chunk.text, "source": chunk.source},
            )
            for chunk, dist in rows
        ]

    async def delete(self, id: str) -> int:
        async with storage_errors(self.backend), self.session_factory() as session:
            result = await session.execute(
                delete(KnowledgeChunk).where(KnowledgeChunk.id == UUID(id))
            )
            await session.commit()
            return result.rowcount


__all__ = [
    "InMemoryVectorIndex",
    "PgVectorIndex",
    "VectorIndex",
    "VectorMatch",
    "cosine_similarity",
]

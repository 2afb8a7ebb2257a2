"""
soulycore.core.memory.semantic - Semantic Memory Module

Knowledge chunks embedded into a similarity index. Both the embedder and the
index are injected, so the module can run against pgvector in production and
an in-process index in tests.

Duplicate suppression is exact-text only: before inserting, the index is
queried for a chunk whose text equals the new one. Paraphrases are not
detected and will be stored as separate chunks.
"""

import logging
from uuid import uuid4

from soulycore.core.memory.base import MemoryModule
from soulycore.core.memory.embeddings import Embedder
from soulycore.core.memory.exceptions import ValidationError
from soulycore.core.memory.types import KnowledgeRecord, SemanticFilter, SemanticMatch
from soulycore.core.memory.vector_index import VectorIndex


class SemanticMemoryModule(MemoryModule[KnowledgeRecord, SemanticFilter, SemanticMatch]):
    """
    Knowledge base with similarity search.

    Example:
        >>> semantic = SemanticMemoryModule(HashEmbedder(), InMemoryVectorIndex())
        >>> await semantic.store(KnowledgeRecord(text="Acme Corp ships widgets to Europe"))
        >>> matches = await semantic.query(SemanticFilter(query_text="Who ships widgets?"))
    """

    backend = "semantic"

    def __init__(
        self,
        embedder: Embedder,
        index: VectorIndex,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger)
        self.embedder = embedder
        self.index = index

    async def store(self, record: KnowledgeRecord | str) -> str | None:
        """
        Embed and index a chunk unless identical text is already stored.

        Returns:
            Id of the new chunk, or None if it was a duplicate
        """
        if isinstance(record, str):
            if not record.strip():
                raise ValidationError("Knowledge text must not be empty")
            record = KnowledgeRecord(text=record)

        vector = await self.embedder.embed(record.text)
        existing = await self.index.query(vector, top_k=1, metadata_filter={"text": record.text})
        if existing:
            self.logger.debug(
                "Skipping duplicate knowledge chunk", extra={"chunk_id": existing[0].id}
            )
            return None

        chunk_id = str(uuid4())
        await self.index.upsert(chunk_id, vector, {"text": record.text, "source": record.source})

        self.logger.debug(
            "Stored knowledge chunk", extra={"chunk_id": chunk_id, "source": record.source}
        )
        return chunk_id

    async def query(self, filter: SemanticFilter) -> list[SemanticMatch]:
        """Top-K chunks by descending similarity to ``filter.query_text``."""
        if not filter.query_text.strip():
            return []

        vector = await self.embedder.embed(filter.query_text)
        matches = await self.index.query(vector, top_k=filter.top_k)
        return [
            SemanticMatch(
                id=match.id,
                text=match.metadata.get("text", ""),
                score=match.score,
                source=match.metadata.get("source"),
            )
            for match in matches
        ]

    async def delete(self, chunk_id: str) -> int:
        """Remove a chunk (manual knowledge-base edit)."""
        return await self.index.delete(chunk_id)


__all__ = ["SemanticMemoryModule"]

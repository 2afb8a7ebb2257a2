"""
Unit tests for soulycore.core.memory.semantic and vector_index

Semantic memory runs against the in-process vector index with the hash
embedder, so results are deterministic.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from soulycore.core.memory import (
    HashEmbedder,
    InMemoryVectorIndex,
    KnowledgeRecord,
    PgVectorIndex,
    SemanticFilter,
    SemanticMemoryModule,
    StorageUnavailable,
    ValidationError,
)
from soulycore.models.memory import KnowledgeChunk

# ====================
# Store / dedup
# ====================


@pytest.mark.asyncio
async def test_store_returns_chunk_id(semantic, vector_index):
    chunk_id = await semantic.store(KnowledgeRecord(text="Acme Corp ships widgets to Europe"))

    assert chunk_id is not None
    assert len(vector_index) == 1


@pytest.mark.asyncio
async def test_identical_text_stored_once(semantic, vector_index):
    """Exact duplicates are suppressed."""
    text = "Acme Corp renews its support contract every March"

    first = await semantic.store(text)
    second = await semantic.store(text)

    assert first is not None
    assert second is None
    assert len(vector_index) == 1


@pytest.mark.asyncio
async def test_paraphrase_is_not_deduplicated(semantic, vector_index):
    """Only byte-identical chunks are caught; paraphrases are stored."""
    await semantic.store("Acme Corp renews its support contract every March")
    await semantic.store("Every March, Acme Corp renews its support contract")

    assert len(vector_index) == 2


@pytest.mark.asyncio
async def test_store_records_source(semantic):
    await semantic.store(
        KnowledgeRecord(text="Alice prefers email over phone calls", source="manual")
    )

    matches = await semantic.query(SemanticFilter(query_text="Alice email"))
    assert matches[0].source == "manual"


@pytest.mark.asyncio
async def test_empty_text_rejected(semantic):
    with pytest.raises(ValidationError):
        await semantic.store("   ")


# ====================
# Query
# ====================


@pytest.mark.asyncio
async def test_query_orders_by_descending_similarity(semantic):
    await semantic.store("The weather in Berlin was rainy all week")
    await semantic.store("Alice leads the Acme platform team in Berlin")
    await semantic.store("Alice joined Acme platform team as lead in 2021")

    matches = await semantic.query(
        SemanticFilter(query_text="Alice Acme platform team lead", top_k=3)
    )

    assert len(matches) == 3
    scores = [m.score for m in matches]
    assert scores == sorted(scores, reverse=True)
    assert "weather" in matches[-1].text


@pytest.mark.asyncio
async def test_query_respects_top_k(semantic):
    for i in range(5):
        await semantic.store(f"Project Apollo milestone number {i} was delivered on time")

    matches = await semantic.query(SemanticFilter(query_text="Apollo milestone", top_k=2))
    assert len(matches) == 2


@pytest.mark.asyncio
async def test_query_is_deterministic(semantic):
    for text in [
        "Alice works at Acme Corp in Berlin",
        "Bob works at Globex in Paris",
        "Carol works at Initech in Austin",
    ]:
        await semantic.store(text)

    query = SemanticFilter(query_text="who works where", top_k=3)
    assert await semantic.query(query) == await semantic.query(query)


@pytest.mark.asyncio
async def test_blank_query_returns_nothing(semantic):
    await semantic.store("Alice works at Acme Corp in Berlin")
    assert await semantic.query(SemanticFilter(query_text="  ")) == []


@pytest.mark.asyncio
async def test_delete_chunk(semantic, vector_index):
    chunk_id = await semantic.store("Alice works at Acme Corp in Berlin")

    assert await semantic.delete(chunk_id) == 1
    assert await semantic.delete(chunk_id) == 0
    assert len(vector_index) == 0


@pytest.mark.asyncio
async def test_index_outage_propagates():
    index = MagicMock()
    index.query = AsyncMock(side_effect=StorageUnavailable("pgvector"))
    module = SemanticMemoryModule(HashEmbedder(dimensions=8), index)

    with pytest.raises(StorageUnavailable):
        await module.query(SemanticFilter(query_text="anything"))


# ====================
# InMemoryVectorIndex
# ====================


@pytest.mark.asyncio
async def test_in_memory_index_metadata_filter():
    index = InMemoryVectorIndex()
    await index.upsert("a", [1.0, 0.0], {"text": "alpha"})
    await index.upsert("b", [1.0, 0.0], {"text": "beta"})

    matches = await index.query([1.0, 0.0], top_k=5, metadata_filter={"text": "beta"})
    assert [m.id for m in matches] == ["b"]


@pytest.mark.asyncio
async def test_in_memory_index_ties_keep_insertion_order():
    index = InMemoryVectorIndex()
    for key in ["first", "second", "third"]:
        await index.upsert(key, [0.0, 1.0], {"text": key})

    matches = await index.query([0.0, 1.0], top_k=3)
    assert [m.id for m in matches] == ["first", "second", "third"]


@pytest.mark.asyncio
async def test_in_memory_index_zero_top_k():
    index = InMemoryVectorIndex()
    await index.upsert("a", [1.0], {"text": "alpha"})
    assert await index.query([1.0], top_k=0) == []


# ====================
# PgVectorIndex
# ====================


@pytest.mark.asyncio
async def test_pgvector_index_upsert_and_delete(session_factory):
    index = PgVectorIndex(session_factory)
    vector = await HashEmbedder().embed("Alice works at Acme Corp")

    await index.upsert(
        "6f1d0c1e-0f5a-4b7e-9a59-2d5a0b9e4c11",
        vector,
        {"text": "Alice works at Acme Corp", "source": "manual"},
    )

    async with session_factory() as session:
        chunk = (await session.execute(select(KnowledgeChunk))).scalar_one()
    assert chunk.text == "Alice works at Acme Corp"
    assert chunk.source == "manual"

    assert await index.delete("6f1d0c1e-0f5a-4b7e-9a59-2d5a0b9e4c11") == 1
    assert await index.delete("6f1d0c1e-0f5a-4b7e-9a59-2d5a0b9e4c11") == 0


@pytest.mark.asyncio
async def test_pgvector_index_rejects_unknown_filter_key(session_factory):
    index = PgVectorIndex(session_factory)

    with pytest.raises(ValueError, match="Unsupported metadata filter key"):
        await index.query([0.0] * 768, top_k=1, metadata_filter={"author": "alice"})

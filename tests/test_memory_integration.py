"""
End-to-end test of the memory core

Runs a chat turn through the real modules (SQLite, in-memory vector index,
hash embedder) with a fake LLM and extractor, then checks that the next turn
sees what the first one taught.
"""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from soulycore.core.memory import StructuredFilter
from soulycore.core.pipelines import BackgroundTaskRunner, MemoryExtractor
from soulycore.llm.models import LLMResponse, TokenUsage
from soulycore.models.pipeline import PipelineRunType, RunStatus
from soulycore.services import ChatService, build_memory_core
from soulycore.settings import SoulySettings


class AliceExtractor(MemoryExtractor):
    async def extract(self, text):
        return {
            "entities": [
                {"name": "Alice", "type": "Person", "details": "Works at Acme Corp"},
                {"name": "Acme Corp", "type": "Organization", "details": "Based in Berlin"},
            ],
            "knowledge": ["Alice works at Acme Corp on the Berlin platform team"],
        }


@pytest.fixture
def settings():
    return SoulySettings(_env_file=None, vector_backend="memory", embedding_backend="hash")


@pytest.fixture
def llm():
    service = MagicMock()
    service.generate = AsyncMock(
        return_value=LLMResponse(
            content="Nice to hear about Alice!",
            model="gemini-2.5-flash",
            usage=TokenUsage(input_tokens=20, output_tokens=6, total_tokens=26),
            finish_reason="stop",
        )
    )
    return service


@pytest.mark.asyncio
async def test_turn_extracts_and_next_turn_uses_memory(settings, session_factory, llm):
    core = build_memory_core(settings, session_factory, extractor=AliceExtractor())
    runner = BackgroundTaskRunner()
    service = ChatService(
        llm, core.episodic, core.context_pipeline, core.extraction_pipeline, runner
    )
    conversation_id = uuid4()

    first = await service.handle_turn(conversation_id, "I met Alice from Acme Corp in Berlin")
    await runner.drain()

    assert first.context == ""
    assert runner.failed_count == 0

    entities = await core.structured.query(StructuredFilter(kind="entity"))
    assert {(e.name, e.type) for e in entities} == {
        ("Alice", "Person"),
        ("Acme Corp", "Organization"),
    }

    [extraction_run] = await core.run_logger.list_runs(PipelineRunType.MEMORY_EXTRACTION)
    extraction_run = await core.run_logger.get_run(extraction_run.id)
    assert extraction_run.status == RunStatus.COMPLETED
    assert extraction_run.final_output == "Stored 2 entities. Stored 1 knowledge chunks."
    assert [s.status for s in extraction_run.steps] == ["completed"] * 3

    second = await service.handle_turn(conversation_id, "Where does Alice work?")
    await runner.drain()

    assert "- Alice (Person): Works at Acme Corp" in second.context
    assert "Alice works at Acme Corp on the Berlin platform team" in second.context

    prompt = llm.generate.call_args.args[0][-1].content
    assert prompt.startswith("CONTEXT: You know about these entities:")
    assert prompt.endswith("\n\nWhere does Alice work?")

    # Re-extracting the same facts does not duplicate memory
    entities = await core.structured.query(StructuredFilter(kind="entity"))
    assert len(entities) == 2
    context_runs = await core.run_logger.list_runs(PipelineRunType.CONTEXT_ASSEMBLY)
    assert len(context_runs) == 2
    assert all(r.status == RunStatus.COMPLETED for r in context_runs)


class SkyExtractor(MemoryExtractor):
    """Finds Alice, keeps one statement and proposes one too short to store."""

    def __init__(self):
        self.texts = []

    async def extract(self, text):
        self.texts.append(text)
        return {
            "entities": [{"name": "Alice", "type": "Person", "details": "Works at Acme Corp"}],
            "knowledge": ["Alice works at Acme Corp.", "Sky is blue"],
        }


@pytest.mark.asyncio
async def test_extraction_of_mixed_text(settings, session_factory):
    text = "Alice works at Acme Corp. The sky is blue today and nothing else happened."
    extractor = SkyExtractor()
    core = build_memory_core(settings, session_factory, extractor=extractor)

    summary = await core.extraction_pipeline.run(text)

    assert extractor.texts == [text]
    [alice] = await core.structured.query(StructuredFilter(kind="entity"))
    assert (alice.name, alice.type) == ("Alice", "Person")
    assert summary.knowledge_stored == 1
    assert summary.knowledge_skipped_short == 1

    run = await core.run_logger.get_run(summary.run_id)
    assert run.status == RunStatus.COMPLETED
    assert [s.step_name for s in run.steps] == [
        "ExtractDataWithLLM",
        "StoreEntities",
        "StoreKnowledge",
    ]
    assert all(s.status == RunStatus.COMPLETED for s in run.steps)

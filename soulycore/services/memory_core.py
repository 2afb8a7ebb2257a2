"""
soulycore.services.memory_core - Wiring for the memory core

Builds the memory modules and pipelines from settings so entry points (CLI,
chat service) share one construction path.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from soulycore.core.memory import (
    Embedder,
    EpisodicMemoryModule,
    HashEmbedder,
    InMemoryVectorIndex,
    LLMEmbedder,
    PgVectorIndex,
    SemanticMemoryModule,
    StructuredMemoryModule,
    VectorIndex,
)
from soulycore.core.pipelines import (
    ContextAssemblyPipeline,
    LLMExtractor,
    MemoryExtractionPipeline,
    MemoryExtractor,
    RunLogger,
)
from soulycore.llm import LLMService
from soulycore.models.memory import EMBEDDING_DIMENSIONS
from soulycore.settings import SoulySettings

logger = logging.getLogger(__name__)


@dataclass
class MemoryCore:
    """Every memory component, built against one session factory."""

    episodic: EpisodicMemoryModule
    structured: StructuredMemoryModule
    semantic: SemanticMemoryModule
    run_logger: RunLogger
    context_pipeline: ContextAssemblyPipeline
    extraction_pipeline: MemoryExtractionPipeline | None
    llm_service: LLMService | None = None


def build_embedder(settings: SoulySettings, llm_service: LLMService | None = None) -> Embedder:
    """Embedder selected by ``settings.embedding_backend``."""
    if settings.embedding_backend == "llm":
        if llm_service is None:
            raise ValueError("embedding_backend 'llm' requires an LLM service")
        return LLMEmbedder(llm_service, dimensions=settings.embedding_dimensions)
    return HashEmbedder(dimensions=settings.embedding_dimensions)


def build_vector_index(
    settings: SoulySettings,
    session_factory: async_sessionmaker[AsyncSession],
) -> VectorIndex:
    """
    Vector index selected by ``settings.vector_backend``.

    Raises:
        ValueError: If pgvector is selected and ``embedding_dimensions`` does
            not match the knowledge_chunks column
    """
    if settings.vector_backend == "memory":
        return InMemoryVectorIndex()
    if settings.embedding_dimensions != EMBEDDING_DIMENSIONS:
        raise ValueError(
            f"embedding_dimensions={settings.embedding_dimensions} does not match the "
            f"pgvector column ({EMBEDDING_DIMENSIONS}); use vector_backend 'memory' "
            "or a matching embedding size"
        )
    return PgVectorIndex(session_factory)


def build_memory_core(
    settings: SoulySettings,
    session_factory: async_sessionmaker[AsyncSession],
    llm_service: LLMService | None = None,
    extractor: MemoryExtractor | None = None,
) -> MemoryCore:
    """
    Assemble the memory core.

    Extraction is only wired when an extractor is given or an LLM service is
    available to build one.
    """
    episodic = EpisodicMemoryModule(session_factory)
    structured = StructuredMemoryModule(session_factory)
    semantic = SemanticMemoryModule(
        build_embedder(settings, llm_service),
        build_vector_index(settings, session_factory),
    )
    run_logger = RunLogger(session_factory)

    if extractor is None and llm_service is not None:
        extractor = LLMExtractor(llm_service, temperature=settings.extraction_temperature)

    extraction_pipeline = None
    if extractor is not None:
        extraction_pipeline = MemoryExtractionPipeline(
            extractor,
            structured,
            semantic,
            run_logger,
            min_words=settings.knowledge_min_words,
        )
    else:
        logger.info("No extractor configured, memory extraction disabled")

    context_pipeline = ContextAssemblyPipeline(
        structured, semantic, run_logger=run_logger, top_k=settings.context_top_k
    )

    return MemoryCore(
        episodic=episodic,
        structured=structured,
        semantic=semantic,
        run_logger=run_logger,
        context_pipeline=context_pipeline,
        extraction_pipeline=extraction_pipeline,
        llm_service=llm_service,
    )


__all__ = ["MemoryCore", "build_embedder", "build_memory_core", "build_vector_index"]

"""
soulycore.core.pipelines.memory_extraction - Memory Extraction Pipeline (write path)

Analyzes a completed conversation turn and persists what it finds:

1. ExtractDataWithLLM - the extractor returns entities and knowledge statements
2. StoreEntities      - each entity is upserted into structured memory
3. StoreKnowledge     - each statement of at least ``min_words`` words is stored
                        in semantic memory (which drops exact duplicates)

Every step is recorded through the RunLogger. A failing step is recorded as
``failed``, the remaining steps are skipped and the run is marked ``failed``.
Steps that finished before the failure stay ``completed``.
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from soulycore.core.memory.exceptions import ExtractionFormatError, ValidationError
from soulycore.core.memory.semantic import SemanticMemoryModule
from soulycore.core.memory.structured import StructuredMemoryModule
from soulycore.core.memory.types import KnowledgeRecord
from soulycore.core.pipelines.run_logger import RunLogger
from soulycore.models.pipeline import PipelineRunType

if TYPE_CHECKING:
    from soulycore.llm import LLMService

# Knowledge statements shorter than this are never stored
MIN_KNOWLEDGE_WORDS = 5

EXTRACTION_PROMPT = """\
From the following text, perform two tasks:
1. Extract key entities (people, places, organizations, projects, concepts).
2. Extract distinct, self-contained chunks of information that could be useful knowledge for the future.

Return the result as a single JSON object with two keys: "entities" and "knowledge".
- "entities" should be an array of objects, each with "name", "type", and "details" properties.
- "knowledge" should be an array of strings. Do not extract trivial statements.

Text:
---
{text}
---"""


# ==========================================
# Extraction schema
# ==========================================


class ExtractedEntity(BaseModel):
    name: str
    type: str
    details: str


class ExtractedData(BaseModel):
    """Shape the extractor must return."""

    entities: list[ExtractedEntity]
    knowledge: list[str]


class KnowledgeOutcome(BaseModel):
    """Output of the StoreKnowledge step."""

    stored: int = 0
    skipped_short: int = 0
    skipped_duplicate: int = 0
    chunk_ids: list[str] = Field(default_factory=list)


class ExtractionSummary(BaseModel):
    """Result of one extraction run."""

    run_id: UUID
    entities_stored: int = 0
    knowledge_stored: int = 0
    knowledge_skipped_short: int = 0
    knowledge_skipped_duplicate: int = 0

    @property
    def final_output(self) -> str:
        return (
            f"Stored {self.entities_stored} entities. "
            f"Stored {self.knowledge_stored} knowledge chunks."
        )


# ==========================================
# Extractors
# ==========================================


class MemoryExtractor(ABC):
    """Turns free text into entities and knowledge statements."""

    @abstractmethod
    async def extract(self, text: str) -> ExtractedData:
        """
        Raises:
            ExtractionFormatError: If the response is empty or has the wrong shape
        """


class LLMExtractor(MemoryExtractor):
    """
    Extractor backed by the LLM service's structured output mode.

    Example:
        >>> extractor = LLMExtractor(LLMService(settings.build_llm_config()))
        >>> data = await extractor.extract("Alice works at Acme Corp.")
        >>> data.entities[0].name
        'Alice'
    """

    def __init__(
        self,
        llm_service: "LLMService",
        temperature: float = 0.2,
        max_tokens: int | None = None,
    ) -> None:
        self.llm_service = llm_service
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def extract(self, text: str) -> ExtractedData:
        try:
            _, parsed = await self.llm_service.generate_structured(
                EXTRACTION_PROMPT.format(text=text),
                response_format=ExtractedData,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except ValueError as e:
            # JSONDecodeError and pydantic's ValidationError are both ValueErrors
            raise ExtractionFormatError(f"Extractor returned malformed data: {e}") from e

        if parsed is None:
            raise ExtractionFormatError("Extractor returned an empty response")
        return parsed


# ==========================================
# Pipeline
# ==========================================


class MemoryExtractionPipeline:
    """
    Write path: extract from a turn and fan out into structured and semantic memory.

    Example:
        >>> pipeline = MemoryExtractionPipeline(extractor, structured, semantic, run_logger)
        >>> summary = await pipeline.run("User: I met Alice from Acme\\nModel: Noted!")
        >>> summary.final_output
        'Stored 2 entities. Stored 0 knowledge chunks.'
    """

    def __init__(
        self,
        extractor: MemoryExtractor,
        structured: StructuredMemoryModule,
        semantic: SemanticMemoryModule,
        run_logger: RunLogger,
        min_words: int = MIN_KNOWLEDGE_WORDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self.extractor = extractor
        self.structured = structured
        self.semantic = semantic
        self.run_logger = run_logger
        self.min_words = min_words
        self.logger = logger or logging.getLogger(__name__)

    async def run(self, text_to_analyze: str) -> ExtractionSummary:
        """
        Allocate a MemoryExtraction run and execute the pipeline against it.

        Raises:
            ValidationError: If there is no text to analyze (no run is created)
        """
        if not text_to_analyze or not text_to_analyze.strip():
            raise ValidationError("Nothing to extract: text is empty")

        run_id = await self.run_logger.create_run(PipelineRunType.MEMORY_EXTRACTION)
        return await self.extract_and_store(text_to_analyze, run_id)

    async def extract_and_store(self, text_to_analyze: str, run_id: UUID) -> ExtractionSummary:
        """
        Run the three steps against a pre-created run.

        Args:
            text_to_analyze: Turn text, usually "User: ...\\nModel: ..."
            run_id: Run in ``running`` state allocated by the caller

        Returns:
            Counts of what was stored and skipped

        Raises:
            Exception: Whatever failed the step; the run is already marked failed
        """
        log_extra = {"run_id": str(run_id)}
        self.logger.info("Memory extraction started", extra=log_extra)

        try:
            extracted = await self.run_logger.run_step(
                run_id,
                1,
                "ExtractDataWithLLM",
                lambda: self._extract(text_to_analyze),
                input_payload={"text": text_to_analyze},
            )
            entities_stored = await self.run_logger.run_step(
                run_id,
                2,
                "StoreEntities",
                lambda: self._store_entities(extracted.entities),
                input_payload={"entities": len(extracted.entities)},
                output=lambda stored: {"stored": stored},
            )
            knowledge = await self.run_logger.run_step(
                run_id,
                3,
                "StoreKnowledge",
                lambda: self._store_knowledge(extracted.knowledge),
                input_payload={"knowledge": len(extracted.knowledge)},
            )
        except Exception as e:
            self.logger.error(f"Memory extraction failed: {e}", extra=log_extra)
            await self._mark_failed(run_id, e)
            raise

        summary = ExtractionSummary(
            run_id=run_id,
            entities_stored=entities_stored,
            knowledge_stored=knowledge.stored,
            knowledge_skipped_short=knowledge.skipped_short,
            knowledge_skipped_duplicate=knowledge.skipped_duplicate,
        )
        await self.run_logger.complete_run(run_id, summary.final_output)

        self.logger.info(
            f"Memory extraction completed: {summary.final_output}",
            extra={**log_extra, "entities": entities_stored, "knowledge": knowledge.stored},
        )
        return summary

    async def _extract(self, text: str) -> ExtractedData:
        result: Any = await self.extractor.extract(text)
        if isinstance(result, ExtractedData):
            return result
        if result is None:
            raise ExtractionFormatError("Extractor returned an empty response")
        try:
            return ExtractedData.model_validate(result)
        except PydanticValidationError as e:
            raise ExtractionFormatError(f"Extractor returned the wrong shape: {e}") from e

    async def _store_entities(self, entities: list[ExtractedEntity]) -> int:
        stored = 0
        for entity in entities:
            await self.structured.store({"kind": "entity", "data": entity.model_dump()})
            stored += 1
        return stored

    async def _store_knowledge(self, chunks: list[str]) -> KnowledgeOutcome:
        outcome = KnowledgeOutcome()
        for chunk in chunks:
            if len(chunk.split()) < self.min_words:
                outcome.skipped_short += 1
                continue
            chunk_id = await self.semantic.store(KnowledgeRecord(text=chunk, source="extraction"))
            if chunk_id is None:
                outcome.skipped_duplicate += 1
            else:
                outcome.stored += 1
                outcome.chunk_ids.append(chunk_id)
        return outcome

    async def _mark_failed(self, run_id: UUID, error: Exception) -> None:
        try:
            await self.run_logger.fail_run(run_id, error)
        except Exception:
            # Keep the original error; the run row stays "running"
            self.logger.error(
                f"Could not mark run {run_id} as failed",
                exc_info=True,
                extra={"run_id": str(run_id)},
            )


__all__ = [
    "EXTRACTION_PROMPT",
    "ExtractedData",
    "ExtractedEntity",
    "ExtractionSummary",
    "KnowledgeOutcome",
    "LLMExtractor",
    "MemoryExtractionPipeline",
    "MemoryExtractor",
]

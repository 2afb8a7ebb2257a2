"""
soulycore.core.pipelines.context_assembly - Context Assembly Pipeline (read path)

Builds the context block prepended to the user's prompt on every turn. Sources
are read in a fixed order and each non-empty source becomes one section:

1. Entities (structured memory, all of them, newest first)
2. Knowledge (semantic memory, top-K by similarity to the user query)
3. Mentioned contacts (passed in by the caller)

Sections are joined by a blank line. The pipeline never writes to memory.

Degradation: if the structured or semantic store raises StorageUnavailable,
that section is omitted whole, a warning is logged and the source is reported
in ``AssembledContext.degraded_sources``. Any other error propagates.

Run logging is best effort: a run-log outage stops recording for the rest of
the call and never fails the assembly.
"""

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import UUID

from pydantic import BaseModel, Field

from soulycore.core.memory.exceptions import StorageUnavailable
from soulycore.core.memory.semantic import SemanticMemoryModule
from soulycore.core.memory.structured import EMPTY_DETAILS, StructuredMemoryModule
from soulycore.core.memory.types import SemanticFilter, SemanticMatch, StructuredFilter
from soulycore.core.pipelines.run_logger import RunLogger
from soulycore.models.memory import Entity
from soulycore.models.pipeline import PipelineRunType, RunStatus

ENTITIES_HEADER = "CONTEXT: You know about these entities:"
KNOWLEDGE_HEADER = "CONTEXT: Here is some relevant information from your knowledge base:"
CONTACTS_HEADER = (
    "CONTEXT: You have the following context about people mentioned in this message:"
)

SECTION_SEPARATOR = "\n\n"
MISSING = "N/A"


class ContactLike(Protocol):
    """Anything carrying the contact fields rendered into context."""

    name: str
    email: str | None
    company: str | None
    notes: str | None


# ==========================================
# Rendering
# ==========================================


def format_entities(entities: Sequence[Entity]) -> str | None:
    """``- {name} ({type}): {details}`` per entity, under the entities header."""
    if not entities:
        return None
    lines = [
        f"- {e.name} ({e.type}): {e.details if e.details is not None else EMPTY_DETAILS}"
        for e in entities
    ]
    return ENTITIES_HEADER + "\n" + "\n".join(lines)


def format_knowledge(matches: Sequence[SemanticMatch]) -> str | None:
    """Chunk texts in the given (descending similarity) order."""
    if not matches:
        return None
    return KNOWLEDGE_HEADER + "\n" + "\n\n".join(m.text for m in matches)


def format_contacts(contacts: Sequence[ContactLike]) -> str | None:
    """One indented block per contact; missing fields render as N/A."""
    if not contacts:
        return None
    blocks = [
        f"- Name: {c.name}\n"
        f"  Email: {c.email or MISSING}\n"
        f"  Company: {c.company or MISSING}\n"
        f"  Notes: {c.notes or MISSING}"
        for c in contacts
    ]
    return CONTACTS_HEADER + "\n" + "\n\n".join(blocks)


# ==========================================
# Results
# ==========================================


class ContextSection(BaseModel):
    """One rendered section of the context block."""

    source: str
    text: str


class AssembledContext(BaseModel):
    """Context block plus what went into it."""

    text: str = ""
    sections: list[ContextSection] = Field(default_factory=list)
    degraded_sources: list[str] = Field(default_factory=list)
    run_id: UUID | None = None

    @property
    def is_empty(self) -> bool:
        return not self.text


@dataclass
class _SourceResult:
    source: str
    text: str | None
    count: int = 0
    degraded: bool = False

    def summary(self) -> dict[str, Any]:
        return {"count": self.count, "rendered": self.text is not None, "degraded": self.degraded}


# ==========================================
# Pipeline
# ==========================================


class ContextAssemblyPipeline:
    """
    Per-turn context builder.

    Safe to call concurrently and repeatedly: every call is a fresh set of
    reads and the output is a pure function of what those reads return.

    Example:
        >>> pipeline = ContextAssemblyPipeline(structured, semantic)
        >>> context = await pipeline.assemble_context(
        ...     conversation_id=conv_id,
        ...     user_query="What does Alice do?",
        ... )
    """

    def __init__(
        self,
        structured: StructuredMemoryModule,
        semantic: SemanticMemoryModule,
        run_logger: RunLogger | None = None,
        top_k: int = 3,
        logger: logging.Logger | None = None,
    ) -> None:
        self.structured = structured
        self.semantic = semantic
        self.run_logger = run_logger
        self.top_k = top_k
        self.logger = logger or logging.getLogger(__name__)

    async def assemble_context(
        self,
        conversation_id: UUID | None,
        user_query: str,
        mentioned_contacts: Sequence[ContactLike] | None = None,
    ) -> str:
        """Return only the context string (empty if every section is empty)."""
        assembled = await self.assemble(conversation_id, user_query, mentioned_contacts)
        return assembled.text

    async def assemble(
        self,
        conversation_id: UUID | None,
        user_query: str,
        mentioned_contacts: Sequence[ContactLike] | None = None,
    ) -> AssembledContext:
        """
        Query every source in order and render the non-empty sections.

        Args:
            conversation_id: Conversation the turn belongs to (used for logging)
            user_query: The user's message; drives the knowledge search
            mentioned_contacts: Contacts the user referenced explicitly

        Returns:
            AssembledContext with the joined text, the sections and any
            sources that were skipped because their store was unavailable
        """
        contacts = list(mentioned_contacts or [])
        recorder = _AssemblyRecorder(self.run_logger, self.logger)
        await recorder.start()
        log_extra = {"conversation_id": str(conversation_id) if conversation_id else None}

        try:
            results = [
                await recorder.step(
                    1,
                    "FetchEntities",
                    lambda: self._fetch_entities(log_extra),
                    {"kind": "entity"},
                ),
                await recorder.step(
                    2,
                    "FetchKnowledge",
                    lambda: self._fetch_knowledge(user_query, log_extra),
                    {"query": user_query, "top_k": self.top_k},
                ),
                await recorder.step(
                    3,
                    "FormatContacts",
                    lambda: self._format_contacts(contacts),
                    {"contacts": [c.name for c in contacts]},
                ),
            ]
        except Exception as e:
            await recorder.finish(error=e)
            raise

        sections = [ContextSection(source=r.source, text=r.text) for r in results if r.text]
        assembled = AssembledContext(
            text=SECTION_SEPARATOR.join(s.text for s in sections),
            sections=sections,
            degraded_sources=[r.source for r in results if r.degraded],
            run_id=recorder.run_id,
        )

        self.logger.debug(
            f"Assembled context with {len(sections)} section(s)",
            extra={**log_extra, "chars": len(assembled.text)},
        )
        await recorder.finish(final_output=assembled.text)
        return assembled

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    async def _fetch_entities(self, log_extra: dict[str, Any]) -> _SourceResult:
        try:
            entities = await self.structured.query(StructuredFilter(kind="entity"))
        except StorageUnavailable as e:
            self.logger.warning(f"Omitting entities from context: {e}", extra=log_extra)
            return _SourceResult("entities", None, degraded=True)
        return _SourceResult("entities", format_entities(entities), count=len(entities))

    async def _fetch_knowledge(self, user_query: str, log_extra: dict[str, Any]) -> _SourceResult:
        try:
            matches = await self.semantic.query(
                SemanticFilter(query_text=user_query, top_k=self.top_k)
            )
        except StorageUnavailable as e:
            self.logger.warning(f"Omitting knowledge from context: {e}", extra=log_extra)
            return _SourceResult("knowledge", None, degraded=True)
        return _SourceResult("knowledge", format_knowledge(matches), count=len(matches))

    async def _format_contacts(self, contacts: Sequence[ContactLike]) -> _SourceResult:
        return _SourceResult("contacts", format_contacts(contacts), count=len(contacts))


# ==========================================
# Run logging (optional)
# ==========================================


class _AssemblyRecorder:
    """
    Run log for one assembly call.

    The first run-log outage is logged and ends recording for the rest of the
    call; it never fails the assembly itself. The run row is then left
    ``running``.
    """

    def __init__(self, run_logger: RunLogger | None, logger: logging.Logger) -> None:
        self.run_logger = run_logger
        self.logger = logger
        self.run_id: UUID | None = None
        self.recording = False

    async def start(self) -> None:
        if self.run_logger is None:
            return
        try:
            self.run_id = await self.run_logger.create_run(PipelineRunType.CONTEXT_ASSEMBLY)
        except StorageUnavailable as e:
            self.logger.warning(f"Context assembly will not be recorded: {e}")
            return
        self.recording = True

    async def step(
        self,
        order: int,
        name: str,
        func: Callable[[], Awaitable[_SourceResult]],
        input_payload: dict[str, Any],
    ) -> _SourceResult:
        started = time.perf_counter()
        try:
            result = await func()
        except Exception as e:
            await self._record(
                order,
                name,
                RunStatus.FAILED,
                started,
                input_payload,
                error_message=str(e) or type(e).__name__,
            )
            raise

        await self._record(
            order, name, RunStatus.COMPLETED, started, input_payload, output=result.summary()
        )
        return result

    async def _record(
        self,
        order: int,
        name: str,
        status: RunStatus,
        started: float,
        input_payload: dict[str, Any],
        output: dict[str, Any] | None = None,
        error_message: str | None = None,
    ) -> None:
        if not self.recording or self.run_logger is None or self.run_id is None:
            return
        try:
            await self.run_logger.record_step(
                self.run_id,
                order,
                name,
                status,
                duration_ms=int((time.perf_counter() - started) * 1000),
                input_payload=input_payload,
                output_payload=output,
                error_message=error_message,
            )
        except StorageUnavailable as e:
            self._stop(e)

    async def finish(
        self,
        final_output: str | None = None,
        error: BaseException | None = None,
    ) -> None:
        if not self.recording or self.run_logger is None or self.run_id is None:
            return
        try:
            if error is None:
                await self.run_logger.complete_run(self.run_id, final_output)
            else:
                await self.run_logger.fail_run(self.run_id, error)
        except StorageUnavailable as e:
            self._stop(e)

    def _stop(self, error: StorageUnavailable) -> None:
        self.recording = False
        self.logger.warning(
            f"Stopped recording context assembly run {self.run_id}: {error}",
            extra={"run_id": str(self.run_id)},
        )


__all__ = [
    "CONTACTS_HEADER",
    "ENTITIES_HEADER",
    "KNOWLEDGE_HEADER",
    "AssembledContext",
    "ContactLike",
    "ContextAssemblyPipeline",
    "ContextSection",
    "format_contacts",
    "format_entities",
    "format_knowledge",
]

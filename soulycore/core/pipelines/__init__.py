"""
soulycore.core.pipelines - Memory Pipelines

- **Context Assembly** (read path): builds the per-turn context block from
  structured memory, semantic memory and mentioned contacts
- **Memory Extraction** (write path): extracts entities and knowledge from a
  finished turn and stores them, recording every step
- **RunLogger**: durable run/step audit trail for both pipelines
- **BackgroundTaskRunner**: owns fire-and-forget extraction tasks
"""

from soulycore.core.pipelines.background import BackgroundTaskRunner
from soulycore.core.pipelines.context_assembly import (
    AssembledContext,
    ContextAssemblyPipeline,
    ContextSection,
)
from soulycore.core.pipelines.memory_extraction import (
    ExtractedData,
    ExtractedEntity,
    ExtractionSummary,
    LLMExtractor,
    MemoryExtractionPipeline,
    MemoryExtractor,
)
from soulycore.core.pipelines.run_logger import RunLogger

__all__ = [
    "AssembledContext",
    "BackgroundTaskRunner",
    "ContextAssemblyPipeline",
    "ContextSection",
    "ExtractedData",
    "ExtractedEntity",
    "ExtractionSummary",
    "LLMExtractor",
    "MemoryExtractionPipeline",
    "MemoryExtractor",
    "RunLogger",
]

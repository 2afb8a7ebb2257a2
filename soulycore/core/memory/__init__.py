"""
soulycore.core.memory - Memory Modules

Three independent modules behind one store / query / delete contract:

- **Episodic Memory**: conversation turns
  - Append-only, ordered by turn within a conversation

- **Structured Memory**: entities and contacts
  - Upsert by natural identity: entity (name, type), contact (name, email)
  - Tagged-union input validated per kind

- **Semantic Memory**: knowledge chunks
  - Injectable embedder and vector index
  - Exact-text duplicate suppression

Example:
    >>> from soulycore.core.memory import (
    ...     EpisodicMemoryModule,
    ...     HashEmbedder,
    ...     InMemoryVectorIndex,
    ...     SemanticMemoryModule,
    ...     StructuredMemoryModule,
    ... )
    >>>
    >>> structured = StructuredMemoryModule(session_factory)
    >>> await structured.store(
    ...     {"kind": "entity", "data": {"name": "Alice", "type": "Person"}}
    ... )
    >>>
    >>> semantic = SemanticMemoryModule(HashEmbedder(), InMemoryVectorIndex())
    >>> await semantic.store("Acme Corp renews its contract every March")
"""

from soulycore.core.memory.base import MemoryModule
from soulycore.core.memory.embeddings import Embedder, HashEmbedder, LLMEmbedder
from soulycore.core.memory.episodic import EpisodicMemoryModule
from soulycore.core.memory.exceptions import (
    ExtractionFormatError,
    MemoryModuleError,
    StorageUnavailable,
    ValidationError,
)
from soulycore.core.memory.semantic import SemanticMemoryModule
from soulycore.core.memory.structured import StructuredMemoryModule
from soulycore.core.memory.types import (
    ContactData,
    ContactRecord,
    EntityData,
    EntityRecord,
    EpisodicFilter,
    EpisodicRecord,
    KnowledgeRecord,
    SemanticFilter,
    SemanticMatch,
    StructuredFilter,
)
from soulycore.core.memory.vector_index import (
    InMemoryVectorIndex,
    PgVectorIndex,
    VectorIndex,
    VectorMatch,
)

__all__ = [
    "ContactData",
    "ContactRecord",
    "Embedder",
    "EntityData",
    "EntityRecord",
    "EpisodicFilter",
    "EpisodicMemoryModule",
    "EpisodicRecord",
    "ExtractionFormatError",
    "HashEmbedder",
    "InMemoryVectorIndex",
    "KnowledgeRecord",
    "LLMEmbedder",
    "MemoryModule",
    "MemoryModuleError",
    "PgVectorIndex",
    "SemanticFilter",
    "SemanticMatch",
    "SemanticMemoryModule",
    "StorageUnavailable",
    "StructuredFilter",
    "StructuredMemoryModule",
    "ValidationError",
    "VectorIndex",
    "VectorMatch",
]

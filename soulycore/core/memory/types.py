"""
soulycore.core.memory.types - Memory record and filter types

Pydantic models passed across the Memory Module interface. Structured memory
uses a tagged union (``kind`` = "entity" | "contact") so that each record kind
is validated against its own required fields.
"""

import json
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter, field_validator

# ==========================================
# Episodic
# ==========================================


class EpisodicRecord(BaseModel):
    """One conversation turn to append."""

    conversation_id: UUID
    role: Literal["user", "model"]
    content: str
    token_count: int | None = None
    is_bookmarked: bool = False


class EpisodicFilter(BaseModel):
    """Select all turns of one conversation."""

    conversation_id: UUID


# ==========================================
# Structured
# ==========================================


class EntityData(BaseModel):
    """Fields of an entity. Identity is (name, type)."""

    id: UUID | None = None
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=255)
    details: str | None = None

    @field_validator("name", "type", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("details", mode="before")
    @classmethod
    def _serialize_details(cls, value: Any) -> Any:
        # JSON blobs are stored as text
        if isinstance(value, dict | list):
            return json.dumps(value, sort_keys=True)
        return value


class ContactData(BaseModel):
    """Fields of a contact. Identity is (name, email)."""

    id: UUID | None = None
    name: str = Field(min_length=1, max_length=255)
    email: str | None = None
    company: str | None = None
    phone: str | None = None
    notes: str | None = None
    tags: list[str] | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class EntityRecord(BaseModel):
    kind: Literal["entity"] = "entity"
    data: EntityData


class ContactRecord(BaseModel):
    kind: Literal["contact"] = "contact"
    data: ContactData


StructuredRecord = Annotated[EntityRecord | ContactRecord, Field(discriminator="kind")]

structured_record_adapter: TypeAdapter[EntityRecord | ContactRecord] = TypeAdapter(
    StructuredRecord
)


class StructuredFilter(BaseModel):
    """
    Query filter for structured memory.

    ``id`` is an exact match; ``name`` is a case-insensitive substring match
    (contacts only). With neither, every record of ``kind`` is returned.
    """

    kind: Literal["entity", "contact"]
    id: UUID | None = None
    name: str | None = None


# ==========================================
# Semantic
# ==========================================


class KnowledgeRecord(BaseModel):
    """A knowledge chunk to embed and index."""

    text: str = Field(min_length=1)
    source: str = "extraction"


class SemanticFilter(BaseModel):
    """Nearest-neighbour query."""

    query_text: str
    top_k: int = Field(default=3, ge=1)


class SemanticMatch(BaseModel):
    """A knowledge chunk returned by similarity search."""

    id: str
    text: str
    score: float
    source: str | None = None


__all__ = [
    "ContactData",
    "ContactRecord",
    "EntityData",
    "EntityRecord",
    "EpisodicFilter",
    "EpisodicRecord",
    "KnowledgeRecord",
    "SemanticFilter",
    "SemanticMatch",
    "StructuredFilter",
    "StructuredRecord",
    "structured_record_adapter",
]

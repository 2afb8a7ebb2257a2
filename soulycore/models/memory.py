"""
soulycore.models.memory - Memory Store Models

Row models backing the memory modules:
- Entity: named, typed facts (structured memory)
- Contact: people / organizations (structured memory)
- Message: conversation turns (episodic memory)
- KnowledgeChunk: embedded text chunks (semantic memory, pgvector index)
"""

from uuid import UUID

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Boolean,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column

from soulycore.models.base import IdentifiedModel, JSONType

# Dimensionality of the knowledge_chunks.embedding column
EMBEDDING_DIMENSIONS = 768


class Entity(IdentifiedModel):
    """
    A named, typed fact extracted from conversation.

    Identity is the (name, type) pair; storing an existing pair updates
    ``details`` and refreshes ``created_at``.

    Example:
        >>> entity = Entity(name="Alice", type="Person", details="Works at Acme Corp")
    """

    __tablename__ = "entities"

    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Entity name")

    type: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="Entity type (Person, Organization, Project...)"
    )

    details: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Free text or serialized JSON details"
    )

    __table_args__ = (
        UniqueConstraint("name", "type", name="uq_entities_name_type"),
        Index("idx_entities_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Entity(id={self.id}, name={self.name!r}, type={self.type!r})>"


class Contact(IdentifiedModel):
    """
    A person or organization record.

    Identity is the (name, email) pair. Rows without an email never collide,
    matching the backing store's NULL semantics for unique constraints.
    """

    __tablename__ = "contacts"

    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Display name")

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    company: Mapped[str | None] = mapped_column(String(255), nullable=True)

    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    tags: Mapped[list[str] | None] = mapped_column(
        JSONType, nullable=True, comment="Free-form labels"
    )

    __table_args__ = (
        UniqueConstraint("name", "email", name="uq_contacts_name_email"),
        Index("idx_contacts_name", "name"),
    )

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, name={self.name!r})>"


class Message(IdentifiedModel):
    """
    One conversation turn (episodic memory).

    ``turn_index`` is assigned on append and is strictly increasing within a
    conversation, so reads return turns in submission order.
    """

    __tablename__ = "messages"

    conversation_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        comment="Conversation this turn belongs to",
    )

    role: Mapped[str] = mapped_column(String(20), nullable=False, comment="user | model")

    content: Mapped[str] = mapped_column(Text, nullable=False)

    turn_index: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Position of the turn within its conversation"
    )

    token_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_bookmarked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    __table_args__ = (
        UniqueConstraint("conversation_id", "turn_index", name="uq_messages_conversation_turn"),
        Index("idx_messages_conversation", "conversation_id", "turn_index"),
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, role={self.role}, turn={self.turn_index})>"


class KnowledgeChunk(IdentifiedModel):
    """
    A self-contained piece of extracted text with its embedding.

    Immutable once stored. Used by the pgvector-backed vector index.
    """

    __tablename__ = "knowledge_chunks"

    text: Mapped[str] = mapped_column(Text, nullable=False, comment="Chunk text")

    source: Mapped[str | None] = mapped_column(
        String(100), nullable=True, comment="Where the chunk came from (extraction, manual)"
    )

    embedding: Mapped[list[float]] = mapped_column(
        Vector(EMBEDDING_DIMENSIONS),
        nullable=False,
        comment=f"{EMBEDDING_DIMENSIONS}-dim embedding for similarity search",
    )

    __table_args__ = (
        Index("idx_knowledge_text", "text", postgresql_using="hash"),
        Index(
            "idx_knowledge_embedding",
            "embedding",
            postgresql_using="hnsw",
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
    )

    def __repr__(self) -> str:
        return f"<KnowledgeChunk(id={self.id}, source={self.source})>"


__all__ = ["EMBEDDING_DIMENSIONS", "Contact", "Entity", "KnowledgeChunk", "Message"]

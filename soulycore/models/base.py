"""
soulycore.models.base - Base SQLAlchemy Models

Provides base classes with common functionality:
- Base: SQLAlchemy declarative base
- CreatedAtModel: created_at timestamp set on insert
- IdentifiedModel: UUID primary key + created_at

Column types are chosen so the same metadata works against PostgreSQL
(production) and SQLite (tests).
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base.

    All models inherit from this class.
    """

    pass


class CreatedAtModel:
    """
    Mixin for models with a creation timestamp.

    The value is generated in Python so that upserts can refresh it
    explicitly and ordering is not limited by the database clock resolution.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When this record was created or last refreshed (UTC)",
    )


class IdentifiedModel(CreatedAtModel, Base):
    """
    Base class for records with a UUID primary key.

    Provides:
    - id: UUID primary key
    - created_at timestamp
    """

    __abstract__ = True

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
        comment="Unique identifier",
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<{self.__class__.__name__}(id={self.id})>"

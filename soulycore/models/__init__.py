"""
soulycore.models - SQLAlchemy Database Models

Models are organized by domain:
- base: Base model classes with common functionality
- memory: Memory stores (Entity, Contact, Message, KnowledgeChunk)
- pipeline: Run audit trail (PipelineRun, PipelineRunStep)

Usage:
    >>> from soulycore.models import Entity
    >>> from soulycore.models.database import get_engine, get_sessionmaker
    >>>
    >>> session_factory = get_sessionmaker(get_engine())
    >>> async with session_factory() as session:
    ...     entities = (await session.execute(select(Entity))).scalars().all()
"""

from soulycore.models.base import Base
from soulycore.models.memory import (
    EMBEDDING_DIMENSIONS,
    Contact,
    Entity,
    KnowledgeChunk,
    Message,
)
from soulycore.models.pipeline import (
    PipelineRun,
    PipelineRunStep,
    PipelineRunType,
    RunStatus,
)

__all__ = [
    "EMBEDDING_DIMENSIONS",
    "Base",
    "Contact",
    "Entity",
    "KnowledgeChunk",
    "Message",
    "PipelineRun",
    "PipelineRunStep",
    "PipelineRunType",
    "RunStatus",
]

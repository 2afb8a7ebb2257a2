"""
Shared fixtures for the soulycore test suite.

Relational modules run against SQLite (aiosqlite) in a per-test temporary
file; semantic memory uses the in-process vector index and hash embedder.
"""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from soulycore.core.memory import (
    EpisodicMemoryModule,
    HashEmbedder,
    InMemoryVectorIndex,
    SemanticMemoryModule,
    StructuredMemoryModule,
)
from soulycore.core.pipelines import RunLogger
from soulycore.models.database import create_all, get_engine, get_sessionmaker


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Fresh SQLite database with every table created."""
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'soulycore.db'}")
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return get_sessionmaker(engine)


@pytest.fixture
def structured(session_factory) -> StructuredMemoryModule:
    return StructuredMemoryModule(session_factory)


@pytest.fixture
def episodic(session_factory) -> EpisodicMemoryModule:
    return EpisodicMemoryModule(session_factory)


@pytest.fixture
def vector_index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex()


@pytest.fixture
def semantic(vector_index) -> SemanticMemoryModule:
    return SemanticMemoryModule(HashEmbedder(dimensions=256), vector_index)


@pytest.fixture
def run_logger(session_factory) -> RunLogger:
    return RunLogger(session_factory)

"""
soulycore.core.memory.base - Memory Module interface

Every concrete memory backend (episodic, structured, semantic) implements the
same three operations. Each module owns its backend and its identity/dedup
rules; no module reaches into another's storage.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

RecordT = TypeVar("RecordT")
FilterT = TypeVar("FilterT")
ResultT = TypeVar("ResultT")


class MemoryModule(ABC, Generic[RecordT, FilterT, ResultT]):
    """
    Uniform contract for a single memory module.

    Subclasses bind the record, filter and result types, e.g.
    ``MemoryModule[EpisodicRecord, EpisodicFilter, Message]``.
    """

    #: Backend name used in StorageUnavailable errors and log records
    backend: str = "memory"

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(type(self).__module__)

    @abstractmethod
    async def store(self, record: RecordT) -> Any:
        """Persist one record, applying the module's identity rules."""

    @abstractmethod
    async def query(self, filter: FilterT) -> list[ResultT]:
        """Return matching records in the module's default order."""

    @abstractmethod
    async def delete(self, *args: Any) -> int:
        """
        Hard-delete a record.

        Returns:
            Number of rows removed. 0 means nothing matched (not found).
        """

"""
soulycore.core.memory.exceptions - Memory error taxonomy

Example:
    >>> from soulycore.core.memory.exceptions import StorageUnavailable
    >>>
    >>> try:
    ...     entities = await structured.query(StructuredFilter(kind="entity"))
    ... except StorageUnavailable as e:
    ...     logger.warning(f"Entity store down: {e}")
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import InterfaceError, OperationalError


class MemoryModuleError(Exception):
    """Base exception for all memory-related errors."""


class StorageUnavailable(MemoryModuleError):
    """
    Raised when a memory backend could not be reached.

    This can occur due to:
    - Database connection failures or timeouts
    - Vector index outages
    - Embedding service unavailability
    """

    def __init__(self, backend: str, message: str | None = None) -> None:
        self.backend = backend
        super().__init__(message or f"{backend} storage is unavailable")


class ValidationError(MemoryModuleError):
    """
    Raised when a store operation receives malformed input.

    Always surfaced to the caller, never silently dropped.
    """


class ExtractionFormatError(MemoryModuleError):
    """
    Raised when the extractor's response is empty, not JSON, or the wrong shape.

    The extraction pipeline treats this as a step failure and does not attempt
    partial recovery.
    """


# Driver-level failures that mean "the backend is not reachable"
UNAVAILABLE_ERRORS: tuple[type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    ConnectionError,
    TimeoutError,
    OSError,
)


@asynccontextmanager
async def storage_errors(
    backend: str,
    errors: tuple[type[BaseException], ...] = UNAVAILABLE_ERRORS,
) -> AsyncIterator[None]:
    """Translate backend connectivity failures (``errors``) into StorageUnavailable."""
    try:
        yield
    except errors as e:
        raise StorageUnavailable(backend, f"{backend} storage is unavailable: {e}") from e


__all__ = [
    "ExtractionFormatError",
    "MemoryModuleError",
    "StorageUnavailable",
    "ValidationError",
    "storage_errors",
]

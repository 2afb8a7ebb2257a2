"""
soulycore.core.memory.embeddings - Embedding capability

Semantic memory embeds text through an injectable Embedder so it is not tied
to one embedding source. Every implementation must be deterministic for
identical input; exact-duplicate suppression relies on it.
"""

import hashlib
import logging
import math
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import openai

from soulycore.core.memory.exceptions import storage_errors
from soulycore.models.memory import EMBEDDING_DIMENSIONS

if TYPE_CHECKING:
    from soulycore.llm import LLMService

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[\w']+")

# Provider failures that mean the embedding service could not serve the request
EMBEDDING_UNAVAILABLE_ERRORS: tuple[type[BaseException], ...] = (
    openai.APIError,
    ConnectionError,
    TimeoutError,
    OSError,
)


class Embedder(ABC):
    """Text to fixed-length float vector."""

    def __init__(self, dimensions: int = EMBEDDING_DIMENSIONS) -> None:
        if dimensions < 1:
            raise ValueError("dimensions must be positive")
        self.dimensions = dimensions

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Return a vector of length ``self.dimensions`` for ``text``."""


class HashEmbedder(Embedder):
    """
    Hashed bag-of-words embedder.

    Each lower-cased token is hashed with SHA-256; the digest picks a bucket
    and a sign. The result is L2-normalised so cosine similarity reduces to a
    dot product. Texts sharing vocabulary land close together, which is enough
    for local development and tests without an embedding service.

    Example:
        >>> embedder = HashEmbedder(dimensions=64)
        >>> v1 = await embedder.embed("Alice works at Acme")
        >>> v1 == await embedder.embed("Alice works at Acme")
        True
    """

    async def embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:8], "big") % self.dimensions
            sign = 1.0 if digest[8] & 1 else -1.0
            vector[bucket] += sign

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0.0:
            return vector
        return [v / norm for v in vector]


class LLMEmbedder(Embedder):
    """
    Embeds through the LLM service's embedding endpoint.

    Raises:
        StorageUnavailable: If the embedding provider fails or cannot be reached
        ValueError: If the returned vector has the wrong dimensionality
    """

    backend = "embedding"

    def __init__(self, llm_service: "LLMService", dimensions: int = EMBEDDING_DIMENSIONS) -> None:
        super().__init__(dimensions)
        self.llm_service = llm_service

    async def embed(self, text: str) -> list[float]:
        async with storage_errors(self.backend, EMBEDDING_UNAVAILABLE_ERRORS):
            vectors = await self.llm_service.embed([text])
        if not vectors:
            raise ValueError("Embedding service returned no vectors")

        vector = [float(v) for v in vectors[0]]
        if len(vector) != self.dimensions:
            raise ValueError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions}"
            )
        logger.debug("Embedded text", extra={"chars": len(text), "dimensions": len(vector)})
        return vector


__all__ = ["Embedder", "HashEmbedder", "LLMEmbedder"]

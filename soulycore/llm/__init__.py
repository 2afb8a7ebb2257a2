"""
soulycore.llm - Multi-provider LLM service.

This package provides a unified interface for working with multiple LLM providers
(Google Vertex AI, OpenAI, Anthropic) with automatic fallback and cost tracking.
It is the "generate text" / "generate structured JSON" / "embed" capability used
by the chat flow and the memory pipelines.

Example:
    >>> from soulycore.llm import LLMService
    >>> from soulycore.llm.config import LLMConfig
    >>>
    >>> llm = LLMService(LLMConfig(vertex_project_id="my-project"))
    >>>
    >>> # Generate text
    >>> response = await llm.generate("Summarize this conversation...")
    >>> print(response.content)
    >>>
    >>> # Generate structured output
    >>> response, data = await llm.generate_structured(
    ...     "Extract entities from: Alice works at Acme Corp",
    ...     response_format=ExtractedData,
    ... )
"""

import logging
from collections.abc import Sequence

from pydantic import BaseModel

from soulycore.llm.config import MODELS, LLMConfig
from soulycore.llm.models import LLMRequest, LLMResponse, Message
from soulycore.llm.provider import LLMProviderBase, LLMProviderFactory

logger = logging.getLogger(__name__)


class LLMService:
    """
    Multi-provider LLM service with fallback and cost tracking.

    Automatically falls back to a secondary provider if the primary fails,
    and tracks costs across all requests.

    Attributes:
        config: LLM configuration
        primary: Primary LLM provider
        fallback: Fallback LLM provider (optional)
        total_cost: Total cost of all requests in USD
        requests_count: Total number of requests made
    """

    def __init__(self, config: LLMConfig):
        """
        Initialize LLM service.

        Args:
            config: LLM configuration
        """
        self.config = config

        primary_model = MODELS[config.primary_model]
        self.primary = self._create_provider(primary_model.provider.value, primary_model.model_id)

        self.fallback: LLMProviderBase | None = None
        if config.fallback_model:
            fallback_model = MODELS[config.fallback_model]
            self.fallback = self._create_provider(
                fallback_model.provider.value, fallback_model.model_id
            )

        # Cost tracking
        self.total_cost = 0.0
        self.requests_count = 0

    def _create_provider(self, provider: str, model_id: str) -> LLMProviderBase:
        """
        Create provider instance.

        Args:
            provider: Provider name
            model_id: Model identifier

        Returns:
            Configured provider instance
        """
        if provider == "anthropic":
            return LLMProviderFactory.create(
                provider="anthropic",
                api_key=self.config.anthropic_api_key,
                model_id=model_id,
            )
        if provider == "openai":
            return LLMProviderFactory.create(
                provider="openai",
                api_key=self.config.openai_api_key,
                model_id=model_id,
                embedding_model=self.config.openai_embedding_model,
                embedding_dimensions=self.config.embedding_dimensions,
            )
        if provider == "vertex":
            return LLMProviderFactory.create(
                provider="vertex",
                api_key="",  # Vertex uses application default credentials
                model_id=model_id,
                project_id=self.config.vertex_project_id,
                location=self.config.vertex_location,
                embedding_model=self.config.embedding_model,
                embedding_dimensions=self.config.embedding_dimensions,
            )
        raise ValueError(
            f"Unsupported LLM provider: {provider}. Supported providers: anthropic, openai, vertex"
        )

    def _build_request(
        self,
        prompt: str | Sequence[Message],
        system: str | None,
        max_tokens: int | None,
        temperature: float | None,
        top_p: float | None,
    ) -> LLMRequest:
        messages: list[Message] = []
        if system:
            messages.append(Message(role="system", content=system))
        if isinstance(prompt, str):
            messages.append(Message(role="user", content=prompt))
        else:
            messages.extend(prompt)

        return LLMRequest(
            messages=messages,
            max_tokens=max_tokens or self.config.max_tokens,
            temperature=self.config.temperature if temperature is None else temperature,
            top_p=self.config.top_p if top_p is None else top_p,
        )

    async def generate(
        self,
        prompt: str | Sequence[Message],
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
    ) -> LLMResponse:
        """
        Generate completion.

        Automatically falls back to secondary provider if primary fails.

        Args:
            prompt: User prompt, or a full message history ending with the user turn
            system: System instruction (optional)
            max_tokens: Maximum tokens to generate (config default if None)
            temperature: Sampling temperature (config default if None)
            top_p: Nucleus sampling parameter (config default if None)

        Returns:
            LLM response
        """
        request = self._build_request(prompt, system, max_tokens, temperature, top_p)

        try:
            response = await self.primary.generate(request)
            self._track_cost(response, is_primary=True)
            return response

        except Exception as e:
            logger.error(f"Primary provider failed: {e}")

            if self.fallback:
                logger.info("Falling back to secondary provider")
                response = await self.fallback.generate(request)
                self._track_cost(response, is_primary=False)
                return response
            raise

    async def generate_structured(
        self,
        prompt: str | Sequence[Message],
        response_format: type[BaseModel],
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
    ) -> tuple[LLMResponse, BaseModel]:
        """
        Generate structured output (Pydantic model).

        Args:
            prompt: User prompt or message history
            response_format: Pydantic model class for output
            system: System instruction (optional)
            max_tokens: Maximum tokens
            temperature: Sampling temperature
            top_p: Nucleus sampling parameter

        Returns:
            Tuple of (LLM response, parsed output)
        """
        request = self._build_request(prompt, system, max_tokens, temperature, top_p)

        try:
            response, parsed = await self.primary.generate_structured(request, response_format)
            self._track_cost(response, is_primary=True)
            return response, parsed

        except Exception as e:
            logger.error(f"Primary provider failed: {e}")

            if self.fallback:
                logger.info("Falling back to secondary provider")
                response, parsed = await self.fallback.generate_structured(request, response_format)
                self._track_cost(response, is_primary=False)
                return response, parsed
            raise

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings.

        Tries the primary provider, then the fallback, then a dedicated
        OpenAI provider (Anthropic has no embeddings endpoint).

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors
        """
        for provider in (self.primary, self.fallback):
            if provider is None:
                continue
            try:
                return await provider.embed(texts)
            except NotImplementedError:
                continue

        from soulycore.llm.openai import OpenAIProvider

        openai_provider = OpenAIProvider(
            api_key=self.config.openai_api_key,
            model_id=self.config.openai_embedding_model,
            embedding_model=self.config.openai_embedding_model,
            embedding_dimensions=self.config.embedding_dimensions,
        )
        return await openai_provider.embed(texts)

    def _track_cost(self, response: LLMResponse, is_primary: bool = True) -> None:
        """
        Track cost of LLM call.

        Args:
            response: LLM response
            is_primary: Whether this was the primary provider
        """
        if not self.config.enable_cost_tracking:
            return

        model_key = self.config.primary_model if is_primary else self.config.fallback_model
        model_config = MODELS.get(model_key)

        if model_config:
            cost = response.usage.calculate_cost(model_config)
            self.total_cost += cost
            self.requests_count += 1

            logger.debug(
                f"LLM call cost: ${cost:.4f} "
                f"(total: ${self.total_cost:.2f}, requests: {self.requests_count})"
            )

    def get_cost_summary(self) -> dict:
        """
        Get cost summary.

        Returns:
            Dictionary with cost statistics
        """
        return {
            "total_cost": self.total_cost,
            "requests_count": self.requests_count,
            "average_cost_per_request": (
                self.total_cost / self.requests_count if self.requests_count > 0 else 0.0
            ),
        }


__all__ = [
    "MODELS",
    "LLMConfig",
    "LLMProviderFactory",
    "LLMResponse",
    "LLMService",
    "Message",
]

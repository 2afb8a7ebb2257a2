"""
Abstract LLM provider interface.

This module defines the base interface that all LLM providers must implement.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from soulycore.llm.models import LLMRequest, LLMResponse, Message


class LLMProviderBase(ABC):
    """Abstract base class for LLM providers."""

    def __init__(self, api_key: str, model_id: str, **kwargs: Any) -> None:
        self.api_key = api_key
        self.model_id = model_id
        self.kwargs = kwargs

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate completion.

        Args:
            request: LLM request with messages and parameters

        Returns:
            LLM response with content and metadata
        """

    @abstractmethod
    async def generate_structured(
        self, request: LLMRequest, response_format: type[BaseModel]
    ) -> tuple[LLMResponse, BaseModel]:
        """
        Generate structured output (Pydantic model).

        Uses provider's native structured output if available,
        otherwise falls back to JSON mode + parsing.

        Args:
            request: LLM request
            response_format: Pydantic model class for output

        Returns:
            Tuple of (LLM response, parsed structured output)
        """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors
        """

    @staticmethod
    def with_schema_instruction(
        request: LLMRequest, response_format: type[BaseModel]
    ) -> LLMRequest:
        """Return a copy of ``request`` whose system message demands JSON for the schema."""
        schema = response_format.model_json_schema()
        schema_prompt = (
            f"Respond with valid JSON matching this schema:\n"
            f"{json.dumps(schema, indent=2)}\n\n"
            f"Output only the JSON object, no additional text."
        )

        messages = [m.model_copy() for m in request.messages]
        for msg in messages:
            if msg.role == "system":
                msg.content += f"\n\n{schema_prompt}"
                break
        else:
            messages.insert(0, Message(role="system", content=schema_prompt))

        return request.model_copy(update={"messages": messages})

    @staticmethod
    def parse_json_content(content: str, response_format: type[BaseModel]) -> BaseModel:
        """Validate ``content`` against ``response_format``, tolerating markdown fences."""
        content = (content or "").strip()
        if content.startswith("```json"):
            content = content.split("```json")[1].split("```")[0].strip()
        elif content.startswith("```"):
            content = content.split("```")[1].split("```")[0].strip()

        return response_format.model_validate_json(content)


class LLMProviderFactory:
    """Factory for creating LLM providers."""

    @staticmethod
    def create(provider: str, api_key: str, model_id: str, **kwargs: Any) -> LLMProviderBase:
        """
        Create LLM provider.

        Args:
            provider: Provider name ("anthropic", "openai", "vertex")
            api_key: API key for provider
            model_id: Model identifier
            **kwargs: Additional provider-specific config
                For vertex: project_id, location
                For openai and vertex: embedding_model, embedding_dimensions

        Returns:
            Configured LLM provider instance

        Raises:
            ValueError: If provider is unknown
        """
        from soulycore.llm.anthropic import AnthropicProvider
        from soulycore.llm.openai import OpenAIProvider
        from soulycore.llm.vertex import VertexAIProvider

        providers = {
            "anthropic": AnthropicProvider,
            "openai": OpenAIProvider,
            "vertex": VertexAIProvider,
        }

        if provider not in providers:
            raise ValueError(
                f"Unknown provider: {provider}. Supported providers: {', '.join(providers.keys())}"
            )

        return providers[provider](api_key=api_key, model_id=model_id, **kwargs)

"""
OpenAI provider implementation.

This module implements the LLM provider interface for OpenAI's GPT models.
"""

from typing import Any

from openai import AsyncOpenAI
from pydantic import BaseModel

from soulycore.llm.models import LLMRequest, LLMResponse, TokenUsage
from soulycore.llm.provider import LLMProviderBase


class OpenAIProvider(LLMProviderBase):
    """OpenAI GPT provider."""

    def __init__(self, api_key: str, model_id: str, **kwargs: Any) -> None:
        super().__init__(api_key, model_id, **kwargs)
        self.client = AsyncOpenAI(api_key=api_key)

    def _sampling(self, request: LLMRequest) -> dict[str, Any]:
        params: dict[str, Any] = {
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if request.top_p is not None:
            params["top_p"] = request.top_p
        return params

    @staticmethod
    def _usage(response: Any) -> TokenUsage:
        return TokenUsage(
            input_tokens=response.usage.prompt_tokens,
            output_tokens=response.usage.completion_tokens,
            total_tokens=response.usage.total_tokens,
        )

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate completion using OpenAI API.

        Args:
            request: LLM request

        Returns:
            LLM response
        """
        messages = [{"role": msg.role, "content": msg.content} for msg in request.messages]

        response = await self.client.chat.completions.create(
            model=self.model_id,
            messages=messages,
            stop=request.stop_sequences,
            **self._sampling(request),
        )

        choice = response.choices[0]
        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage=self._usage(response),
            finish_reason=choice.finish_reason,
        )

    async def generate_structured(
        self, request: LLMRequest, response_format: type[BaseModel]
    ) -> tuple[LLMResponse, BaseModel]:
        """
        Generate structured output using OpenAI's native structured outputs.

        Args:
            request: LLM request
            response_format: Pydantic model class for output

        Returns:
            Tuple of (LLM response, parsed output)

        Raises:
            ValueError: If the model refused or returned nothing parseable
        """
        messages = [{"role": msg.role, "content": msg.content} for msg in request.messages]

        response = await self.client.beta.chat.completions.parse(
            model=self.model_id,
            messages=messages,
            response_format=response_format,  # Native structured output
            **self._sampling(request),
        )

        choice = response.choices[0]
        parsed = choice.message.parsed
        if parsed is None:
            raise ValueError(
                f"OpenAI returned no structured output (refusal={choice.message.refusal!r})"
            )

        llm_response = LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage=self._usage(response),
            finish_reason=choice.finish_reason,
            structured_output=parsed,
        )

        return llm_response, parsed

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings using OpenAI API.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors
        """
        params: dict[str, Any] = {
            "model": self.kwargs.get("embedding_model") or "text-embedding-3-small",
            "input": texts,
        }
        if dimensions := self.kwargs.get("embedding_dimensions"):
            params["dimensions"] = dimensions

        response = await self.client.embeddings.create(**params)

        return [item.embedding for item in response.data]

"""
Anthropic Claude provider implementation.

This module implements the LLM provider interface for Anthropic's Claude models.
"""

from typing import Any

from anthropic import AsyncAnthropic
from pydantic import BaseModel

from soulycore.llm.models import LLMRequest, LLMResponse, TokenUsage
from soulycore.llm.provider import LLMProviderBase


class AnthropicProvider(LLMProviderBase):
    """Anthropic Claude provider."""

    def __init__(self, api_key: str, model_id: str, **kwargs: Any) -> None:
        super().__init__(api_key, model_id, **kwargs)
        self.client = AsyncAnthropic(api_key=api_key)

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate completion using Anthropic API.

        Args:
            request: LLM request

        Returns:
            LLM response
        """
        messages = [{"role": msg.role, "content": msg.content} for msg in request.conversation]

        params: dict[str, Any] = {
            "model": self.model_id,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": messages,
        }
        if request.system:
            params["system"] = request.system
        if request.top_p is not None:
            params["top_p"] = request.top_p
        if request.stop_sequences:
            params["stop_sequences"] = request.stop_sequences

        response = await self.client.messages.create(**params)

        return LLMResponse(
            content="".join(block.text for block in response.content if block.type == "text"),
            model=response.model,
            usage=TokenUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            ),
            finish_reason=response.stop_reason or "end_turn",
        )

    async def generate_structured(
        self, request: LLMRequest, response_format: type[BaseModel]
    ) -> tuple[LLMResponse, BaseModel]:
        """
        Generate structured output using a schema instruction + JSON parsing.

        Args:
            request: LLM request
            response_format: Pydantic model class for output

        Returns:
            Tuple of (LLM response, parsed output)
        """
        response = await self.generate(self.with_schema_instruction(request, response_format))

        parsed = self.parse_json_content(response.content, response_format)
        response.structured_output = parsed

        return response, parsed

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Anthropic has no embeddings endpoint."""
        raise NotImplementedError("Anthropic does not provide an embeddings API")

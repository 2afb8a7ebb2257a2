"""
Shared LLM models and types.

This module defines common data models used across all LLM providers.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    VERTEX = "vertex"


class LLMModel(BaseModel):
    """LLM model configuration."""

    provider: LLMProvider
    model_id: str  # e.g., "gemini-2.5-flash", "gpt-4o-mini", "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    temperature: float = 0.7

    # Cost per 1M tokens (for tracking)
    input_cost_per_1m: float
    output_cost_per_1m: float


class Message(BaseModel):
    """Chat message."""

    role: Literal["system", "user", "assistant"]
    content: str


class LLMRequest(BaseModel):
    """LLM generation request."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    messages: list[Message]
    max_tokens: int = 4096
    temperature: float = 0.7
    top_p: float | None = None
    stop_sequences: list[str] | None = None

    @property
    def system(self) -> str | None:
        """Joined content of all system messages, if any."""
        parts = [m.content for m in self.messages if m.role == "system"]
        return "\n\n".join(parts) if parts else None

    @property
    def conversation(self) -> list[Message]:
        """Messages without the system instruction."""
        return [m for m in self.messages if m.role != "system"]


class TokenUsage(BaseModel):
    """Token usage tracking."""

    input_tokens: int
    output_tokens: int
    total_tokens: int

    def calculate_cost(self, model: LLMModel) -> float:
        """
        Calculate cost of this request.

        Args:
            model: Model configuration with pricing

        Returns:
            Cost in USD
        """
        input_cost = (self.input_tokens / 1_000_000) * model.input_cost_per_1m
        output_cost = (self.output_tokens / 1_000_000) * model.output_cost_per_1m
        return input_cost + output_cost


class LLMResponse(BaseModel):
    """LLM generation response."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    content: str
    model: str
    usage: TokenUsage
    finish_reason: str

    # For structured outputs
    structured_output: Any | None = None

"""
LLM provider configuration.

This module provides configuration for LLM providers and pre-configured model definitions.
"""

from pydantic import BaseModel, Field

from soulycore.llm.models import LLMModel, LLMProvider

# Pre-configured models with pricing
MODELS = {
    # Google Vertex AI / Gemini
    "gemini-2.5-flash": LLMModel(
        provider=LLMProvider.VERTEX,
        model_id="gemini-2.5-flash",
        max_tokens=8192,
        temperature=0.7,
        input_cost_per_1m=0.30,
        output_cost_per_1m=2.50,
    ),
    "gemini-2.5-pro": LLMModel(
        provider=LLMProvider.VERTEX,
        model_id="gemini-2.5-pro",
        max_tokens=8192,
        temperature=0.7,
        input_cost_per_1m=1.25,
        output_cost_per_1m=10.00,
    ),
    # OpenAI GPT
    "gpt-4o": LLMModel(
        provider=LLMProvider.OPENAI,
        model_id="gpt-4o",
        max_tokens=4096,
        temperature=0.7,
        input_cost_per_1m=2.50,
        output_cost_per_1m=10.00,
    ),
    "gpt-4o-mini": LLMModel(
        provider=LLMProvider.OPENAI,
        model_id="gpt-4o-mini",
        max_tokens=4096,
        temperature=0.7,
        input_cost_per_1m=0.15,
        output_cost_per_1m=0.60,
    ),
    # Anthropic Claude
    "claude-sonnet-4": LLMModel(
        provider=LLMProvider.ANTHROPIC,
        model_id="claude-sonnet-4-20250514",
        max_tokens=8192,
        temperature=0.7,
        input_cost_per_1m=3.00,
        output_cost_per_1m=15.00,
    ),
}


class LLMConfig(BaseModel):
    """LLM configuration."""

    # Primary model (answers chat turns and runs extraction)
    primary_model: str = "gemini-2.5-flash"

    # Fallback model (different provider for redundancy)
    fallback_model: str | None = "gpt-4o-mini"

    # Embedding models, per provider, used by LLMService.embed
    embedding_model: str = "text-embedding-004"
    openai_embedding_model: str = "text-embedding-3-small"

    # Requested embedding length (provider default if None)
    embedding_dimensions: int | None = None

    # Default sampling parameters
    temperature: float = 0.7
    top_p: float | None = 0.95
    max_tokens: int = 4096

    # API keys (exclude from serialization for security)
    anthropic_api_key: str | None = Field(default=None, exclude=True)
    openai_api_key: str | None = Field(default=None, exclude=True)
    vertex_project_id: str | None = None
    vertex_location: str = "us-central1"

    # Performance settings
    max_retries: int = 3
    timeout_seconds: int = 60

    # Cost tracking
    enable_cost_tracking: bool = True

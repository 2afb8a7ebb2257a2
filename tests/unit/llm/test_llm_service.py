"""
Unit tests for LLMService.

Tests the main LLM service with fallback logic, request building and cost tracking.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import BaseModel

from soulycore.llm import LLMService
from soulycore.llm.config import LLMConfig
from soulycore.llm.models import LLMResponse, Message, TokenUsage


class FactModel(BaseModel):
    """Pydantic model for structured output tests."""

    subject: str
    confidence: float


@pytest.fixture
def mock_config():
    """Create mock LLM configuration."""
    return LLMConfig(
        primary_model="claude-sonnet-4",
        fallback_model="gpt-4o",
        anthropic_api_key="sk-ant-test",
        openai_api_key="sk-test",
    )


@pytest.fixture
def mock_response():
    """Create mock LLM response."""
    return LLMResponse(
        content="Test response content",
        model="claude-sonnet-4",
        usage=TokenUsage(input_tokens=100, output_tokens=200, total_tokens=300),
        finish_reason="stop",
    )


@pytest.mark.asyncio
async def test_llm_service_initialization(mock_config):
    """Test LLM service initializes correctly."""
    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        mock_factory.return_value = MagicMock()

        service = LLMService(mock_config)

        assert service.config == mock_config
        assert service.primary is not None
        assert service.fallback is not None
        assert service.total_cost == 0.0
        assert service.requests_count == 0


@pytest.mark.asyncio
async def test_no_fallback_when_not_configured(mock_config):
    mock_config.fallback_model = None
    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        mock_factory.return_value = MagicMock()

        service = LLMService(mock_config)

        assert service.fallback is None
        assert mock_factory.call_count == 1


@pytest.mark.asyncio
async def test_generate_uses_primary_provider(mock_config, mock_response):
    """Test generate uses primary provider when it succeeds."""
    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        mock_provider = MagicMock()
        mock_provider.generate = AsyncMock(return_value=mock_response)
        mock_factory.return_value = mock_provider

        service = LLMService(mock_config)
        response = await service.generate("Test prompt")

        assert response == mock_response
        mock_provider.generate.assert_called_once()


@pytest.mark.asyncio
async def test_generate_builds_request_from_prompt_and_system(mock_config, mock_response):
    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        mock_provider = MagicMock()
        mock_provider.generate = AsyncMock(return_value=mock_response)
        mock_factory.return_value = mock_provider

        service = LLMService(mock_config)
        await service.generate("Hello", system="Be brief.", temperature=0.1, top_p=0.5)

        request = mock_provider.generate.call_args.args[0]
        assert [m.role for m in request.messages] == ["system", "user"]
        assert request.messages[1].content == "Hello"
        assert request.temperature == 0.1
        assert request.top_p == 0.5


@pytest.mark.asyncio
async def test_generate_accepts_message_history(mock_config, mock_response):
    history = [
        Message(role="user", content="Hi"),
        Message(role="assistant", content="Hello!"),
        Message(role="user", content="Who is Alice?"),
    ]
    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        mock_provider = MagicMock()
        mock_provider.generate = AsyncMock(return_value=mock_response)
        mock_factory.return_value = mock_provider

        service = LLMService(mock_config)
        await service.generate(history)

        request = mock_provider.generate.call_args.args[0]
        assert request.messages == history
        # Config defaults apply when not overridden
        assert request.temperature == mock_config.temperature
        assert request.top_p == mock_config.top_p
        assert request.max_tokens == mock_config.max_tokens


@pytest.mark.asyncio
async def test_generate_falls_back_on_primary_failure(mock_config, mock_response):
    """Test generate falls back to secondary provider when primary fails."""
    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        # Primary provider fails
        mock_primary = MagicMock()
        mock_primary.generate = AsyncMock(side_effect=Exception("API error"))

        # Fallback provider succeeds
        mock_fallback = MagicMock()
        mock_fallback.generate = AsyncMock(return_value=mock_response)

        # Return primary first, then fallback
        mock_factory.side_effect = [mock_primary, mock_fallback]

        service = LLMService(mock_config)
        response = await service.generate("Test prompt")

        assert response == mock_response
        mock_primary.generate.assert_called_once()
        mock_fallback.generate.assert_called_once()


@pytest.mark.asyncio
async def test_generate_raises_when_both_providers_fail(mock_config):
    """Test generate raises exception when both providers fail."""
    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        mock_provider = MagicMock()
        mock_provider.generate = AsyncMock(side_effect=Exception("API error"))
        mock_factory.return_value = mock_provider

        service = LLMService(mock_config)

        with pytest.raises(Exception, match="API error"):
            await service.generate("Test prompt")


@pytest.mark.asyncio
async def test_generate_structured_returns_parsed_output(mock_config):
    """Test generate_structured returns parsed Pydantic model."""
    mock_fact = FactModel(subject="test", confidence=0.8)
    mock_resp = LLMResponse(
        content='{"subject": "test", "confidence": 0.8}',
        model="claude-sonnet-4",
        usage=TokenUsage(input_tokens=50, output_tokens=20, total_tokens=70),
        finish_reason="stop",
        structured_output=mock_fact,
    )

    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        mock_provider = MagicMock()
        mock_provider.generate_structured = AsyncMock(return_value=(mock_resp, mock_fact))
        mock_factory.return_value = mock_provider

        service = LLMService(mock_config)
        response, fact = await service.generate_structured(
            "Test prompt", response_format=FactModel
        )

        assert response == mock_resp
        assert fact == mock_fact
        assert fact.subject == "test"
        assert fact.confidence == 0.8


@pytest.mark.asyncio
async def test_cost_tracking_enabled(mock_config, mock_response):
    """Test cost tracking works when enabled."""
    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        mock_provider = MagicMock()
        mock_provider.generate = AsyncMock(return_value=mock_response)
        mock_factory.return_value = mock_provider

        service = LLMService(mock_config)
        await service.generate("Test prompt")

        assert service.total_cost > 0.0
        assert service.requests_count == 1

        summary = service.get_cost_summary()
        assert summary["total_cost"] > 0.0
        assert summary["requests_count"] == 1
        assert summary["average_cost_per_request"] > 0.0


@pytest.mark.asyncio
async def test_cost_tracking_disabled(mock_config, mock_response):
    """Test cost tracking can be disabled."""
    mock_config.enable_cost_tracking = False

    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        mock_provider = MagicMock()
        mock_provider.generate = AsyncMock(return_value=mock_response)
        mock_factory.return_value = mock_provider

        service = LLMService(mock_config)
        await service.generate("Test prompt")

        assert service.total_cost == 0.0  # Not tracked
        assert service.requests_count == 0


@pytest.mark.asyncio
async def test_embed_skips_provider_without_embeddings(mock_config):
    """Test embed moves on to the fallback when the primary has no embeddings."""
    mock_embeddings = [[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]]

    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        # Primary provider (Anthropic) doesn't support embeddings
        mock_primary = MagicMock()
        mock_primary.embed = AsyncMock(
            side_effect=NotImplementedError("Anthropic doesn't provide embeddings")
        )

        # Fallback provider (OpenAI) supports embeddings
        mock_fallback = MagicMock()
        mock_fallback.embed = AsyncMock(return_value=mock_embeddings)

        mock_factory.side_effect = [mock_primary, mock_fallback]

        service = LLMService(mock_config)
        embeddings = await service.embed(["text1", "text2"])

        assert embeddings == mock_embeddings


@pytest.mark.asyncio
async def test_embed_uses_dedicated_openai_provider_last(mock_config):
    mock_config.fallback_model = None
    with (
        patch("soulycore.llm.LLMProviderFactory.create") as mock_factory,
        patch("soulycore.llm.openai.OpenAIProvider") as mock_openai_cls,
    ):
        mock_primary = MagicMock()
        mock_primary.embed = AsyncMock(side_effect=NotImplementedError())
        mock_factory.return_value = mock_primary

        mock_openai = MagicMock()
        mock_openai.embed = AsyncMock(return_value=[[1.0, 0.0]])
        mock_openai_cls.return_value = mock_openai

        service = LLMService(mock_config)
        embeddings = await service.embed(["text"])

        assert embeddings == [[1.0, 0.0]]
        mock_openai_cls.assert_called_once_with(
            api_key="sk-test",
            model_id="text-embedding-3-small",
            embedding_model="text-embedding-3-small",
            embedding_dimensions=None,
        )


@pytest.mark.asyncio
async def test_openai_provider_gets_openai_embedding_model():
    """OpenAI never receives the Vertex embedding model name."""
    config = LLMConfig(
        primary_model="gpt-4o",
        fallback_model="gemini-2.5-flash",
        openai_api_key="sk-test",
        embedding_dimensions=768,
    )
    with patch("soulycore.llm.LLMProviderFactory.create") as mock_factory:
        mock_factory.return_value = MagicMock()

        LLMService(config)

        openai_call, vertex_call = mock_factory.call_args_list
        assert openai_call.kwargs["provider"] == "openai"
        assert openai_call.kwargs["embedding_model"] == "text-embedding-3-small"
        assert openai_call.kwargs["embedding_dimensions"] == 768
        assert vertex_call.kwargs["provider"] == "vertex"
        assert vertex_call.kwargs["embedding_model"] == "text-embedding-004"
        assert vertex_call.kwargs["embedding_dimensions"] == 768


@pytest.mark.asyncio
async def test_openai_embed_requests_configured_dimensions():
    with patch("soulycore.llm.openai.AsyncOpenAI") as mock_client_cls:
        from soulycore.llm.openai import OpenAIProvider

        mock_client = MagicMock()
        mock_client.embeddings.create = AsyncMock(
            return_value=MagicMock(data=[MagicMock(embedding=[0.5] * 768)])
        )
        mock_client_cls.return_value = mock_client

        provider = OpenAIProvider(
            api_key="sk-test",
            model_id="gpt-4o-mini",
            embedding_model="text-embedding-3-small",
            embedding_dimensions=768,
        )
        embeddings = await provider.embed(["text"])

        assert embeddings == [[0.5] * 768]
        mock_client.embeddings.create.assert_awaited_once_with(
            model="text-embedding-3-small", input=["text"], dimensions=768
        )

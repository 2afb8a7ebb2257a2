"""
Google Vertex AI provider implementation.

This module implements the LLM provider interface for Google's Gemini models via Vertex AI.
"""

from typing import Any

from pydantic import BaseModel

from soulycore.llm.models import LLMRequest, LLMResponse, TokenUsage
from soulycore.llm.provider import LLMProviderBase


class VertexAIProvider(LLMProviderBase):
    """Google Vertex AI / Gemini provider."""

    def __init__(
        self,
        api_key: str,
        model_id: str,
        project_id: str,
        location: str = "us-central1",
        **kwargs: Any,
    ) -> None:
        super().__init__(api_key, model_id, **kwargs)
        self.project_id = project_id
        self.location = location

        # Import here to avoid requiring google-cloud-aiplatform if not using Vertex
        try:
            from google.cloud import aiplatform

            aiplatform.init(project=project_id, location=location)
        except ImportError as err:
            raise ImportError(
                "google-cloud-aiplatform is required for Vertex AI provider. "
                "Install with: pip install 'soulycore[vertex]'"
            ) from err

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate completion using Vertex AI API.

        Args:
            request: LLM request

        Returns:
            LLM response
        """
        return await self._generate(request)

    async def _generate(
        self, request: LLMRequest, response_mime_type: str | None = None
    ) -> LLMResponse:
        from vertexai.generative_models import Content, GenerativeModel, Part

        contents = [
            Content(
                role="user" if msg.role == "user" else "model",
                parts=[Part.from_text(msg.content)],
            )
            for msg in request.conversation
        ]

        # System instruction is set in the constructor, not in generate_content
        model = GenerativeModel(self.model_id, system_instruction=request.system)

        generation_config: dict[str, Any] = {
            "max_output_tokens": request.max_tokens,
            "temperature": request.temperature,
            "stop_sequences": request.stop_sequences,
        }
        if request.top_p is not None:
            generation_config["top_p"] = request.top_p
        if response_mime_type:
            generation_config["response_mime_type"] = response_mime_type

        response = await model.generate_content_async(
            contents,
            generation_config=generation_config,
        )

        usage = response.usage_metadata

        return LLMResponse(
            content=response.text,
            model=self.model_id,
            usage=TokenUsage(
                input_tokens=usage.prompt_token_count,
                output_tokens=usage.candidates_token_count,
                total_tokens=usage.total_token_count,
            ),
            finish_reason=response.candidates[0].finish_reason.name,
        )

    async def generate_structured(
        self, request: LLMRequest, response_format: type[BaseModel]
    ) -> tuple[LLMResponse, BaseModel]:
        """
        Generate structured output using Gemini's JSON response mode.

        Args:
            request: LLM request
            response_format: Pydantic model class for output

        Returns:
            Tuple of (LLM response, parsed output)
        """
        response = await self._generate(
            self.with_schema_instruction(request, response_format),
            response_mime_type="application/json",
        )

        parsed = self.parse_json_content(response.content, response_format)
        response.structured_output = parsed

        return response, parsed

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings using Vertex AI Embeddings API.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors
        """
        from vertexai.language_models import TextEmbeddingModel

        model = TextEmbeddingModel.from_pretrained(
            self.kwargs.get("embedding_model") or "text-embedding-004"
        )
        params: dict[str, Any] = {}
        if dimensions := self.kwargs.get("embedding_dimensions"):
            params["output_dimensionality"] = dimensions
        embeddings = await model.get_embeddings_async(texts, **params)

        return [emb.values for emb in embeddings]

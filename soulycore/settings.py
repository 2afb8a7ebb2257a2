"""
soulycore.settings - Centralized Configuration

Single source of truth for all soulycore configuration.
Loads from .env files and environment variables using pydantic-settings.

Usage:
    >>> from soulycore.settings import get_settings
    >>> settings = get_settings()
    >>> settings.database_url
    'postgresql+asyncpg://localhost/soulycore_dev'

    >>> from soulycore.settings import configure_logging
    >>> configure_logging(settings)
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from soulycore.llm.config import LLMConfig

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


class SoulySettings(BaseSettings):
    """Centralized soulycore configuration loaded from .env / environment variables.

    All SOULY_* prefixed env vars are loaded automatically.
    API keys use standard names (no prefix) via aliases.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SOULY_",
        extra="ignore",
        populate_by_name=True,
    )

    # -- Environment -----------------------------------------------------------
    env: str = "development"

    # -- Database --------------------------------------------------------------
    database_url: str = Field(
        default="postgresql+asyncpg://localhost/soulycore_dev",
        alias="DATABASE_URL",
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    # Forces DEBUG for the soulycore logger tree, applied once at startup
    debug_log: bool = False

    # -- LLM Defaults ----------------------------------------------------------
    llm_primary_model: str = "gemini-2.5-flash"
    llm_fallback_model: str | None = "gpt-4o-mini"
    llm_embedding_model: str = "text-embedding-004"
    llm_openai_embedding_model: str = "text-embedding-3-small"
    llm_temperature: float = 0.7
    llm_top_p: float = 0.95
    llm_max_tokens: int = 4096
    llm_max_retries: int = 3
    llm_timeout_seconds: int = 60
    llm_enable_cost_tracking: bool = True

    # -- API Keys (standard names via alias, no SOULY_ prefix) -----------------
    anthropic_api_key: str | None = Field(default=None, alias="ANTHROPIC_API_KEY")
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    vertex_project_id: str | None = Field(default=None, alias="VERTEX_PROJECT_ID")
    vertex_location: str = "us-central1"

    # -- Memory ----------------------------------------------------------------
    embedding_backend: Literal["hash", "llm"] = "hash"
    embedding_dimensions: int = 768
    vector_backend: Literal["memory", "pgvector"] = "pgvector"
    context_top_k: int = Field(default=3, ge=1)
    knowledge_min_words: int = Field(default=5, ge=1)
    extraction_temperature: float = 0.2

    # -- Validators ------------------------------------------------------------

    @model_validator(mode="before")
    @classmethod
    def _google_cloud_project_fallback(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Fall back to GOOGLE_CLOUD_PROJECT if VERTEX_PROJECT_ID is not set."""
        if (
            isinstance(data, dict)
            and not data.get("VERTEX_PROJECT_ID")
            and not data.get("vertex_project_id")
        ):
            import os

            gcp = os.environ.get("GOOGLE_CLOUD_PROJECT")
            if gcp:
                data["VERTEX_PROJECT_ID"] = gcp
        return data

    # -- Helpers ---------------------------------------------------------------

    def has_llm_credentials(self) -> bool:
        """Return True if at least one LLM provider is configured."""
        return bool(self.anthropic_api_key or self.openai_api_key or self.vertex_project_id)

    def build_llm_config(self) -> LLMConfig:
        """Build an LLMConfig from server-level settings."""
        return LLMConfig(
            primary_model=self.llm_primary_model,
            fallback_model=self.llm_fallback_model,
            embedding_model=self.llm_embedding_model,
            openai_embedding_model=self.llm_openai_embedding_model,
            embedding_dimensions=self.embedding_dimensions,
            temperature=self.llm_temperature,
            top_p=self.llm_top_p,
            max_tokens=self.llm_max_tokens,
            anthropic_api_key=self.anthropic_api_key,
            openai_api_key=self.openai_api_key,
            vertex_project_id=self.vertex_project_id,
            vertex_location=self.vertex_location,
            max_retries=self.llm_max_retries,
            timeout_seconds=self.llm_timeout_seconds,
            enable_cost_tracking=self.llm_enable_cost_tracking,
        )


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_settings() -> SoulySettings:
    """Return the cached SoulySettings singleton."""
    return SoulySettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()


def configure_logging(settings: SoulySettings) -> None:
    """Configure process-wide logging from settings.

    Called once by entry points. Components never read logging flags
    themselves; they receive a logger at construction time.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    if settings.debug_log:
        logging.getLogger("soulycore").setLevel(logging.DEBUG)

"""
soulycore - Memory orchestration core for a conversational assistant

Assembles a bounded context block for every chat turn from heterogeneous memory
stores, and extracts entities and knowledge from finished turns back into
those stores in the background.

This package provides:
1. Memory modules (episodic, structured, semantic) behind one interface
2. Context Assembly pipeline (read path)
3. Memory Extraction pipeline (write path) with step-level run logging
4. Multi-provider LLM service (Vertex AI, OpenAI, Anthropic)

Example:
    >>> from soulycore.models.database import get_engine, get_sessionmaker
    >>> from soulycore.services import build_memory_core
    >>> from soulycore.settings import get_settings
    >>>
    >>> core = build_memory_core(get_settings(), get_sessionmaker(get_engine()))
    >>> context = await core.context_pipeline.assemble_context(conv_id, "Who is Alice?")
"""

__version__ = "0.1.0"
__author__ = "soulycore contributors"
__license__ = "Apache-2.0"

__all__ = ["__version__"]

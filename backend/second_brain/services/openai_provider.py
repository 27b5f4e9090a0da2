"""
Shared OpenAI client for the note model and the embeddings adapter.

Both read their model names from Config so a deployment switches models in one place.
"""

from __future__ import annotations

from functools import lru_cache

from openai import OpenAI

from ..config import Config


@lru_cache(maxsize=1)
def get_openai_client() -> OpenAI:
    """Process-wide client; raises ValueError when no API key is configured."""
    if not Config.OPENAI_API_KEY:
        raise ValueError("OPENAI_API_KEY is required to annotate notes and answer questions")
    return OpenAI(api_key=Config.OPENAI_API_KEY)


def chat_model() -> str:
    """Model used for annotation, intent parsing and answer synthesis."""
    return Config.OPENAI_MODEL


def embedding_model() -> str:
    return Config.OPENAI_EMBEDDING_MODEL

"""
Embeddings utilities for semantic recall over notes.

- Uses OpenAI embeddings to generate vectors.
- Stores vectors in the DB as JSON text.
- Embedding failures are never fatal: callers get ``None`` and carry on.
"""

from __future__ import annotations

import json
import logging
import math
from typing import List, Optional, Sequence

from openai import OpenAI, OpenAIError

from .openai_provider import embedding_model, get_openai_client

logger = logging.getLogger(__name__)


def build_note_embedding_text(
    category: str, tags: Sequence[str], summary: str, text: Optional[str] = None
) -> str:
    tags_part = ", ".join(tags or [])
    return f"Category: {category}. Tags: {tags_part}. Content: {summary}. {text or ''}".rstrip()


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a))
    nb = math.sqrt(sum(y * y for y in b))
    if na == 0.0 or nb == 0.0:
        return 0.0
    return dot / (na * nb)


def vector_to_json(vec: Optional[List[float]]) -> Optional[str]:
    if not vec:
        return None
    return json.dumps(vec)


def vector_from_json(value: Optional[str]) -> Optional[List[float]]:
    if not value:
        return None
    try:
        parsed = json.loads(value)
        if isinstance(parsed, list) and parsed:
            return [float(x) for x in parsed]
        return None
    except (TypeError, ValueError):
        return None


class EmbeddingsService:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[OpenAI] = None,
    ):
        self.client = client or (OpenAI(api_key=api_key) if api_key else get_openai_client())
        self.model = model or embedding_model()

    def embed(self, text: str) -> Optional[List[float]]:
        """Return the embedding for ``text``, or None when none is available."""
        if not text or not text.strip():
            return None
        try:
            resp = self.client.embeddings.create(model=self.model, input=text)
            vector = [float(x) for x in resp.data[0].embedding]
        except OpenAIError as e:
            logger.warning("OpenAI API error during embeddings: %s", e)
            return None
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            logger.warning("Malformed embeddings response: %s", e)
            return None
        return vector or None

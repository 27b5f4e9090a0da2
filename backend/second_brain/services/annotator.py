"""
Content annotation for new notes.

Asks the generative model for a summary, tags and a category (reusing an
existing category where it fits), then embeds the result for recall. The
service is best-effort: model failures produce a degraded annotation that is
still good enough to save.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .embeddings import EmbeddingsService, build_note_embedding_text
from .errors import NoteModelError
from .llm import NoteModel
from .models import AnnotationResult, FallbackReason, Language, Outcome

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "General"
FALLBACK_TAGS = ["uncategorized"]
FALLBACK_SUMMARY_CHARS = 50
IMAGE_MARKER = "Image Upload"


def fallback_annotation(text: str) -> AnnotationResult:
    """Annotation used when the model call fails."""
    if text:
        summary = text[:FALLBACK_SUMMARY_CHARS] + "..."
    else:
        summary = IMAGE_MARKER
    return AnnotationResult(
        summary=summary,
        tags=list(FALLBACK_TAGS),
        category=FALLBACK_CATEGORY,
        embedding=None,
    )


class ContentAnnotator:
    def __init__(self, model: NoteModel, embeddings: EmbeddingsService):
        self.model = model
        self.embeddings = embeddings

    def analyze(
        self,
        text: str,
        image: Optional[str],
        existing_categories: Sequence[str],
        language: Language,
    ) -> Outcome[AnnotationResult]:
        """
        Annotate new content.

        Args:
            text: Raw note text (may be empty for image-only input)
            image: Optional image payload (data URL or base64)
            existing_categories: Categories already in use, offered for reuse
            language: Language for the generated summary/tags/category

        Returns:
            Outcome wrapping the annotation. Never raises.
        """
        text = text or ""
        try:
            draft = self.model.annotate(text, image, list(existing_categories), language)
        except NoteModelError as e:
            logger.warning("Annotation failed (%s), using fallback: %s", e.reason.value, e)
            return Outcome(fallback_annotation(text), e.reason)
        except Exception:
            logger.exception("Unexpected error during annotation, using fallback")
            return Outcome(fallback_annotation(text), FallbackReason.TRANSPORT_ERROR)

        embedding = self.embeddings.embed(
            build_note_embedding_text(draft.category, draft.tags, draft.summary, text)
        )
        if embedding is None:
            logger.info("No embedding for annotated note; it will rank last in recall")

        return Outcome(
            AnnotationResult(
                summary=draft.summary,
                tags=draft.tags,
                category=draft.category,
                embedding=embedding,
            )
        )

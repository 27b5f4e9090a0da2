"""
Recall engine: answer a natural-language query from the saved notes.

Pipeline (strictly sequential, no shared state is touched):
1. parse the query into a ParsedIntent
2. hard-filter notes by category / tags / date range
3. rank survivors by embedding similarity (or recency when there are no keywords)
4. synthesize an answer grounded in the top notes
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from .embeddings import EmbeddingsService, cosine_similarity
from .errors import NoteModelError
from .intent_parser import IntentParser
from .llm import NoteModel
from .messages import NO_MATCHES, SYNTHESIS_FAILED
from .models import (
    FallbackReason,
    Language,
    Note,
    NoteContext,
    NoteKind,
    Outcome,
    ParsedIntent,
    RecallAnswer,
)

logger = logging.getLogger(__name__)

RECALL_LIMIT = 10
MIN_KEYWORD_LENGTH = 2
UNSCORED = -1.0
IMAGE_PLACEHOLDER = "[Image Content]"
UNKNOWN_DATE = "unknown"


def distinct_categories(notes: Iterable[Note]) -> List[str]:
    seen: List[str] = []
    for note in notes:
        if note.category not in seen:
            seen.append(note.category)
    return seen


def matches_intent(note: Note, intent: ParsedIntent) -> bool:
    if intent.category is not None and note.category.lower() != intent.category.lower():
        return False
    if intent.tags:
        note_tags = {t.lower() for t in note.tags}
        if not any(t.lower() in note_tags for t in intent.tags):
            return False
    if intent.start_date is not None and note.created_at < intent.start_date:
        return False
    if intent.end_date is not None and note.created_at > intent.end_date:
        return False
    return True


def apply_hard_filters(notes: Sequence[Note], intent: ParsedIntent) -> List[Note]:
    """Keep notes satisfying every filter in ``intent``, preserving order."""
    return [note for note in notes if matches_intent(note, intent)]


def rank_candidates(
    candidates: Sequence[Note],
    keywords: str,
    embeddings: EmbeddingsService,
    limit: int = RECALL_LIMIT,
) -> List[Note]:
    """
    Order candidates for synthesis.

    With keywords, candidates are sorted by cosine similarity to the keyword
    embedding (notes without an embedding last). Without keywords, the most
    recent notes come first. If the keyword embedding is unavailable the
    existing order is kept.
    """
    keywords = (keywords or "").strip()
    if len(keywords) < MIN_KEYWORD_LENGTH:
        return sorted(candidates, key=lambda n: n.created_at, reverse=True)[:limit]

    query_vec = embeddings.embed(keywords)
    if query_vec is None or not candidates:
        return list(candidates[:limit])

    # Scored notes win ties with the sentinel so unscored notes always come last
    scored = [
        (
            cosine_similarity(query_vec, note.embedding) if note.embedding else UNSCORED,
            bool(note.embedding),
            note,
        )
        for note in candidates
    ]
    scored.sort(key=lambda entry: (entry[0], entry[1]), reverse=True)
    return [note for _, _, note in scored[:limit]]


def format_note_date(created_at: int) -> str:
    """UTC calendar date of an epoch-ms timestamp, or UNKNOWN_DATE when out of range."""
    try:
        return datetime.fromtimestamp(created_at / 1000, tz=timezone.utc).strftime("%Y-%m-%d")
    except (ValueError, OverflowError, OSError):
        return UNKNOWN_DATE


def build_note_context(notes: Iterable[Note]) -> List[NoteContext]:
    return [
        NoteContext(
            id=note.id,
            summary=note.summary,
            tags=list(note.tags),
            category=note.category,
            excerpt=IMAGE_PLACEHOLDER if note.kind == NoteKind.IMAGE else note.original_content,
            date=format_note_date(note.created_at),
        )
        for note in notes
    ]


class RecallEngine:
    def __init__(self, model: NoteModel, parser: IntentParser, embeddings: EmbeddingsService):
        self.model = model
        self.parser = parser
        self.embeddings = embeddings

    def query(
        self,
        user_query: str,
        notes: Sequence[Note],
        language: Language,
        now: Optional[datetime] = None,
    ) -> Outcome[RecallAnswer]:
        """
        Answer ``user_query`` from ``notes``.

        Returns:
            Outcome wrapping {answer, related_ids, used_filters}. Never raises;
            a failed synthesis yields an apology with no related ids. When the
            query could not be parsed the answer is still produced from the raw
            text, but the outcome carries the parser's fallback reason.
        """
        parse_outcome = self.parser.parse(user_query, distinct_categories(notes), language, now=now)
        parsed = parse_outcome.value

        candidates = apply_hard_filters(notes, parsed)
        ranked = rank_candidates(candidates, parsed.keywords, self.embeddings)
        logger.debug(
            "Recall: %d notes, %d candidates, %d ranked", len(notes), len(candidates), len(ranked)
        )

        if not ranked:
            return Outcome(
                RecallAnswer(
                    answer=NO_MATCHES[language],
                    related_ids=[],
                    used_filters=parsed.to_filters(),
                ),
                parse_outcome.fallback,
            )

        context = build_note_context(ranked)
        try:
            result = self.model.synthesize(user_query, parsed.keywords, context, language)
        except NoteModelError as e:
            logger.warning("Answer synthesis failed (%s): %s", e.reason.value, e)
            return Outcome(self._apology(language), e.reason)
        except Exception:
            logger.exception("Unexpected error during answer synthesis")
            return Outcome(self._apology(language), FallbackReason.TRANSPORT_ERROR)

        known_ids = {entry.id for entry in context}
        related_ids = [nid for nid in result.related_ids if nid in known_ids]
        return Outcome(
            RecallAnswer(
                answer=result.answer,
                related_ids=related_ids,
                used_filters=parsed.to_filters(),
            ),
            parse_outcome.fallback,
        )

    @staticmethod
    def _apology(language: Language) -> RecallAnswer:
        return RecallAnswer(answer=SYNTHESIS_FAILED[language], related_ids=[], used_filters=None)

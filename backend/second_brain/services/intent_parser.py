"""
Intent parsing for natural-language recall queries.

Converts a free-form query into a ParsedIntent:
- keywords for semantic ranking
- an optional category (one of the known categories)
- tags to require (any of them)
- an inclusive date range in epoch milliseconds

Relative dates ("last week", "yesterday") are resolved by the model against the
wall-clock time passed in. On any failure the raw query is used as keywords
with no filters.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from .errors import NoteModelError
from .llm import NoteModel
from .models import FallbackReason, Language, Outcome, ParsedIntent

logger = logging.getLogger(__name__)


class IntentParser:
    def __init__(self, model: NoteModel):
        self.model = model

    def parse(
        self,
        query: str,
        known_categories: Sequence[str],
        language: Language,
        now: Optional[datetime] = None,
    ) -> Outcome[ParsedIntent]:
        now = now or datetime.now(timezone.utc)
        try:
            raw = self.model.parse_intent(query, list(known_categories), language, now)
        except NoteModelError as e:
            logger.warning("Intent parsing failed (%s), searching raw query: %s", e.reason.value, e)
            return Outcome(ParsedIntent.passthrough(query), e.reason)
        except Exception:
            logger.exception("Unexpected error during intent parsing")
            return Outcome(ParsedIntent.passthrough(query), FallbackReason.TRANSPORT_ERROR)

        intent = self._normalize(raw, known_categories)
        logger.debug("Parsed intent for %r: %s", query, intent.model_dump_json())
        return Outcome(intent)

    def _normalize(self, raw: ParsedIntent, known_categories: Sequence[str]) -> ParsedIntent:
        category = None
        if raw.category:
            wanted = raw.category.strip().lower()
            category = next((c for c in known_categories if c.lower() == wanted), None)
            if category is None:
                logger.debug("Dropping unknown category %r from intent", raw.category)

        tags = []
        for tag in raw.tags:
            tag = tag.strip().lstrip("#").lower()
            if tag and tag not in tags:
                tags.append(tag)

        start, end = raw.start_date, raw.end_date
        if start is not None and end is not None and start > end:
            start, end = end, start

        return ParsedIntent(
            keywords=(raw.keywords or "").strip(),
            category=category,
            tags=tags,
            start_date=start,
            end_date=end,
        )

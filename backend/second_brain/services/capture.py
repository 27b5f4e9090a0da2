"""Turn submitted content plus its annotation into a Note."""

from __future__ import annotations

import re
import time
from typing import Optional

from .annotator import IMAGE_MARKER
from .models import AnnotationResult, Note, NoteKind

_LINK_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)


def now_ms() -> int:
    return int(time.time() * 1000)


def detect_kind(text: str, image: Optional[str]) -> NoteKind:
    if image:
        return NoteKind.IMAGE
    if _LINK_RE.match((text or "").strip()):
        return NoteKind.LINK
    return NoteKind.TEXT


def build_note(
    text: str,
    image: Optional[str],
    annotation: AnnotationResult,
    created_at: Optional[int] = None,
) -> Note:
    text = (text or "").strip()
    return Note(
        original_content=text or (IMAGE_MARKER if image else ""),
        kind=detect_kind(text, image),
        image_data=image or None,
        summary=annotation.summary,
        tags=list(annotation.tags),
        category=annotation.category,
        created_at=created_at if created_at is not None else now_ms(),
        embedding=annotation.embedding,
    )

from __future__ import annotations

from typing import Callable

import pytest

from second_brain.services.llm import AnnotationDraft, SynthesizedAnswer
from second_brain.services.models import Note, NoteKind, ParsedIntent


class StubNoteModel:
    """Deterministic NoteModel: returns fixtures, records calls, raises on request."""

    def __init__(self):
        self.annotation = AnnotationDraft(
            summary="A recipe for carbonara.",
            tags=["pasta", "recipe", "italian"],
            category="Cooking",
        )
        self.intent = ParsedIntent()
        self.answer = SynthesizedAnswer(answer="stub answer", related_ids=[])
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, dict]] = []

    def _record(self, task: str, **kwargs) -> None:
        self.calls.append((task, kwargs))
        if task in self.failures:
            raise self.failures[task]

    def calls_for(self, task: str) -> list[dict]:
        return [kwargs for name, kwargs in self.calls if name == task]

    def annotate(self, text, image, existing_categories, language):  # noqa: ANN001 - test fake
        self._record(
            "annotate",
            text=text,
            image=image,
            existing_categories=existing_categories,
            language=language,
        )
        return self.annotation

    def parse_intent(self, query, categories, language, now):  # noqa: ANN001 - test fake
        self._record("parse_intent", query=query, categories=categories, language=language, now=now)
        return self.intent

    def synthesize(self, query, keywords, context, language):  # noqa: ANN001 - test fake
        self._record("synthesize", query=query, keywords=keywords, context=list(context), language=language)
        return self.answer


class FakeEmbeddings:
    """Embeddings lookup table; unknown texts get ``default``."""

    model = "fake-embedding-model"

    def __init__(self):
        self.vectors: dict[str, list[float]] = {}
        self.default: list[float] | None = None
        self.calls: list[str] = []

    def embed(self, text):  # noqa: ANN001 - test fake
        self.calls.append(text)
        return self.vectors.get(text, self.default)


@pytest.fixture()
def stub_model() -> StubNoteModel:
    return StubNoteModel()


@pytest.fixture()
def fake_embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture()
def make_note() -> Callable[..., Note]:
    counter = {"n": 0}

    def _make(**overrides) -> Note:
        counter["n"] += 1
        fields = {
            "id": f"note-{counter['n']}",
            "original_content": f"content {counter['n']}",
            "kind": NoteKind.TEXT,
            "summary": f"summary {counter['n']}",
            "tags": ["misc"],
            "category": "General",
            "created_at": 1_700_000_000_000 + counter["n"],
            "embedding": None,
        }
        fields.update(overrides)
        return Note(**fields)

    return _make

"""
Tests for building Note objects from submitted content.
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from second_brain.services.capture import build_note, detect_kind
from second_brain.services.models import AnnotationResult, Note, NoteKind

ANNOTATION = AnnotationResult(summary="s", tags=["a", "b"], category="C", embedding=[1.0])


@pytest.mark.parametrize(
    "text,image,expected",
    [
        ("plain thought", None, NoteKind.TEXT),
        ("https://example.com/article", None, NoteKind.LINK),
        ("  http://example.com  ", None, NoteKind.LINK),
        ("read https://example.com later", None, NoteKind.TEXT),
        ("caption", "QUJD", NoteKind.IMAGE),
        ("", "QUJD", NoteKind.IMAGE),
    ],
)
def test_detect_kind(text, image, expected):
    assert detect_kind(text, image) == expected


def test_build_text_note():
    note = build_note("  remember the milk ", None, ANNOTATION, created_at=42)

    assert note.original_content == "remember the milk"
    assert note.kind == NoteKind.TEXT
    assert note.image_data is None
    assert note.tags == ["a", "b"]
    assert note.category == "C"
    assert note.created_at == 42
    assert note.embedding == [1.0]


def test_build_image_only_note_uses_marker():
    note = build_note("", "QUJD", ANNOTATION, created_at=1)

    assert note.original_content == "Image Upload"
    assert note.kind == NoteKind.IMAGE
    assert note.image_data == "QUJD"


def test_build_note_stamps_current_time():
    note = build_note("x", None, ANNOTATION)
    assert note.created_at > 1_600_000_000_000


def test_note_ids_are_unique():
    assert build_note("x", None, ANNOTATION).id != build_note("x", None, ANNOTATION).id


def test_image_data_requires_image_kind():
    with pytest.raises(ValidationError):
        Note(summary="s", category="c", created_at=1, kind=NoteKind.TEXT, image_data="QUJD")
    with pytest.raises(ValidationError):
        Note(summary="s", category="c", created_at=1, kind=NoteKind.IMAGE, image_data=None)


def test_note_serializes_camel_case():
    note = build_note("x", None, ANNOTATION, created_at=7)
    payload = note.model_dump(mode="json", by_alias=True)

    assert payload["originalContent"] == "x"
    assert payload["createdAt"] == 7
    assert payload["kind"] == "text"

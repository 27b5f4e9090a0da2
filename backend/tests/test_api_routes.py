from __future__ import annotations

from pathlib import Path

import pytest

from second_brain import create_app
from second_brain.services.annotator import ContentAnnotator
from second_brain.services.container import Services
from second_brain.services.errors import ModelCallError
from second_brain.services.intent_parser import IntentParser
from second_brain.services.llm import SynthesizedAnswer
from second_brain.services.models import ParsedIntent
from second_brain.services.recall import RecallEngine
from second_brain.services.storage import NoteStorage


@pytest.fixture()
def app(tmp_path: Path, stub_model, fake_embeddings):
    storage = NoteStorage(db_path=tmp_path / "api_test.db")
    services = Services(
        storage=storage,
        annotator=ContentAnnotator(stub_model, fake_embeddings),
        recall=RecallEngine(stub_model, IntentParser(stub_model), fake_embeddings),
    )

    app = create_app(testing=True, services=services)
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


# ============================================================================
# NOTES
# ============================================================================


def test_create_note_annotates_and_saves(client, app, fake_embeddings):  # noqa: ANN001 - pytest fixtures
    fake_embeddings.default = [0.1, 0.2]

    resp = client.post("/api/notes", json={"text": "carbonara: eggs and pecorino"})

    assert resp.status_code == 201
    payload = resp.get_json()
    assert payload["degraded"] is False
    assert payload["fallbackReason"] is None
    note = payload["note"]
    assert note["category"] == "Cooking"
    assert note["tags"] == ["pasta", "recipe", "italian"]
    assert note["kind"] == "text"
    assert note["hasEmbedding"] is True
    assert "embedding" not in note

    stored = app.extensions["services"].storage.get_note(note["id"])
    assert stored.embedding == [0.1, 0.2]


def test_create_note_offers_existing_categories(client, app, stub_model, make_note):  # noqa: ANN001
    app.extensions["services"].storage.save_note(make_note(category="Coding"))

    client.post("/api/notes", json={"text": "hello", "language": "zh"})

    (call,) = stub_model.calls_for("annotate")
    assert call["existing_categories"] == ["Coding"]
    assert call["language"].value == "zh"


def test_create_note_degraded_when_model_fails(client, stub_model):  # noqa: ANN001
    stub_model.failures["annotate"] = ModelCallError("down")

    resp = client.post("/api/notes", json={"text": "a thought"})

    assert resp.status_code == 201
    payload = resp.get_json()
    assert payload["degraded"] is True
    assert payload["fallbackReason"] == "transport_error"
    assert payload["note"]["category"] == "General"
    assert payload["note"]["tags"] == ["uncategorized"]


def test_create_image_note(client):  # noqa: ANN001
    resp = client.post("/api/notes", json={"image": "data:image/png;base64,QUJD"})

    assert resp.status_code == 201
    note = resp.get_json()["note"]
    assert note["kind"] == "image"
    assert note["originalContent"] == "Image Upload"
    assert note["imageData"] == "data:image/png;base64,QUJD"


def test_create_note_requires_content(client):  # noqa: ANN001
    resp = client.post("/api/notes", json={"text": "   "})
    assert resp.status_code == 400
    assert resp.get_json()["error"]


def test_create_note_rejects_unknown_language(client):  # noqa: ANN001
    resp = client.post("/api/notes", json={"text": "hi", "language": "fr"})
    assert resp.status_code == 400


def test_list_notes_filters_by_category(client, app, make_note):  # noqa: ANN001
    storage = app.extensions["services"].storage
    coding = make_note(category="Coding", created_at=2)
    storage.save_note(make_note(category="Cooking", created_at=1))
    storage.save_note(coding)

    resp = client.get("/api/notes?category=Coding")
    assert [n["id"] for n in resp.get_json()["notes"]] == [coding.id]

    resp = client.get("/api/notes?category=All")
    assert resp.get_json()["total"] == 2


def test_get_and_delete_note(client, app, make_note):  # noqa: ANN001
    note = make_note()
    app.extensions["services"].storage.save_note(note)

    assert client.get(f"/api/notes/{note.id}").get_json()["id"] == note.id
    assert client.delete(f"/api/notes/{note.id}").get_json()["success"] is True
    assert client.get(f"/api/notes/{note.id}").status_code == 404
    assert client.delete(f"/api/notes/{note.id}").status_code == 404


def test_categories(client, app, make_note):  # noqa: ANN001
    storage = app.extensions["services"].storage
    storage.save_note(make_note(category="Home"))

    assert client.get("/api/categories").get_json() == {"categories": ["Home"]}


# ============================================================================
# RECALL
# ============================================================================


def test_ask_requires_query_field(client):  # noqa: ANN001
    resp = client.post("/api/ask", json={})
    assert resp.status_code == 400
    assert resp.get_json()["error"]


def test_ask_returns_answer_and_filters(client, app, stub_model, make_note):  # noqa: ANN001
    note = make_note(category="Coding")
    app.extensions["services"].storage.save_note(note)
    stub_model.intent = ParsedIntent(keywords="", category="Coding")
    stub_model.answer = SynthesizedAnswer(answer="One coding note.", related_ids=[note.id])

    resp = client.post("/api/ask", json={"query": "show coding notes"})

    assert resp.status_code == 200
    payload = resp.get_json()
    assert payload["answer"] == "One coding note."
    assert payload["relatedIds"] == [note.id]
    assert payload["usedFilters"] == {
        "keywords": "",
        "category": "Coding",
        "tags": [],
        "startDate": None,
        "endDate": None,
    }
    assert payload["degraded"] is False


def test_ask_omits_filters_on_failure(client, app, stub_model, make_note):  # noqa: ANN001
    app.extensions["services"].storage.save_note(make_note())
    stub_model.failures["synthesize"] = ModelCallError("down")

    payload = client.post("/api/ask", json={"query": "anything"}).get_json()

    assert payload["degraded"] is True
    assert payload["relatedIds"] == []
    assert "usedFilters" not in payload


def test_chat_session_flow(client, app, stub_model, make_note):  # noqa: ANN001
    note = make_note()
    app.extensions["services"].storage.save_note(note)
    stub_model.answer = SynthesizedAnswer(answer="Found it.", related_ids=[note.id])

    session = client.post("/api/chat/sessions", json={"language": "en"}).get_json()["session"]
    assert len(session["messages"]) == 1

    resp = client.post("/api/chat/messages", json={"session": session, "query": "what's new?"})

    assert resp.status_code == 200
    payload = resp.get_json()
    assert payload["reply"]["role"] == "model"
    assert payload["reply"]["text"] == "Found it."
    assert payload["reply"]["relatedIds"] == [note.id]
    assert payload["session"]["highlightedIds"] == [note.id]
    assert len(payload["session"]["messages"]) == 3


def test_chat_language_change_resets_session(client):  # noqa: ANN001
    session = client.post("/api/chat/sessions", json={"language": "en"}).get_json()["session"]

    resp = client.post(
        "/api/chat/messages",
        json={"session": session, "query": "有什么", "language": "zh"},
    )

    payload = resp.get_json()
    assert payload["session"]["language"] == "zh"
    assert len(payload["session"]["messages"]) == 3
    assert payload["session"]["messages"][0]["text"].startswith("你好")


def test_chat_rejects_invalid_session(client):  # noqa: ANN001
    resp = client.post("/api/chat/messages", json={"session": {"language": "xx"}, "query": "hi"})
    assert resp.status_code == 400


def test_health(client):  # noqa: ANN001
    assert client.get("/api/health").get_json() == {"status": "ok", "notes": 0}


# ============================================================================
# INPUT VALIDATION
# ============================================================================


@pytest.mark.parametrize(
    "path,body",
    [
        ("/api/notes", {"text": 5}),
        ("/api/notes", {"image": ["QUJD"]}),
        ("/api/ask", {"query": {"q": "x"}}),
        ("/api/chat/messages", {"query": 12}),
    ],
)
def test_non_string_fields_rejected(client, path, body):  # noqa: ANN001
    resp = client.post(path, json=body)

    assert resp.status_code == 400
    assert "must be a string" in resp.get_json()["error"]


def test_non_object_body_treated_as_empty(client):  # noqa: ANN001
    resp = client.post("/api/ask", json=["hello"])

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Body field 'query' is required"


@pytest.mark.parametrize("query", ["limit=0", "limit=-3", "offset=-1"])
def test_list_notes_rejects_bad_paging(client, query):  # noqa: ANN001
    resp = client.get(f"/api/notes?{query}")

    assert resp.status_code == 400
    assert resp.get_json()["error"]


def test_list_notes_honours_limit(client, app, make_note):  # noqa: ANN001
    storage = app.extensions["services"].storage
    for _ in range(3):
        storage.save_note(make_note())

    resp = client.get("/api/notes?limit=2")

    assert resp.get_json()["total"] == 2


def test_ask_reports_degraded_when_query_unparsed(client, app, stub_model, make_note):  # noqa: ANN001
    app.extensions["services"].storage.save_note(make_note())
    stub_model.failures["parse_intent"] = ModelCallError("timeout")

    payload = client.post("/api/ask", json={"query": "coding notes from last week"}).get_json()

    assert payload["answer"] == "stub answer"
    assert payload["degraded"] is True
    assert payload["usedFilters"]["keywords"] == "coding notes from last week"

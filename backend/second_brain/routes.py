"""
REST API routes for the Second Brain application.

Organized into logical groups:
- Notes: capture (annotate + save), list, read, delete
- Categories: categories in use
- Recall: one-shot questions and chat sessions over the saved notes
"""

import logging

from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from .config import Config
from .services import chat
from .services.capture import build_note
from .services.container import get_services
from .services.models import ChatSession, Language, Note

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__)


def _json_error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _language_from(data: dict) -> Language:
    """Read the display language from a request body, falling back to the configured default."""
    value = data.get("language") or Config.DEFAULT_LANGUAGE
    try:
        return Language(value)
    except ValueError:
        raise ValueError(f"Unsupported language {value!r}; expected one of: en, zh") from None


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _string_field(data: dict, name: str) -> str:
    """Stripped string value of a body field; missing or null reads as empty."""
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"Body field '{name}' must be a string")
    return value.strip()


def _note_json(note: Note) -> dict:
    payload = note.model_dump(mode="json", by_alias=True, exclude={"embedding"})
    payload["hasEmbedding"] = note.embedding is not None
    return payload


# ============================================================================
# NOTES
# ============================================================================


@bp.post("/notes")
def create_note():
    """
    Capture new content: annotate it with the model and save it.

    Body:
        { "text": str?, "image": str? (data URL or base64), "language": "en"|"zh"? }

    Returns:
        201 { "note": object, "degraded": bool, "fallbackReason": str|null }
    """
    svc = get_services()
    data = _json_body()

    try:
        text = _string_field(data, "text")
        image = _string_field(data, "image") or None
    except ValueError as e:
        return _json_error(str(e))
    if not text and not image:
        return _json_error("Body field 'text' or 'image' is required")

    try:
        language = _language_from(data)
    except ValueError as e:
        return _json_error(str(e))

    try:
        existing_categories = svc.storage.list_categories()
        outcome = svc.annotator.analyze(text, image, existing_categories, language)
        note = build_note(text, image, outcome.value)
        svc.storage.save_note(note)
    except Exception as e:
        logger.exception("Failed to capture note")
        return _json_error(str(e), 500)

    return (
        jsonify(
            {
                "note": _note_json(note),
                "degraded": outcome.degraded,
                "fallbackReason": outcome.fallback.value if outcome.fallback else None,
            }
        ),
        201,
    )


@bp.get("/notes")
def list_notes():
    """List notes newest first. Query params: category, limit, offset."""
    svc = get_services()
    category = request.args.get("category") or None
    if category == "All":
        category = None

    limit = request.args.get("limit", type=int)
    offset = request.args.get("offset", 0, type=int)
    if limit is not None and limit < 1:
        return _json_error("Query param 'limit' must be at least 1")
    if offset < 0:
        return _json_error("Query param 'offset' must not be negative")

    try:
        notes = svc.storage.list_notes(category=category, limit=limit, offset=offset)
        return jsonify(
            {
                "notes": [_note_json(n) for n in notes],
                "total": len(notes),
                "category": category,
            }
        )
    except Exception as e:
        return _json_error(str(e), 500)


@bp.get("/notes/<note_id>")
def get_note(note_id: str):
    svc = get_services()
    try:
        note = svc.storage.get_note(note_id)
        if not note:
            return _json_error("Note not found", 404)
        return jsonify(_note_json(note))
    except Exception as e:
        return _json_error(str(e), 500)


@bp.delete("/notes/<note_id>")
def delete_note(note_id: str):
    svc = get_services()
    try:
        if not svc.storage.delete_note(note_id):
            return _json_error("Note not found", 404)
        return jsonify({"success": True})
    except Exception as e:
        return _json_error(str(e), 500)


# ============================================================================
# CATEGORIES
# ============================================================================


@bp.get("/categories")
def get_categories():
    svc = get_services()
    try:
        return jsonify({"categories": svc.storage.list_categories()})
    except Exception as e:
        return _json_error(str(e), 500)


# ============================================================================
# RECALL
# ============================================================================


@bp.post("/ask")
def ask_notes():
    """
    Ask a natural-language question about your notes.

    Body:
        { "query": str, "language": "en"|"zh"? }

    Returns:
        {
          "answer": str,
          "relatedIds": [str],
          "usedFilters": object? (omitted when the answer could not be generated),
          "degraded": bool
        }
    """
    svc = get_services()
    data = _json_body()

    try:
        query = _string_field(data, "query")
    except ValueError as e:
        return _json_error(str(e))
    if not query:
        return _json_error("Body field 'query' is required")

    try:
        language = _language_from(data)
    except ValueError as e:
        return _json_error(str(e))

    try:
        notes = svc.storage.list_notes()
        outcome = svc.recall.query(query, notes, language)
    except Exception as e:
        logger.exception("Recall query failed")
        return _json_error(str(e), 500)

    answer = outcome.value
    response = {
        "answer": answer.answer,
        "relatedIds": answer.related_ids,
        "degraded": outcome.degraded,
    }
    if answer.used_filters is not None:
        response["usedFilters"] = answer.used_filters.model_dump(mode="json", by_alias=True)
    return jsonify(response)


@bp.post("/chat/sessions")
def open_chat_session():
    """Start a chat session seeded with the welcome message."""
    data = _json_body()
    try:
        language = _language_from(data)
    except ValueError as e:
        return _json_error(str(e))

    session = chat.open_session(language)
    return jsonify({"session": session.model_dump(mode="json", by_alias=True)})


@bp.post("/chat/messages")
def send_chat_message():
    """
    Append a user turn and the assistant's reply to a chat session.

    Body:
        { "session": object, "query": str, "language": "en"|"zh"? }

    A language different from the session's resets the conversation first.

    Returns:
        { "session": object, "reply": object, "degraded": bool }
    """
    svc = get_services()
    data = _json_body()

    try:
        query = _string_field(data, "query")
    except ValueError as e:
        return _json_error(str(e))
    if not query:
        return _json_error("Body field 'query' is required")

    try:
        session = ChatSession.model_validate(data.get("session") or {})
    except ValidationError as e:
        return _json_error(f"Invalid session: {e.errors()[0]['msg']}")

    if data.get("language"):
        try:
            session = chat.switch_language(session, _language_from(data))
        except ValueError as e:
            return _json_error(str(e))

    try:
        notes = svc.storage.list_notes()
        session, outcome = chat.ask(session, query, notes, svc.recall)
    except Exception as e:
        logger.exception("Chat turn failed")
        return _json_error(str(e), 500)

    return jsonify(
        {
            "session": session.model_dump(mode="json", by_alias=True),
            "reply": session.messages[-1].model_dump(mode="json", by_alias=True),
            "degraded": outcome.degraded,
        }
    )


# ============================================================================
# UTILITY ENDPOINTS
# ============================================================================


@bp.get("/health")
def health():
    """Health check endpoint."""
    svc = get_services()
    return jsonify({"status": "ok", "notes": svc.storage.get_note_count()})

"""
Chat session state for the recall assistant.

Sessions are plain values: every function returns a new ChatSession and never
mutates the one passed in, so the caller owns the conversation state.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence, Tuple

from .messages import WELCOME
from .models import ChatMessage, ChatRole, ChatSession, Language, Note, Outcome, RecallAnswer
from .recall import RecallEngine


def open_session(language: Language) -> ChatSession:
    return ChatSession(
        language=language,
        messages=[ChatMessage(role=ChatRole.MODEL, text=WELCOME[language])],
        highlighted_ids=[],
    )


def switch_language(session: ChatSession, language: Language) -> ChatSession:
    """Changing the display language starts a fresh conversation."""
    if session.language == language:
        return session
    return open_session(language)


def ask(
    session: ChatSession,
    query: str,
    notes: Sequence[Note],
    engine: RecallEngine,
    now: Optional[datetime] = None,
) -> Tuple[ChatSession, Outcome[RecallAnswer]]:
    outcome = engine.query(query, notes, session.language, now=now)
    answer = outcome.value

    reply = ChatMessage(
        role=ChatRole.MODEL,
        text=answer.answer,
        related_ids=answer.related_ids,
        used_filters=answer.used_filters,
    )

    updated = session.model_copy(
        update={
            "messages": [
                *session.messages,
                ChatMessage(role=ChatRole.USER, text=query),
                reply,
            ],
            "highlighted_ids": list(answer.related_ids),
        }
    )
    return updated, outcome

"""
Service wiring for the Flask app.

create_app() stores one Services instance in app.extensions["services"] and
routes read it through get_services(), so tests can inject stub models and a
temporary store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import current_app

from .annotator import ContentAnnotator
from .embeddings import EmbeddingsService
from .intent_parser import IntentParser
from .llm import OpenAINoteModel
from .recall import RecallEngine
from .storage import NoteStorage


@dataclass(frozen=True)
class Services:
    storage: NoteStorage
    annotator: ContentAnnotator
    recall: RecallEngine


def create_services(*, database_url: Optional[str] = None) -> Services:
    """Wire the OpenAI-backed annotator and recall engine around one shared model and embeddings adapter."""
    model = OpenAINoteModel()
    embeddings = EmbeddingsService()
    return Services(
        storage=NoteStorage(database_url=database_url),
        annotator=ContentAnnotator(model, embeddings),
        recall=RecallEngine(model, IntentParser(model), embeddings),
    )


def get_services() -> Services:
    services = current_app.extensions.get("services")
    if services is None:
        raise RuntimeError('Services not configured; create_app() sets app.extensions["services"]')
    return services

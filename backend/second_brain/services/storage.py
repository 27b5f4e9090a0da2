"""
SQLAlchemy-backed note store.

The recall core only ever reads a snapshot of the collection; writes happen
from the HTTP layer when a note is captured or deleted.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, List, Optional

from sqlalchemy import desc, func
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..database import (
    Base,
    NoteRecord,
    create_engine_for_url,
    get_engine,
    get_session_factory,
    make_session_factory,
)
from .embeddings import vector_from_json, vector_to_json
from .models import Note, NoteKind


def _tags_to_json(tags: List[str]) -> Optional[str]:
    return json.dumps(tags, ensure_ascii=False) if tags else None


def _tags_from_json(value: Any) -> List[str]:
    if not value:
        return []
    try:
        tags = json.loads(value)
    except (TypeError, ValueError):
        return []
    return [str(t) for t in tags] if isinstance(tags, list) else []


def _to_record(note: Note) -> NoteRecord:
    return NoteRecord(
        id=note.id,
        original_content=note.original_content,
        kind=note.kind.value,
        image_data=note.image_data,
        summary=note.summary,
        tags=_tags_to_json(note.tags),
        category=note.category,
        created_at=note.created_at,
        embedding=vector_to_json(note.embedding),
    )


def _from_record(record: NoteRecord) -> Note:
    return Note(
        id=record.id,
        original_content=record.original_content or "",
        kind=NoteKind(record.kind),
        image_data=record.image_data,
        summary=record.summary,
        tags=_tags_from_json(record.tags),
        category=record.category,
        created_at=record.created_at,
        embedding=vector_from_json(record.embedding),
    )


class NoteStorage:
    """Persistence for captured notes, used by the Flask routes."""

    def __init__(self, db_path: Optional[Path] = None, database_url: Optional[str] = None):
        self.engine, self.session_factory = self._configure_engine(db_path, database_url)

        # SQLite files are created on demand; other databases are migrated with Alembic.
        if self.engine.dialect.name == "sqlite":
            Base.metadata.create_all(bind=self.engine)

    def save_note(self, note: Note) -> str:
        with self._session_scope() as session:
            session.add(_to_record(note))
        return note.id

    def get_note(self, note_id: str) -> Optional[Note]:
        with self._session_scope() as session:
            record = session.get(NoteRecord, note_id)
            return _from_record(record) if record else None

    def delete_note(self, note_id: str) -> bool:
        """Returns False when no note had that id."""
        with self._session_scope() as session:
            deleted = (
                session.query(NoteRecord)
                .filter(NoteRecord.id == note_id)
                .delete(synchronize_session=False)
            )
            return deleted > 0

    def list_notes(
        self,
        category: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Note]:
        """Notes newest first, optionally restricted to one category."""
        with self._session_scope() as session:
            query = session.query(NoteRecord)
            if category:
                query = query.filter(NoteRecord.category == category)

            query = query.order_by(desc(NoteRecord.created_at), NoteRecord.id).offset(max(offset, 0))
            if limit is not None:
                query = query.limit(max(limit, 0))

            return [_from_record(record) for record in query.all()]

    def list_categories(self) -> List[str]:
        """Distinct categories, most used first, ties by name."""
        note_count = func.count(NoteRecord.id)
        with self._session_scope() as session:
            rows = (
                session.query(NoteRecord.category, note_count)
                .group_by(NoteRecord.category)
                .order_by(desc(note_count), NoteRecord.category)
                .all()
            )
        return [category for category, _ in rows]

    def get_note_count(self) -> int:
        with self._session_scope() as session:
            return session.query(func.count(NoteRecord.id)).scalar() or 0

    def _configure_engine(
        self,
        db_path: Optional[Path],
        database_url: Optional[str],
    ) -> tuple[Engine, sessionmaker]:
        if db_path and not database_url:
            database_url = f"sqlite:///{Path(db_path).resolve()}"

        if database_url:
            engine = create_engine_for_url(database_url)
            return engine, make_session_factory(engine)

        return get_engine(), get_session_factory()

    @contextmanager
    def _session_scope(self) -> Generator[Session, None, None]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

"""
ORM table for notes plus engine/session helpers.

Shared by the runtime store and Alembic, so the table definition lives in one place.
"""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import BigInteger, Column, Index, String, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import Config

logger = logging.getLogger(__name__)

Base = declarative_base()

DEV_SQLITE_PATH = Path(__file__).resolve().parent.parent / ".second_brain.db"

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


class NoteRecord(Base):
    """One captured note. Tags and embedding are stored as JSON text so SQLite and Postgres share a schema."""

    __tablename__ = "notes"

    id = Column(String(36), primary_key=True)
    original_content = Column(Text, nullable=False, default="")
    kind = Column(String(16), nullable=False, default="text")
    image_data = Column(Text, nullable=True)

    summary = Column(Text, nullable=False)
    tags = Column(Text, nullable=True)
    category = Column(String(255), nullable=False, index=True)
    created_at = Column(BigInteger, nullable=False)  # epoch ms

    # NULL when the embeddings call failed at capture time
    embedding = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_notes_created", "created_at"),
        Index("idx_notes_category_created", "category", "created_at"),
    )


def get_database_url() -> str:
    """
    Resolve the note store URL.

    DATABASE_URL wins. Outside production a local SQLite file is used;
    in production a missing URL is a configuration error.
    """
    if Config.DATABASE_URL:
        return Config.DATABASE_URL

    if Config.FLASK_ENV == "production":
        raise ValueError("DATABASE_URL must be set when FLASK_ENV=production")

    logger.warning("DATABASE_URL not set, using SQLite database at %s", DEV_SQLITE_PATH)
    return f"sqlite:///{DEV_SQLITE_PATH}"


def create_engine_for_url(database_url: Optional[str] = None) -> Engine:
    engine = create_engine(database_url or get_database_url(), future=True, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


def get_engine() -> Engine:
    """Process-wide engine for the configured URL, created on first use."""
    global _engine
    if _engine is None:
        _engine = create_engine_for_url()
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(get_engine())
    return _session_factory


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()

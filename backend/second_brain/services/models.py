"""
Data models for notes, recall queries and chat sessions.

Uses Pydantic for validation and serialization. JSON field names are
camelCase (``originalContent``, ``createdAt``...) to match the browser client.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class NoteKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    LINK = "link"


class Language(str, Enum):
    """Display language threaded through every model prompt."""
    EN = "en"
    ZH = "zh"


class FallbackReason(str, Enum):
    """Why a degraded result was substituted for a model answer."""
    TRANSPORT_ERROR = "transport_error"
    SCHEMA_VIOLATION = "schema_violation"
    EMPTY_RESPONSE = "empty_response"


class ChatRole(str, Enum):
    USER = "user"
    MODEL = "model"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Note(CamelModel):
    """A captured unit of content with its generated annotations."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    original_content: str = ""
    kind: NoteKind = NoteKind.TEXT
    image_data: Optional[str] = Field(None, description="Image payload, present iff kind is image")
    summary: str
    tags: List[str] = Field(default_factory=list)
    category: str
    created_at: int = Field(..., ge=0, description="Creation time in epoch milliseconds")
    embedding: Optional[List[float]] = None

    @model_validator(mode="after")
    def _image_data_matches_kind(self) -> "Note":
        if (self.kind == NoteKind.IMAGE) != bool(self.image_data):
            raise ValueError("image_data must be set if and only if kind is 'image'")
        return self


class AnnotationResult(CamelModel):
    """Fields produced by the annotator for a new note."""
    summary: str
    tags: List[str]
    category: str
    embedding: Optional[List[float]] = None


class ParsedIntent(CamelModel):
    """Structured interpretation of a free-text recall query."""
    keywords: str = Field(
        default="",
        description="Core topic to search for, with filter phrasing removed. May be empty.",
    )
    category: Optional[str] = Field(
        default=None,
        description="One category from the available list, or null when not clearly requested.",
    )
    tags: List[str] = Field(
        default_factory=list,
        description="Tags explicitly mentioned in the query.",
    )
    start_date: Optional[int] = Field(
        default=None,
        description="Inclusive lower bound as epoch milliseconds, or null.",
    )
    end_date: Optional[int] = Field(
        default=None,
        description="Inclusive upper bound as epoch milliseconds, or null.",
    )

    @classmethod
    def passthrough(cls, query: str) -> "ParsedIntent":
        """Intent used when the query could not be parsed: search for the raw text."""
        return cls(keywords=query, category=None, tags=[], start_date=None, end_date=None)

    def to_filters(self) -> "SearchFilters":
        return SearchFilters(
            keywords=self.keywords,
            category=self.category,
            tags=list(self.tags),
            start_date=self.start_date,
            end_date=self.end_date,
        )


class SearchFilters(CamelModel):
    """User-facing echo of the filters applied to a recall query."""
    keywords: str = ""
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    start_date: Optional[int] = None
    end_date: Optional[int] = None


class NoteContext(CamelModel):
    """Compact view of a note handed to answer synthesis."""
    id: str
    summary: str
    tags: List[str]
    category: str
    excerpt: str
    date: str


class RecallAnswer(CamelModel):
    answer: str
    related_ids: List[str] = Field(default_factory=list)
    used_filters: Optional[SearchFilters] = None


class ChatMessage(CamelModel):
    role: ChatRole
    text: str
    related_ids: Optional[List[str]] = None
    used_filters: Optional[SearchFilters] = None


class ChatSession(CamelModel):
    """Conversation log for one open chat window."""
    language: Language = Language.EN
    messages: List[ChatMessage] = Field(default_factory=list)
    highlighted_ids: List[str] = Field(default_factory=list)


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Result of a core operation.

    ``value`` is always usable. When ``fallback`` is set the value is a
    documented substitute and ``fallback`` says why.
    """

    value: T
    fallback: Optional[FallbackReason] = None

    @property
    def degraded(self) -> bool:
        return self.fallback is not None

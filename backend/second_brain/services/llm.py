"""
Generative-model capability used by the annotator, intent parser and recall engine.

One method per task, each returning a schema-validated Pydantic object or
raising a NoteModelError. The OpenAI implementation uses structured outputs
(``chat.completions.parse`` with a Pydantic ``response_format``) so the JSON
contract is enforced by the SDK. Tests substitute a stub that returns fixtures.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, List, Optional, Protocol, Sequence, Type, TypeVar

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import EmptyResponseError, ModelCallError, SchemaViolationError
from .messages import ANSWER_IN, GENERATE_IN
from .models import CamelModel, Language, NoteContext, ParsedIntent
from .openai_provider import chat_model, get_openai_client

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_DATA_URL_PREFIX = "data:"


class AnnotationDraft(BaseModel):
    """Structured output for annotating a new note"""
    summary: str = Field(description="A concise summary of the content, at most 2 sentences.")
    tags: List[str] = Field(description="3-5 relevant tags, lowercase, single words or short phrases.")
    category: str = Field(description="A single high-level category.")

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, tags: List[str]) -> List[str]:
        cleaned: List[str] = []
        for tag in tags:
            tag = tag.strip().lower()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        if not cleaned:
            raise ValueError("at least one tag is required")
        return cleaned

    @field_validator("summary", "category")
    @classmethod
    def _require_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class SynthesizedAnswer(CamelModel):
    answer: str = Field(description="Answer grounded only in the provided notes.")
    related_ids: List[str] = Field(
        default_factory=list,
        description="IDs of the provided notes that support the answer.",
    )


def to_image_url(image: str) -> str:
    """Accept either a data URL or a bare base64 payload."""
    if image.startswith(_DATA_URL_PREFIX):
        return image
    return f"data:image/jpeg;base64,{image}"


class NoteModel(Protocol):
    def annotate(
        self,
        text: str,
        image: Optional[str],
        existing_categories: Sequence[str],
        language: Language,
    ) -> AnnotationDraft: ...

    def parse_intent(
        self,
        query: str,
        categories: Sequence[str],
        language: Language,
        now: datetime,
    ) -> ParsedIntent: ...

    def synthesize(
        self,
        query: str,
        keywords: str,
        context: Sequence[NoteContext],
        language: Language,
    ) -> SynthesizedAnswer: ...


class OpenAINoteModel:
    """NoteModel backed by OpenAI chat completions with structured outputs."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: OpenAI | None = None,
    ):
        self.client = client or (OpenAI(api_key=api_key) if api_key else get_openai_client())
        self.model = model or chat_model()

    def annotate(self, text, image, existing_categories, language):
        content: List[dict[str, Any]] = [
            {"type": "text", "text": self._build_annotation_prompt(existing_categories, language)}
        ]
        if text:
            content.append({"type": "text", "text": f'User Text Input: "{text}"'})
        if image:
            content.append({"type": "image_url", "image_url": {"url": to_image_url(image)}})

        return self._parse(
            [
                {
                    "role": "system",
                    "content": (
                        "You are an expert note organization assistant for a personal "
                        "\"Second Brain\" knowledge base."
                    ),
                },
                {"role": "user", "content": content},
            ],
            AnnotationDraft,
            temperature=0.3,
        )

    def parse_intent(self, query, categories, language, now):
        prompt = self._build_intent_prompt(query, categories, language, now)
        return self._parse(
            [
                {
                    "role": "system",
                    "content": "You are a smart search query parser for a personal knowledge base.",
                },
                {"role": "user", "content": prompt},
            ],
            ParsedIntent,
            temperature=0.2,
        )

    def synthesize(self, query, keywords, context, language):
        prompt = self._build_synthesis_prompt(query, keywords, context, language)
        return self._parse(
            [
                {
                    "role": "system",
                    "content": (
                        "You are the \"Second Brain\" AI. Answer only from the provided notes "
                        "and cite them by id."
                    ),
                },
                {"role": "user", "content": prompt},
            ],
            SynthesizedAnswer,
            temperature=0.2,
        )

    def _parse(self, messages: list[dict[str, Any]], schema: Type[SchemaT], temperature: float) -> SchemaT:
        try:
            completion = self.client.chat.completions.parse(
                model=self.model,
                messages=messages,
                response_format=schema,
                temperature=temperature,
            )
        except ValidationError as e:
            raise SchemaViolationError(f"{schema.__name__} did not match schema: {e}") from e
        except OpenAIError as e:
            raise ModelCallError(f"OpenAI API error: {e}") from e

        if not completion.choices:
            raise EmptyResponseError(f"OpenAI returned no choices for {schema.__name__}")
        message = completion.choices[0].message
        if getattr(message, "refusal", None):
            raise SchemaViolationError(f"Model refused: {message.refusal}")
        parsed = message.parsed
        if parsed is None:
            raise EmptyResponseError(f"OpenAI returned empty {schema.__name__}")
        if not isinstance(parsed, schema):
            raise SchemaViolationError(
                f"Expected {schema.__name__}, got {type(parsed).__name__}"
            )
        return parsed

    def _build_annotation_prompt(self, existing_categories: Sequence[str], language: Language) -> str:
        if existing_categories:
            categories_str = (
                "Existing categories you should try to reuse if fitting: "
                + ", ".join(existing_categories)
                + "."
            )
        else:
            categories_str = "No existing categories yet. Create broad, useful categories."

        return f"""Analyze the following user input (text and/or image).
Your goal is to organize this into a "Second Brain" knowledge base.

1. Create a concise summary (max 2 sentences) of what this information is about.
2. Generate 3-5 relevant tags (lowercase, single words or short phrases).
3. Assign a single high-level category. {categories_str}

{GENERATE_IN[language]}

Return the result as JSON matching the schema."""

    def _build_intent_prompt(
        self,
        query: str,
        categories: Sequence[str],
        language: Language,
        now: datetime,
    ) -> str:
        return f"""CONTEXT:
- Current Date: {now.isoformat()} (epoch ms: {int(now.timestamp() * 1000)})
- Available Categories: {json.dumps(list(categories), ensure_ascii=False)}
- Language: {language.value}

TASK: Analyze the user query and extract structured search filters.

USER QUERY:
\"\"\"{query}\"\"\"

RULES:
1) keywords: the core topic to search for. Remove filter phrases like "show me", "from last week", "in <category>", "about".
   - If the user is asking a question (e.g. "How do I fix a leak?"), keywords is the question's topic ("fix a leak").
   - If the user is only filtering (e.g. "Show coding notes"), keywords may be empty once the category is captured.
2) category: ONE category from Available Categories, only if explicitly mentioned or strongly implied. Otherwise null.
3) tags: specific tags mentioned (e.g. "#react" or "react tag"). Otherwise an empty list.
4) startDate / endDate: inclusive bounds in epoch milliseconds when a time is mentioned
   ("last week", "yesterday", "since 2023"), computed from the Current Date. Otherwise null.
"""

    def _build_synthesis_prompt(
        self,
        query: str,
        keywords: str,
        context: Sequence[NoteContext],
        language: Language,
    ) -> str:
        notes_json = json.dumps(
            [entry.model_dump() for entry in context], ensure_ascii=False
        )
        return f"""USER QUERY:
\"\"\"{query}\"\"\"
Parsed Keywords: "{keywords}"

Here are the most relevant {len(context)} notes found (filtered by user constraints):
{notes_json}

TASK:
1) Answer the user's question based ONLY on the provided notes.
2) If the user asked for a list (e.g. "Show me"), summarize the items found.
3) If the user asked a question, synthesize the answer from the notes.
4) Return "answer" and "relatedIds" (ids of the notes you used).

{ANSWER_IN[language]}
"""

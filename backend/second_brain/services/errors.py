"""
Exceptions raised by model-backed services.

These never escape the annotator, intent parser or recall engine; they are
caught at the component boundary and mapped to a fallback result.
"""

from __future__ import annotations

from .models import FallbackReason


class NoteModelError(Exception):
    """Base class for failures of a generative-model call."""

    reason: FallbackReason = FallbackReason.TRANSPORT_ERROR


class ModelCallError(NoteModelError):
    """Network, timeout, auth or other transport-level failure."""

    reason = FallbackReason.TRANSPORT_ERROR


class SchemaViolationError(NoteModelError):
    """The model answered, but not with the required structured JSON."""

    reason = FallbackReason.SCHEMA_VIOLATION


class EmptyResponseError(SchemaViolationError):
    reason = FallbackReason.EMPTY_RESPONSE

"""Canonical event model, normalization context and error types."""

from __future__ import annotations

from .context import NormalizerContext, create_context
from .errors import FragmentParseError, NormalizerError
from .events import (
    ChatEvent,
    ChatEventType,
    TextPayload,
    ToolCallPayload,
    ToolResultPayload,
    validate_chat_event,
)

__all__ = [
    "ChatEvent",
    "ChatEventType",
    "FragmentParseError",
    "NormalizerContext",
    "NormalizerError",
    "TextPayload",
    "ToolCallPayload",
    "ToolResultPayload",
    "create_context",
    "validate_chat_event",
]

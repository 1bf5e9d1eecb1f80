"""Interface shared by provider-specific normalizers."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from ..core.context import NormalizerContext
from ..core.events import (
    ChatEvent,
    ChatEventPayload,
    ChatEventType,
    TextPayload,
    ToolCallPayload,
    ToolResultPayload,
)


def is_non_empty_string(value: Any) -> bool:
    """Return ``True`` for strings containing at least one non-space character."""

    return isinstance(value, str) and bool(value.strip())


def _reject_constant(name: str) -> Any:
    msg = f"invalid JSON constant: {name}"
    raise ValueError(msg)


def loads_json(text: str) -> Any:
    """Decode strict JSON text.

    ``NaN`` and ``Infinity`` literals are rejected. Besides
    :class:`json.JSONDecodeError`, callers must expect a plain
    :class:`ValueError` for oversized integers and :class:`RecursionError`
    for deeply nested input.
    """

    return json.loads(text, parse_constant=_reject_constant)


class ProviderNormalizer(ABC):
    """Translate raw provider fragments into canonical chat events.

    Instances carry state across calls and must be used for exactly one
    response stream: create one when the response starts, feed it every
    fragment in arrival order, and discard it once the terminal event has been
    emitted.
    """

    provider: ClassVar[str]

    @abstractmethod
    def normalize(self, fragment: Any, context: NormalizerContext) -> list[ChatEvent]:
        """Return the canonical events produced by a single raw fragment."""

    def _emit(
        self,
        event_type: ChatEventType,
        payload: ChatEventPayload,
        context: NormalizerContext,
    ) -> ChatEvent:
        return ChatEvent(
            id=context.generate_event_id(),
            timestamp=context.timestamp(),
            session_id=context.session_id,
            turn_id=context.turn_id,
            response_id=context.response_id,
            type=event_type,
            payload=payload,
        )

    def _text_event(self, event_type: ChatEventType, text: str, context: NormalizerContext) -> ChatEvent:
        return self._emit(event_type, TextPayload(text=text), context)

    def _tool_call_event(
        self,
        tool_call_id: str,
        tool_name: str,
        args: dict[str, Any],
        context: NormalizerContext,
    ) -> ChatEvent:
        payload = ToolCallPayload(tool_call_id=tool_call_id, tool_name=tool_name, args=args)
        return self._emit(ChatEventType.TOOL_CALL, payload, context)

    def _tool_result_event(self, tool_call_id: str, result: Any, context: NormalizerContext) -> ChatEvent:
        payload = ToolResultPayload(tool_call_id=tool_call_id, result=result)
        return self._emit(ChatEventType.TOOL_RESULT, payload, context)


__all__ = ["ProviderNormalizer", "is_non_empty_string"]

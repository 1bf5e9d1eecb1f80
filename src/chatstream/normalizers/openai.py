"""Normalizer for OpenAI-compatible chat completion streaming chunks."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..core.context import NormalizerContext
from ..core.events import ChatEvent, ChatEventType
from .base import ProviderNormalizer, loads_json

LOGGER = logging.getLogger(__name__)


@dataclass
class _ToolCallState:
    """Accumulate the metadata and argument fragments of one streamed tool call."""

    call_id: str
    name: str
    arguments_json: str = ""

    def parse_arguments(self) -> dict[str, Any]:
        trimmed = self.arguments_json.strip()
        if not trimmed:
            return {}
        try:
            parsed = loads_json(trimmed)
        except (ValueError, RecursionError):
            LOGGER.debug("Discarding malformed arguments for tool call %s", self.call_id)
            return {}
        return parsed if isinstance(parsed, dict) else {}


@dataclass
class _ChoiceState:
    """Buffered text and tool calls for a single choice index."""

    text: str = ""
    tool_calls: dict[int, _ToolCallState] = field(default_factory=dict)


def _coerce_mapping(value: Any) -> Mapping[str, Any] | None:
    if isinstance(value, Mapping):
        return value

    if hasattr(value, "model_dump"):
        dumped = value.model_dump()
        if isinstance(dumped, Mapping):
            return dumped

    return None


def _extract_text(content: Any) -> str:
    if isinstance(content, str):
        return content

    if isinstance(content, Sequence) and not isinstance(content, (bytes, bytearray)):
        parts: list[str] = []
        for part in content:
            if isinstance(part, Mapping) and part.get("type") == "text" and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)

    return ""


def _tool_call_index(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0


class OpenAINormalizer(ProviderNormalizer):
    """Normalize OpenAI streaming chunks into canonical chat events.

    Text deltas are emitted as they arrive. Tool call arguments are buffered
    per ``(choice, index)`` and only emitted once ``finish_reason`` is
    ``"tool_calls"``, ordered by tool call index.
    """

    provider = "openai"

    def __init__(self) -> None:
        self._choices: dict[int, _ChoiceState] = {}

    def normalize(self, fragment: Any, context: NormalizerContext) -> list[ChatEvent]:
        chunk = _coerce_mapping(fragment)
        if chunk is None:
            return []

        choices = chunk.get("choices")
        if not isinstance(choices, list):
            return []

        events: list[ChatEvent] = []
        for choice_index, raw_choice in enumerate(choices):
            choice = _coerce_mapping(raw_choice)
            if choice is None:
                continue
            events.extend(self._normalize_choice(choice_index, choice, context))
        return events

    def _normalize_choice(
        self,
        choice_index: int,
        choice: Mapping[str, Any],
        context: NormalizerContext,
    ) -> list[ChatEvent]:
        delta = _coerce_mapping(choice.get("delta"))
        finish_reason = choice.get("finish_reason")
        if not isinstance(finish_reason, str) or not finish_reason:
            finish_reason = None

        if delta is None and finish_reason is None:
            return []

        events: list[ChatEvent] = []
        if delta is not None:
            text = _extract_text(delta.get("content"))
            if text:
                state = self._choices.setdefault(choice_index, _ChoiceState())
                state.text += text
                events.append(self._text_event(ChatEventType.ASSISTANT_CHUNK, text, context))

            tool_calls = delta.get("tool_calls")
            if isinstance(tool_calls, list):
                self._accumulate_tool_calls(choice_index, tool_calls, context)

        if finish_reason == "stop":
            state = self._choices.get(choice_index)
            full_text = state.text if state is not None else ""
            events.append(self._text_event(ChatEventType.ASSISTANT_DONE, full_text, context))
            if state is not None:
                state.text = ""
        elif finish_reason == "tool_calls":
            events.extend(self._flush_tool_calls(choice_index, context))

        return events

    def _accumulate_tool_calls(
        self,
        choice_index: int,
        tool_calls: list[Any],
        context: NormalizerContext,
    ) -> None:
        state = self._choices.setdefault(choice_index, _ChoiceState())
        for raw_call in tool_calls:
            payload = _coerce_mapping(raw_call)
            if payload is None:
                continue

            index = _tool_call_index(payload.get("index"))
            function = _coerce_mapping(payload.get("function"))

            call_state = state.tool_calls.get(index)
            if call_state is None:
                call_id = payload.get("id")
                if not isinstance(call_id, str) or not call_id:
                    call_id = context.generate_event_id()
                name = function.get("name") if function is not None else None
                call_state = _ToolCallState(call_id=call_id, name=name if isinstance(name, str) else "")
                state.tool_calls[index] = call_state

            if function is not None and isinstance(function.get("arguments"), str):
                call_state.arguments_json += function["arguments"]

    def _flush_tool_calls(self, choice_index: int, context: NormalizerContext) -> list[ChatEvent]:
        state = self._choices.get(choice_index)
        if state is None:
            return []

        events: list[ChatEvent] = []
        for index in sorted(state.tool_calls):
            call_state = state.tool_calls[index]
            if not call_state.name:
                LOGGER.debug("Skipping unnamed tool call %s at index %d", call_state.call_id, index)
                continue
            events.append(
                self._tool_call_event(
                    call_state.call_id,
                    call_state.name,
                    call_state.parse_arguments(),
                    context,
                )
            )

        state.tool_calls.clear()
        return events


__all__ = ["OpenAINormalizer"]

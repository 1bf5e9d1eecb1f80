"""Normalizer for the Codex CLI JSON event stream."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.context import NormalizerContext
from ..core.errors import FragmentParseError
from ..core.events import ChatEvent, ChatEventType
from .base import ProviderNormalizer, is_non_empty_string, loads_json


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, str):
        try:
            parsed = loads_json(raw)
        except (ValueError, RecursionError):
            return {}
        return dict(parsed) if isinstance(parsed, dict) else {}

    if isinstance(raw, Mapping):
        return dict(raw)

    return {}


class CodexCLINormalizer(ProviderNormalizer):
    """Normalize Codex CLI JSON lines into canonical chat events.

    Codex delivers completed items as single lines, so this normalizer keeps
    no buffers between calls.
    """

    provider = "codex-cli"

    def normalize(self, fragment: Any, context: NormalizerContext) -> list[ChatEvent]:
        message = self._parse_line(fragment)
        if message is None:
            return []

        message_type = message.get("type")
        if not is_non_empty_string(message_type):
            return []

        if message_type == "item.completed":
            return self._handle_item_completed(message, context)

        if message_type == "agent_message_delta":
            delta = message.get("delta")
            if not is_non_empty_string(delta):
                return []
            return [self._text_event(ChatEventType.ASSISTANT_CHUNK, delta, context)]

        if message_type == "function_call":
            return [self._function_call_event(message, context)]

        return []

    def _parse_line(self, fragment: Any) -> Mapping[str, Any] | None:
        if not isinstance(fragment, str):
            msg = "CodexCLINormalizer expects each fragment to be a string line"
            raise TypeError(msg)

        line = fragment.strip()
        if not line:
            return None

        try:
            parsed = loads_json(line)
        except (ValueError, RecursionError) as exc:
            msg = f"Unexpected Codex CLI output (non-JSON): {exc}"
            raise FragmentParseError(msg, provider=self.provider, fragment=line) from exc

        if not isinstance(parsed, Mapping):
            return None
        return parsed

    def _handle_item_completed(
        self,
        message: Mapping[str, Any],
        context: NormalizerContext,
    ) -> list[ChatEvent]:
        item = message.get("item")
        if not isinstance(item, Mapping):
            return []

        text = item.get("text")
        if not is_non_empty_string(text):
            return []

        item_type = item.get("type")
        if item_type == "agent_message":
            return [
                self._text_event(ChatEventType.ASSISTANT_CHUNK, text, context),
                self._text_event(ChatEventType.ASSISTANT_DONE, text, context),
            ]
        if item_type == "reasoning":
            return [
                self._text_event(ChatEventType.THINKING_CHUNK, text, context),
                self._text_event(ChatEventType.THINKING_DONE, text, context),
            ]
        return []

    def _function_call_event(self, message: Mapping[str, Any], context: NormalizerContext) -> ChatEvent:
        name = message.get("name")
        call_id = message.get("call_id")

        tool_name = name if is_non_empty_string(name) else "function_call"
        tool_call_id = call_id if is_non_empty_string(call_id) else context.generate_event_id()
        args = _parse_arguments(message.get("arguments"))
        return self._tool_call_event(tool_call_id, tool_name, args, context)


__all__ = ["CodexCLINormalizer"]

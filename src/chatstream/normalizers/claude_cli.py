"""Normalizer for the Claude CLI ``stream-json`` line protocol."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ..core.context import NormalizerContext
from ..core.errors import FragmentParseError
from ..core.events import ChatEvent, ChatEventType
from .base import ProviderNormalizer, is_non_empty_string, loads_json

LOGGER = logging.getLogger(__name__)

_TOOL_USE_BLOCKS = {"tool_use", "server_tool_use"}


def _extract_text_delta(event: Mapping[str, Any]) -> str | None:
    """Find an explicit incremental text delta, searching nested envelopes first."""

    nested_event = event.get("event")
    if isinstance(nested_event, Mapping):
        nested = _extract_text_delta(nested_event)
        if nested:
            return nested

    event_type = event.get("type")
    if event_type in {"stream_event", "content_block_delta"}:
        candidate = nested_event if event_type == "stream_event" else event
        if isinstance(candidate, Mapping) and candidate.get("type") == "content_block_delta":
            inner_delta = candidate.get("delta")
            if isinstance(inner_delta, Mapping) and inner_delta.get("type") == "text_delta":
                text = inner_delta.get("text")
                if is_non_empty_string(text):
                    return text

    delta = event.get("delta")
    if is_non_empty_string(delta):
        return delta

    if isinstance(delta, Mapping):
        text = delta.get("text")
        if is_non_empty_string(text):
            return text

    delta_text = event.get("deltaText")
    if is_non_empty_string(delta_text):
        return delta_text

    return None


def _extract_full_text(event: Mapping[str, Any]) -> str | None:
    """Find a full-text snapshot of the assistant message so far."""

    completion = event.get("completion")
    if is_non_empty_string(completion):
        return completion

    text = event.get("text")
    if is_non_empty_string(text):
        return text

    message = event.get("message")
    if not isinstance(message, Mapping):
        return None

    content = message.get("content")
    if is_non_empty_string(content):
        return content

    if isinstance(content, Sequence) and not isinstance(content, (str, bytes, bytearray)):
        chunks = [
            block["text"]
            for block in content
            if isinstance(block, Mapping)
            and block.get("type") == "text"
            and is_non_empty_string(block.get("text"))
        ]
        if chunks:
            return "".join(chunks)

    return None


def _clean_identifier(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _content_blocks(event: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    message = event.get("message")
    if not isinstance(message, Mapping):
        return []
    content = message.get("content")
    if not isinstance(content, Sequence) or isinstance(content, (str, bytes, bytearray)):
        return []
    return [block for block in content if isinstance(block, Mapping)]


def _has_tool_input(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (Mapping, list)) and not value:
        return False
    return True


class ClaudeCLINormalizer(ProviderNormalizer):
    """Normalize Claude CLI JSON lines into canonical chat events.

    The CLI emits the same information in several coexisting encodings:
    ``stream_event`` envelopes around raw Messages API events, explicit text
    deltas, full-text snapshots and a terminal ``result`` summary. Text is
    taken from an explicit delta when one exists and otherwise diffed against
    the last seen snapshot so every character is emitted exactly once.
    """

    provider = "claude-cli"

    def __init__(self) -> None:
        self._full_text = ""
        self._snapshot = ""
        self._thinking_text = ""
        self._thinking_started = False
        self._thinking_done = False
        self._tool_call_ids: dict[str, str] = {}
        self._emitted_tool_calls: set[str] = set()
        self._emitted_tool_results: set[str] = set()

    @property
    def full_text(self) -> str:
        """Assistant text accumulated so far (or the final ``result`` text)."""

        return self._full_text

    @property
    def thinking_text(self) -> str:
        return self._thinking_text

    def normalize(self, fragment: Any, context: NormalizerContext) -> list[ChatEvent]:
        if not isinstance(fragment, str):
            msg = "ClaudeCLINormalizer expects each fragment to be a string line"
            raise TypeError(msg)

        line = fragment.strip()
        if not line:
            return []

        try:
            event = loads_json(line)
        except (ValueError, RecursionError) as exc:
            msg = f"Unexpected Claude CLI output (non-JSON): {line}"
            raise FragmentParseError(msg, provider=self.provider, fragment=line) from exc

        events: list[ChatEvent] = []
        if isinstance(event, Mapping):
            self._process_event(event, context, events)
        return events

    def _process_event(
        self,
        event: Mapping[str, Any],
        context: NormalizerContext,
        events: list[ChatEvent],
    ) -> None:
        core_event = event
        if event.get("type") == "stream_event" and isinstance(event.get("event"), Mapping):
            core_event = event["event"]

        core_type = core_event.get("type")
        if core_type == "assistant":
            self._handle_assistant_message(core_event, context, events)
            return
        if core_type == "user":
            self._handle_user_message(core_event, context, events)
            return

        if core_type == "content_block_start":
            self._handle_content_block_start(core_event, context, events)
        elif core_type == "content_block_delta":
            self._handle_content_block_delta(core_event, context, events)
        elif core_type in {"content_block_stop", "message_stop"}:
            self._finalize_thinking(context, events)

        if event.get("type") == "result":
            self._handle_result_summary(event, context, events)
            return

        delta = _extract_text_delta(event)
        if delta:
            self._full_text += delta
            events.append(self._text_event(ChatEventType.ASSISTANT_CHUNK, delta, context))
            return

        snapshot = _extract_full_text(event)
        if snapshot is None or snapshot == self._snapshot:
            return

        if not snapshot.startswith(self._snapshot):
            # TODO: surface non-prefix snapshots once we know whether they are provider retries.
            LOGGER.debug("Claude snapshot does not extend previous text; resetting baseline")
            self._snapshot = snapshot
            return

        delta = snapshot[len(self._snapshot):]
        self._snapshot = snapshot
        if delta:
            self._full_text += delta
            events.append(self._text_event(ChatEventType.ASSISTANT_CHUNK, delta, context))

    def _handle_assistant_message(
        self,
        event: Mapping[str, Any],
        context: NormalizerContext,
        events: list[ChatEvent],
    ) -> None:
        for block in _content_blocks(event):
            if block.get("type") != "tool_use":
                continue
            self._emit_tool_call(
                tool_use_id=_clean_identifier(block.get("id")),
                name=block.get("name"),
                tool_input=block.get("input"),
                context=context,
                events=events,
            )

    def _handle_user_message(
        self,
        event: Mapping[str, Any],
        context: NormalizerContext,
        events: list[ChatEvent],
    ) -> None:
        for block in _content_blocks(event):
            if block.get("type") != "tool_result":
                continue
            result = block.get("content")
            if result is None:
                result = block.get("result")
            self._emit_tool_result(
                tool_use_id=_clean_identifier(block.get("tool_use_id")),
                result=result,
                context=context,
                events=events,
            )

    def _handle_content_block_start(
        self,
        event: Mapping[str, Any],
        context: NormalizerContext,
        events: list[ChatEvent],
    ) -> None:
        block = event.get("content_block")
        if not isinstance(block, Mapping):
            return

        block_type = block.get("type")
        if not isinstance(block_type, str):
            return

        if block_type in _TOOL_USE_BLOCKS:
            tool_input = block.get("input")
            # Streaming tool_use blocks start with an empty input; the full call arrives later.
            if not _has_tool_input(tool_input):
                return
            self._emit_tool_call(
                tool_use_id=_clean_identifier(block.get("id")),
                name=block.get("name"),
                tool_input=tool_input,
                context=context,
                events=events,
            )
        elif block_type == "tool_result" or block_type.endswith("_tool_result"):
            result = block.get("content")
            if result is None:
                result = block.get("result")
            if result is None or result == "":
                return
            self._emit_tool_result(
                tool_use_id=_clean_identifier(block.get("tool_use_id")),
                result=result,
                context=context,
                events=events,
            )

    def _handle_content_block_delta(
        self,
        event: Mapping[str, Any],
        context: NormalizerContext,
        events: list[ChatEvent],
    ) -> None:
        delta = event.get("delta")
        if not isinstance(delta, Mapping) or delta.get("type") != "thinking_delta":
            return

        thinking = delta.get("thinking")
        if not is_non_empty_string(thinking):
            return

        self._thinking_started = True
        self._thinking_text += thinking
        events.append(self._text_event(ChatEventType.THINKING_CHUNK, thinking, context))

    def _handle_result_summary(
        self,
        event: Mapping[str, Any],
        context: NormalizerContext,
        events: list[ChatEvent],
    ) -> None:
        self._finalize_thinking(context, events)

        result = event.get("result")
        final_text = result if is_non_empty_string(result) else self._full_text
        if not final_text:
            return

        self._full_text = final_text
        events.append(self._text_event(ChatEventType.ASSISTANT_DONE, final_text, context))

    def _emit_tool_call(
        self,
        *,
        tool_use_id: str | None,
        name: Any,
        tool_input: Any,
        context: NormalizerContext,
        events: list[ChatEvent],
    ) -> None:
        call_id = self._resolve_tool_call_id(tool_use_id, context)
        if call_id in self._emitted_tool_calls:
            LOGGER.debug("Skipping duplicate Claude tool_call for %s", call_id)
            return
        self._emitted_tool_calls.add(call_id)

        tool_name = name.strip() if isinstance(name, str) else ""
        args = dict(tool_input) if isinstance(tool_input, Mapping) else {}
        events.append(self._tool_call_event(call_id, tool_name or "tool", args, context))

    def _emit_tool_result(
        self,
        *,
        tool_use_id: str | None,
        result: Any,
        context: NormalizerContext,
        events: list[ChatEvent],
    ) -> None:
        call_id = self._resolve_tool_call_id(tool_use_id, context)
        if call_id in self._emitted_tool_results:
            LOGGER.debug("Skipping duplicate Claude tool_result for %s", call_id)
            return
        self._emitted_tool_results.add(call_id)

        events.append(self._tool_result_event(call_id, result, context))

    def _resolve_tool_call_id(self, tool_use_id: str | None, context: NormalizerContext) -> str:
        if not tool_use_id:
            return context.generate_event_id()

        existing = self._tool_call_ids.get(tool_use_id)
        if existing is not None:
            return existing

        call_id = context.generate_event_id()
        self._tool_call_ids[tool_use_id] = call_id
        return call_id

    def _finalize_thinking(self, context: NormalizerContext, events: list[ChatEvent]) -> None:
        if not self._thinking_started or self._thinking_done:
            return
        self._thinking_done = True
        events.append(self._text_event(ChatEventType.THINKING_DONE, self._thinking_text, context))


__all__ = ["ClaudeCLINormalizer"]

"""JSON-lines readers and writers for captured provider streams."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Iterator, List, TextIO

from ..core.errors import FragmentParseError
from ..core.events import ChatEvent, validate_chat_event

# Providers whose fragments are parsed chunk objects rather than raw lines.
_OBJECT_PROVIDERS = {"openai"}


def read_fragments(path: Path | str, provider: str) -> Iterator[Any]:
    """Yield the raw fragments recorded in ``path`` for ``provider``.

    Line-protocol providers receive each non-blank line verbatim so the
    normalizer performs its own parsing. Chunk providers receive decoded JSON
    objects.
    """

    with Path(path).open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            stripped = line.strip()
            if not stripped:
                continue
            if provider not in _OBJECT_PROVIDERS:
                yield stripped
                continue
            try:
                yield json.loads(stripped)
            except json.JSONDecodeError as exc:
                msg = f"line {line_number} of {path} is not valid JSON"
                raise FragmentParseError(msg, provider=provider, fragment=stripped) from exc


def write_events(events: Iterable[ChatEvent], handle: TextIO) -> int:
    """Write ``events`` as canonical JSON lines and return how many were written."""

    count = 0
    for event in events:
        handle.write(json.dumps(event.to_wire(), ensure_ascii=False, sort_keys=True))
        handle.write("\n")
        count += 1
    return count


def read_events(path: Path | str) -> List[ChatEvent]:
    """Load and validate a canonical event JSONL file."""

    events: List[ChatEvent] = []
    with Path(path).open("r", encoding="utf-8") as handle:
        for line in handle:
            stripped = line.strip()
            if stripped:
                events.append(validate_chat_event(json.loads(stripped)))
    return events


__all__ = ["read_events", "read_fragments", "write_events"]

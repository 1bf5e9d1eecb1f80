from __future__ import annotations

import io
import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from chatstream.core.errors import FragmentParseError
from chatstream.io.jsonl import read_events, read_fragments, write_events
from chatstream.normalizers.codex_cli import CodexCLINormalizer

from tests.fixtures import provider_streams


def test_read_fragments_yields_raw_lines_for_cli_providers(tmp_path: Path) -> None:
    path = tmp_path / "codex.jsonl"
    path.write_text("\n".join(provider_streams.codex_session()) + "\n\n", encoding="utf-8")

    fragments = list(read_fragments(path, "codex-cli"))

    assert fragments == provider_streams.codex_session()


def test_read_fragments_decodes_openai_chunks(tmp_path: Path) -> None:
    path = tmp_path / "openai.jsonl"
    chunks = provider_streams.openai_tool_call_chunks()
    path.write_text("\n".join(json.dumps(chunk) for chunk in chunks), encoding="utf-8")

    assert list(read_fragments(path, "openai")) == chunks


def test_read_fragments_reports_bad_openai_lines(tmp_path: Path) -> None:
    path = tmp_path / "openai.jsonl"
    path.write_text("{\"choices\": []}\n{oops\n", encoding="utf-8")

    with pytest.raises(FragmentParseError, match="line 2"):
        list(read_fragments(path, "openai"))


def test_write_then_read_events(tmp_path: Path, context) -> None:
    normalizer = CodexCLINormalizer()
    events = [event for line in provider_streams.codex_session() for event in normalizer.normalize(line, context)]

    handle = io.StringIO()
    assert write_events(events, handle) == len(events)

    path = tmp_path / "events.jsonl"
    path.write_text(handle.getvalue(), encoding="utf-8")

    assert read_events(path) == events
    first = json.loads(handle.getvalue().splitlines()[0])
    assert first["sessionId"] == "session-1"


def test_read_events_rejects_invalid_events(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    path.write_text("{\"id\": \"e\"}\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        read_events(path)

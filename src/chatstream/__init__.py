"""Normalize streaming output from AI agent providers into canonical chat events.

Each supported provider (the Claude CLI, the Codex CLI and OpenAI-compatible
chat completion streams) has a small stateful normalizer that turns raw
fragments into a single provider-agnostic event vocabulary. Renderers,
storage and cross-agent messaging only ever see :class:`ChatEvent` objects.
"""

from __future__ import annotations

from .config import StreamConfig
from .core import (
    ChatEvent,
    ChatEventType,
    FragmentParseError,
    NormalizerContext,
    NormalizerError,
    create_context,
    validate_chat_event,
)
from .core.stream import LineBuffer, NormalizedEventStream, collect_text, iter_lines, replay_stream
from .normalizers import (
    ClaudeCLINormalizer,
    CodexCLINormalizer,
    OpenAINormalizer,
    ProviderNormalizer,
    create_normalizer,
)

__all__ = [
    "ChatEvent",
    "ChatEventType",
    "ClaudeCLINormalizer",
    "CodexCLINormalizer",
    "FragmentParseError",
    "LineBuffer",
    "NormalizedEventStream",
    "NormalizerContext",
    "NormalizerError",
    "OpenAINormalizer",
    "ProviderNormalizer",
    "StreamConfig",
    "collect_text",
    "create_context",
    "create_normalizer",
    "iter_lines",
    "replay_stream",
    "validate_chat_event",
]

__version__ = "0.1.0"

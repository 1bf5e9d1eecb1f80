"""Provider normalizers and the registry used to select them."""

from __future__ import annotations

from collections.abc import Mapping

from ..core.errors import NormalizerError
from .base import ProviderNormalizer, is_non_empty_string
from .claude_cli import ClaudeCLINormalizer
from .codex_cli import CodexCLINormalizer
from .openai import OpenAINormalizer

PROVIDERS: Mapping[str, type[ProviderNormalizer]] = {
    ClaudeCLINormalizer.provider: ClaudeCLINormalizer,
    CodexCLINormalizer.provider: CodexCLINormalizer,
    OpenAINormalizer.provider: OpenAINormalizer,
}


def create_normalizer(provider: str) -> ProviderNormalizer:
    """Return a fresh normalizer for one response stream of ``provider``."""

    try:
        normalizer_cls = PROVIDERS[provider]
    except KeyError as exc:
        joined = ", ".join(sorted(PROVIDERS))
        msg = f"unknown provider '{provider}' (expected one of: {joined})"
        raise NormalizerError(msg) from exc
    return normalizer_cls()


__all__ = [
    "ClaudeCLINormalizer",
    "CodexCLINormalizer",
    "OpenAINormalizer",
    "PROVIDERS",
    "ProviderNormalizer",
    "create_normalizer",
    "is_non_empty_string",
]

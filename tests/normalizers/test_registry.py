from __future__ import annotations

import pytest

from chatstream.core.errors import NormalizerError
from chatstream.normalizers import PROVIDERS, CodexCLINormalizer, create_normalizer


def test_registry_lists_every_provider() -> None:
    assert set(PROVIDERS) == {"claude-cli", "codex-cli", "openai"}


def test_create_normalizer_returns_new_instances() -> None:
    first = create_normalizer("codex-cli")
    second = create_normalizer("codex-cli")

    assert isinstance(first, CodexCLINormalizer)
    assert first is not second


def test_create_normalizer_rejects_unknown_provider() -> None:
    with pytest.raises(NormalizerError, match="unknown provider"):
        create_normalizer("gemini")

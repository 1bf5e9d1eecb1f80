from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from chatstream.core.context import NormalizerContext  # noqa: E402

from tests.fixtures import provider_streams  # noqa: E402


@pytest.fixture
def make_context() -> Callable[..., NormalizerContext]:
    """Factory for deterministic normalizer contexts."""

    return provider_streams.counting_context


@pytest.fixture
def context() -> NormalizerContext:
    return provider_streams.counting_context()

"""Per-call identity and effects handed to provider normalizers."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class NormalizerContext:
    """Identity of the response being normalized plus injected effects.

    ``generate_event_id`` must return globally unique values and
    ``timestamp`` must be non-decreasing for the events of one response. The
    identifiers are copied verbatim onto every emitted event.
    """

    session_id: str
    turn_id: str
    response_id: str
    generate_event_id: Callable[[], str]
    timestamp: Callable[[], int]


class _MonotonicClock:
    """Millisecond wall clock that never goes backwards."""

    def __init__(self) -> None:
        self._last = 0

    def __call__(self) -> int:
        now = time.time_ns() // 1_000_000
        if now < self._last:
            return self._last
        self._last = now
        return now


def _uuid_event_id() -> str:
    return uuid4().hex


def create_context(
    session_id: str,
    turn_id: str,
    response_id: str,
    *,
    id_factory: Callable[[], str] | None = None,
    clock: Callable[[], int] | None = None,
) -> NormalizerContext:
    """Build a :class:`NormalizerContext` with uuid ids and a monotonic clock."""

    return NormalizerContext(
        session_id=session_id,
        turn_id=turn_id,
        response_id=response_id,
        generate_event_id=id_factory or _uuid_event_id,
        timestamp=clock or _MonotonicClock(),
    )


__all__ = ["NormalizerContext", "create_context"]

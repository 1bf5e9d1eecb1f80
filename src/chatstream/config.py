"""Configuration describing which provider stream to normalize and for whom."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from .core.context import NormalizerContext, create_context
from .normalizers import PROVIDERS, ProviderNormalizer, create_normalizer


def normalize_provider_name(value: str) -> str:
    """Map user supplied provider names such as ``Claude_CLI`` onto registry keys."""

    return "-".join(value.strip().lower().replace("_", "-").split())


@dataclass(slots=True)
class StreamConfig:
    """Identity and provider selection for one response stream.

    Attributes
    ----------
    provider:
        Registry key of the provider whose output is being normalized, one of
        ``claude-cli``, ``codex-cli`` or ``openai``.
    session_id, turn_id, response_id:
        Correlation identifiers copied onto every emitted event. When omitted
        :meth:`from_values` generates fresh uuid4 values so ad-hoc replays
        still produce well-formed events.
    """

    provider: str
    session_id: str
    turn_id: str
    response_id: str

    @classmethod
    def from_values(
        cls,
        provider: str,
        *,
        session_id: str | None = None,
        turn_id: str | None = None,
        response_id: str | None = None,
    ) -> "StreamConfig":
        """Build a :class:`StreamConfig`, validating ``provider``."""

        key = normalize_provider_name(provider)
        if key not in PROVIDERS:
            joined = ", ".join(sorted(PROVIDERS))
            raise ValueError(f"unknown provider '{provider}' (expected one of: {joined})")

        return cls(
            provider=key,
            session_id=session_id or str(uuid4()),
            turn_id=turn_id or str(uuid4()),
            response_id=response_id or str(uuid4()),
        )

    def context(self) -> NormalizerContext:
        """Return a normalizer context with uuid event ids and a wall clock."""

        return create_context(self.session_id, self.turn_id, self.response_id)

    def create_normalizer(self) -> ProviderNormalizer:
        return create_normalizer(self.provider)

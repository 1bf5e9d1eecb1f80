"""Exception types raised by chatstream normalizers."""

from __future__ import annotations


class NormalizerError(RuntimeError):
    """Raised when a normalizer cannot translate its input."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class FragmentParseError(NormalizerError):
    """A provider violated its line protocol (e.g. emitted non-JSON output).

    The stream cannot be trusted after this point; callers should terminate or
    restart it rather than retry the same fragment.
    """

    def __init__(self, message: str, *, provider: str, fragment: str) -> None:
        super().__init__(message)
        self.provider = provider
        self.fragment = fragment

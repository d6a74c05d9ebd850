"""Error taxonomy for CrisisFusion.

ProviderError and ParseError are absorbed at the resolver/aggregator boundary
and converted to substitute or safe-default results. ValidationError is the
only error that propagates to callers.
"""

from __future__ import annotations

from typing import Optional


class CrisisFusionError(Exception):
    """Base class for all CrisisFusion errors."""


class ProviderError(CrisisFusionError):
    """An external provider failed: timeout, network error, or malformed response.

    Args:
        provider: Name of the provider that failed (e.g. "mapbox").
        message: Human-readable failure description.
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class ParseError(CrisisFusionError):
    """A provider answered, but its payload is not structured as expected.

    Args:
        message: What could not be parsed.
        raw: The raw provider output, kept for best-effort fallbacks.
    """

    def __init__(self, message: str, raw: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw = raw


class ValidationError(CrisisFusionError):
    """Caller-supplied input failed a precondition (e.g. coordinates out of range)."""

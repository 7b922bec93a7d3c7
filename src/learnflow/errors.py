"""Error types raised across the relay.

Only the HTTP layer turns ``ClientInputError`` and ``RateLimitExceeded``
into error statuses. ``UpstreamError``, ``WebSearchError`` and ``ScanError``
are recovered inside the request and surface as assistant messages.
"""

from __future__ import annotations


class LearnflowError(Exception):
    """Base class for all relay errors."""


class ConfigError(LearnflowError):
    """Invalid configuration value."""


class ClientInputError(LearnflowError):
    """Malformed chat request (HTTP 400)."""


class RateLimitExceeded(LearnflowError):
    """Caller exceeded its request window (HTTP 429)."""

    def __init__(self, identity: str, reset_at: float) -> None:
        super().__init__(f"Rate limit exceeded for {identity!r}")
        self.identity = identity
        self.reset_at = reset_at


class UpstreamError(LearnflowError):
    """The generation provider failed: bad status, bad payload or transport fault."""


class WebSearchError(LearnflowError):
    """The web search provider failed."""


class ScanError(LearnflowError):
    """A ``/scan`` or ``/debug`` command could not run."""

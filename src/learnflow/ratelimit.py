"""Fixed-window request limiter keyed by caller identity."""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from .errors import RateLimitExceeded

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_MAX_IDENTITIES = 10_000


@dataclass
class Bucket:
    count: int
    reset_at: float  # epoch seconds


class RateLimiter:
    """At most ``max_requests`` per ``window_seconds`` for each identity.

    The bucket map holds at most ``max_identities`` entries. A new identity
    arriving at a full map first sweeps expired buckets, then evicts the
    least recently seen one.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        *,
        max_identities: int = DEFAULT_MAX_IDENTITIES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if max_identities < 1:
            raise ValueError("max_identities must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_identities = max_identities
        self._clock = clock
        self._buckets: OrderedDict[str, Bucket] = OrderedDict()

    def __len__(self) -> int:
        return len(self._buckets)

    def check(self, identity: str) -> Bucket:
        """Count one request for *identity*.

        Returns the updated bucket, or raises ``RateLimitExceeded`` without
        counting the request.
        """
        now = self._clock()
        bucket = self._buckets.get(identity)
        if bucket is None:
            self._make_room()
            bucket = Bucket(count=0, reset_at=now + self.window_seconds)
            self._buckets[identity] = bucket
        else:
            self._buckets.move_to_end(identity)

        if now > bucket.reset_at:
            bucket.count = 0
            bucket.reset_at = now + self.window_seconds

        if bucket.count >= self.max_requests:
            raise RateLimitExceeded(identity, bucket.reset_at)

        bucket.count += 1
        return bucket

    def sweep(self) -> int:
        """Drop every bucket whose window has passed. Returns how many."""
        now = self._clock()
        expired = [k for k, b in self._buckets.items() if now > b.reset_at]
        for key in expired:
            del self._buckets[key]
        return len(expired)

    def _make_room(self) -> None:
        if len(self._buckets) < self.max_identities:
            return
        self.sweep()
        while len(self._buckets) >= self.max_identities:
            self._buckets.popitem(last=False)

"""Rate limiter interfaces.

Route handlers never talk to a limiter directly: they go through the
admission layer, which resolves a policy and hands it to a limiter built
on this abstraction. Keeping the interface small lets a shared store
(e.g., Redis) replace the in-memory backend later.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitPolicy:
    """Window length and quota applied to one class of operations.

    Attributes:
        interval_ms: Window length in milliseconds.
        quota: Maximum admitted requests per window.
    """

    interval_ms: int
    quota: int

    @property
    def retry_after_seconds(self) -> int:
        """Window length rounded up to whole seconds (at least 1)."""
        return max(1, int(math.ceil(self.interval_ms / 1000)))


@dataclass
class RateWindow:
    """Counter state for a single identifier.

    Attributes:
        identifier: Key the window is tracked under.
        count: Requests admitted in the current window.
        reset_at: Epoch milliseconds at which the window expires.
    """

    identifier: str
    count: int
    reset_at: int

    def is_expired(self, now: int) -> bool:
        return self.reset_at <= now


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single admission check.

    Attributes:
        admitted: Whether the request may proceed.
        remaining: Requests still available in the current window (0 when
            rejected).
        limit: Quota of the policy the check ran against.
        reset_at: Epoch milliseconds when the current window expires, or 0
            when no window is tracked.
    """

    admitted: bool
    remaining: int
    limit: int
    reset_at: int


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitResult:
        """Evaluate and record one request for ``identifier``.

        Args:
            identifier: Non-empty key the counter is tracked under.
            policy: Window length and quota to enforce.

        Returns:
            RateLimitResult describing the admission decision.
        """
        raise NotImplementedError

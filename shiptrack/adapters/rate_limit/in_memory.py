"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state, since FastAPI executes
  sync dependencies in a worker thread pool.
- Windows start at the first request for an identifier (not aligned to
  wall-clock boundaries), so up to ``2 * quota`` requests can land inside
  any ``interval`` span that straddles a reset.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from shiptrack.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitPolicy,
    RateLimitResult,
    RateWindow,
)

logger = logging.getLogger(__name__)


def epoch_millis() -> int:
    """Return the current UNIX time in milliseconds."""
    return int(time.time() * 1000)


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter tracking one fixed window per identifier.

    The limiter is policy-agnostic: every call supplies the window length
    and quota to enforce, so a single instance serves all operation classes.

    Expired windows are replaced lazily on the next ``check``; ``sweep``
    (optionally run on a background thread) only bounds memory use.
    """

    def __init__(self, *, clock: Callable[[], int] = epoch_millis) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            clock: Time source returning UNIX time in milliseconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._windows: dict[str, RateWindow] = {}
        self._sweep_thread: threading.Thread | None = None
        self._sweep_stop = threading.Event()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitResult:
        """Admit or reject one request for ``identifier``.

        A rejected request never increments the counter. A non-positive
        quota rejects every request; a non-positive interval produces a
        window that has already expired by the next call.

        Args:
            identifier: Unique key for the rate-limited subject.
            policy: Window length and quota to enforce.

        Returns:
            RateLimitResult with the admission decision.

        Raises:
            ValueError: If identifier is empty.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        now = self._clock()

        with self._lock:
            window = self._windows.get(identifier)

            if policy.quota <= 0:
                reset_at = window.reset_at if window and not window.is_expired(now) else 0
                return RateLimitResult(
                    admitted=False, remaining=0, limit=policy.quota, reset_at=reset_at
                )

            if window is None or window.is_expired(now):
                window = RateWindow(
                    identifier=identifier,
                    count=1,
                    reset_at=now + policy.interval_ms,
                )
                self._windows[identifier] = window
                return RateLimitResult(
                    admitted=True,
                    remaining=policy.quota - 1,
                    limit=policy.quota,
                    reset_at=window.reset_at,
                )

            if window.count >= policy.quota:
                return RateLimitResult(
                    admitted=False,
                    remaining=0,
                    limit=policy.quota,
                    reset_at=window.reset_at,
                )

            window.count += 1
            return RateLimitResult(
                admitted=True,
                remaining=policy.quota - window.count,
                limit=policy.quota,
                reset_at=window.reset_at,
            )

    def sweep(self) -> int:
        """Drop every window that has expired.

        Returns:
            Number of identifiers removed.
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, window in self._windows.items() if window.is_expired(now)]
            for key in expired:
                del self._windows[key]
            remaining = len(self._windows)

        if expired:
            logger.debug(
                "rate_limit.sweep",
                extra={"removed": len(expired), "tracked": remaining},
            )
        return len(expired)

    def start_background_sweep(self, interval_seconds: float) -> None:
        """Run ``sweep`` every ``interval_seconds`` on a daemon thread.

        Only meaningful for long-lived server processes. Calling it while a
        sweeper is already running does nothing.
        """
        if self._sweep_thread is not None and self._sweep_thread.is_alive():
            return

        self._sweep_stop.clear()
        self._sweep_thread = threading.Thread(
            target=self._sweep_loop,
            args=(interval_seconds,),
            name="rate-limit-sweeper",
            daemon=True,
        )
        self._sweep_thread.start()
        logger.info(
            "rate_limit.sweeper_started",
            extra={"interval_s": interval_seconds},
        )

    def stop_background_sweep(self, timeout: float | None = 5.0) -> None:
        """Signal the sweeper thread to exit and wait for it."""
        thread = self._sweep_thread
        if thread is None:
            return

        self._sweep_stop.set()
        thread.join(timeout)
        self._sweep_thread = None
        logger.info("rate_limit.sweeper_stopped")

    @property
    def sweeping(self) -> bool:
        return self._sweep_thread is not None and self._sweep_thread.is_alive()

    def _sweep_loop(self, interval_seconds: float) -> None:
        while not self._sweep_stop.wait(interval_seconds):
            try:
                self.sweep()
            except Exception:
                # Keep the sweeper alive; lazy expiry in check() still holds.
                logger.exception("rate_limit.sweep_failed")

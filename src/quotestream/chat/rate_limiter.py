"""Sliding-window rate limiting of outbound chat requests.

Hidden design decisions:
- Request instants kept in a pruned window, not a token bucket
- After a rejection, sending is blocked for exactly one window measured from
  the rejected call (not from the oldest request), for predictability
- The unblock notification is an explicit, cancellable timer owned here
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable

from ..config import RATE_LIMIT_MAX_MESSAGES, RATE_LIMIT_WINDOW_SECONDS

logger = logging.getLogger(__name__)


class ResetTimer:
    """One-shot cancellable timer on the running asyncio loop.

    Outside a running loop scheduling is a no-op; callers then rely on
    polling RateLimiter.is_blocked, which is computed from the clock.
    """

    def __init__(self) -> None:
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None and not self._handle.cancelled()

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        """Schedule callback after delay seconds, replacing any pending call."""
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        def _fire() -> None:
            self._handle = None
            callback()

        self._handle = loop.call_later(delay, _fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class RateLimiter:
    """Admits at most max_requests per window_seconds.

    Example:
        limiter = RateLimiter(on_unblock=lambda: ui.enable_send())
        if not limiter.try_admit():
            ui.show_notice(RATE_LIMIT_NOTICE)
        ...
        limiter.close()  # on teardown
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_MESSAGES,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        on_unblock: Callable[[], None] | None = None
    ):
        """Initialize the limiter.

        Args:
            max_requests: Requests admitted per window
            window_seconds: Window length in seconds
            clock: Monotonic time source (injectable for tests)
            on_unblock: Called when a block set by a rejection expires
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._on_unblock = on_unblock
        self._timestamps: deque[float] = deque()
        self._blocked_until: float | None = None
        self._timer = ResetTimer()

    @property
    def window_seconds(self) -> float:
        return self._window

    @property
    def is_blocked(self) -> bool:
        """True while a rejection's block is in effect."""
        if self._blocked_until is None:
            return False
        if self._clock() >= self._blocked_until:
            self._blocked_until = None
            return False
        return True

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self._window:
            self._timestamps.popleft()

    def try_admit(self, now: float | None = None) -> bool:
        """Record a request at now if the window has room.

        Args:
            now: Request instant on the limiter's clock (default: clock())

        Returns:
            True if admitted; False if rejected, in which case sending stays
            blocked for one full window from now
        """
        if now is None:
            now = self._clock()

        if self._blocked_until is not None:
            if now < self._blocked_until:
                return False
            self._blocked_until = None

        self._prune(now)
        if len(self._timestamps) >= self._max_requests:
            self._blocked_until = now + self._window
            self._timer.schedule(self._window, self._unblock)
            logger.info(
                "Rate limit reached (%d requests in %.0fs)", len(self._timestamps), self._window
            )
            return False

        self._timestamps.append(now)
        return True

    def _unblock(self) -> None:
        self._blocked_until = None
        if self._on_unblock is not None:
            self._on_unblock()

    def close(self) -> None:
        """Cancel the pending unblock timer (component teardown)."""
        self._timer.cancel()

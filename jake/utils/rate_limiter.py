"""
Fixed-Window Rate Limiter

In-memory request counter keyed by caller. Used to cap how many analyses a
user can start per window. State lives in the process, so multiple workers
each keep their own counts.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict

logger = logging.getLogger(__name__)


@dataclass
class RateLimitDecision:
    """Outcome of a single rate limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_in: int  # seconds until the window resets

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_in),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.reset_in)
        return headers


class FixedWindowRateLimiter:
    """
    Counts requests per key in fixed windows.

    A key's window starts with its first request and lasts `window_seconds`;
    the count resets when the window expires.
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, list] = {}  # key -> [count, reset_at]

    def hit(self, key: str) -> RateLimitDecision:
        """Record one request for `key` and report whether it is allowed."""
        now = self._clock()
        self._prune(now)

        window = self._windows.get(key)
        if window is None or window[1] <= now:
            window = [0, now + self.window_seconds]
            self._windows[key] = window

        window[0] += 1

        remaining = max(0, self.max_requests - window[0])
        reset_in = math.ceil(window[1] - now)
        allowed = window[0] <= self.max_requests

        if not allowed:
            logger.warning(f"Rate limit exceeded for {key}: {window[0]}/{self.max_requests}")

        return RateLimitDecision(
            allowed=allowed,
            limit=self.max_requests,
            remaining=remaining,
            reset_in=reset_in,
        )

    def _prune(self, now: float) -> None:
        """Drop windows that have expired."""
        expired = [key for key, (_, reset_at) in self._windows.items() if reset_at <= now]
        for key in expired:
            del self._windows[key]

    def __len__(self) -> int:
        return len(self._windows)

    def reset(self, key: str = None) -> None:
        """Forget one key, or every key when none is given."""
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)

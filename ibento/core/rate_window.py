"""Fixed-Window Rate Limiter — per-client request quotas over non-sliding windows.

Invariants:
    - A client's window starts at its first request and lasts window_seconds
    - At most `limit` requests are allowed per window; later ones are rejected
      until the window expires, then the count starts over
    - Expired windows are pruned at most once per window_seconds

Design Decisions:
    - Clock injected (time.monotonic by default): deterministic tests, immune to wall-clock jumps
    - No lock: hit() never awaits, so the asyncio loop cannot interleave two hits
"""

import math
import time
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class RateLimitStatus:
    """Outcome of a single hit against the limiter."""
    allowed: bool
    limit: int
    remaining: int
    reset_after_s: int


@dataclass
class _Window:
    started_at: float
    count: int = 0


class FixedWindowRateLimiter:
    """In-memory fixed-window counter keyed by client identity."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._next_prune = clock() + window_seconds

    def hit(self, key: str) -> RateLimitStatus:
        """Count one request for key and report whether it is allowed."""
        now = self._clock()
        self._prune(now)

        window = self._windows.get(key)
        if window is None or now >= window.started_at + self.window_seconds:
            window = _Window(started_at=now)
            self._windows[key] = window

        window.count += 1
        reset_after = math.ceil(window.started_at + self.window_seconds - now)
        return RateLimitStatus(
            allowed=window.count <= self.limit,
            limit=self.limit,
            remaining=max(self.limit - window.count, 0),
            reset_after_s=max(reset_after, 0),
        )

    def reset(self, key: str | None = None) -> None:
        """Forget one client's window, or all of them."""
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)

    def tracked_clients(self) -> int:
        return len(self._windows)

    def _prune(self, now: float) -> None:
        if now < self._next_prune:
            return
        self._windows = {
            key: w for key, w in self._windows.items()
            if now < w.started_at + self.window_seconds
        }
        self._next_prune = now + self.window_seconds

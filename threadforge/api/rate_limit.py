"""
In-process fixed-window rate limiter.

One counter per ``(policy, partition)`` pair.  The window starts with the
first permit; once it elapses the counter resets.  State lives in memory,
so it is per-process and lost on restart.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from threadforge.config import RateLimitConfig
from threadforge.exceptions import RateLimitExceededError

THREAD_GENERATION_POLICY = "thread_generation"
MAX_CLIENT_ID_CHARS = 128
SWEEP_THRESHOLD = 1024


@dataclass
class _Window:
    started_at: float
    count: int = 0


class FixedWindowRateLimiter:
    """Fixed-window limiter keyed by partition.

    Args:
        config: Limit and window length of the ``thread_generation`` policy.
        clock: Monotonic time source, replaceable in tests.
        sweep_threshold: Once this many windows are held, expired ones are
            dropped on the next permit.
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = SWEEP_THRESHOLD,
    ) -> None:
        self.config = config or RateLimitConfig()
        self.clock = clock
        self.sweep_threshold = sweep_threshold
        self._windows: Dict[Tuple[str, str], _Window] = {}
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def acquire(self, partition: str, policy: str = THREAD_GENERATION_POLICY) -> int:
        """Take one permit.

        Returns:
            Permits left in the current window.

        Raises:
            RateLimitExceededError: When the window is used up; carries the
                seconds until it resets.
        """
        limit = self.config.thread_generation_limit
        window_seconds = self.config.thread_generation_window_seconds
        if not self.enabled:
            return limit

        async with self._lock:
            now = self.clock()
            if len(self._windows) >= self.sweep_threshold:
                self._sweep(now, window_seconds)
            key = (policy, partition)
            window = self._windows.get(key)
            if window is None or now - window.started_at >= window_seconds:
                window = _Window(started_at=now)
                self._windows[key] = window

            if window.count >= limit:
                retry_after = max(1, int(window.started_at + window_seconds - now + 0.999))
                raise RateLimitExceededError(policy, retry_after)

            window.count += 1
            return limit - window.count

    @property
    def window_count(self) -> int:
        return len(self._windows)

    def _sweep(self, now: float, window_seconds: float) -> None:
        expired = [
            key for key, window in self._windows.items()
            if now - window.started_at >= window_seconds
        ]
        for key in expired:
            del self._windows[key]

    def reset(self) -> None:
        self._windows.clear()


def partition_key(ip: Optional[str], client_id: Optional[str]) -> str:
    """``ip:client_id``, or just ``ip`` for a blank or oversized client id."""
    ip = ip or "unknown"
    client_id = (client_id or "").strip()
    if not client_id or len(client_id) > MAX_CLIENT_ID_CHARS:
        return ip
    return f"{ip}:{client_id}"

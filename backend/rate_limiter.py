# rate_limiter.py
#
# In-memory per-client cooldown.
# (OK for 1 process; a multi-worker deployment would need shared state.)
from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

# Entries older than this many cooldown windows are dropped by the sweep.
EVICT_AFTER_WINDOWS = 10


@dataclass
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int = 0


class RateLimiter:
    def __init__(self, cooldown_sec: float, clock: Callable[[], float] = time.time):
        if cooldown_sec <= 0:
            raise ValueError("cooldown must be positive")
        self.cooldown_sec = cooldown_sec
        self._clock = clock
        self._last: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._last)

    def __contains__(self, client_key: str) -> bool:
        return client_key in self._last

    def check_and_record(self, client_key: str, now: Optional[float] = None) -> RateLimitResult:
        # No awaits in here: the read-modify-write can't interleave with another request.
        now = self._clock() if now is None else now
        last = self._last.get(client_key)
        if last is not None:
            elapsed = now - last
            if elapsed < self.cooldown_sec:
                remaining = math.ceil(self.cooldown_sec - elapsed)
                return RateLimitResult(allowed=False, retry_after_seconds=max(1, remaining))

        self._last[client_key] = now
        return RateLimitResult(allowed=True)

    def sweep(self, now: Optional[float] = None) -> int:
        now = self._clock() if now is None else now
        max_age = self.cooldown_sec * EVICT_AFTER_WINDOWS
        stale = [k for k, ts in self._last.items() if now - ts > max_age]
        for k in stale:
            del self._last[k]
        return len(stale)

    async def run_sweeper(self, interval_sec: float) -> None:
        """Evict stale entries every interval_sec until cancelled."""
        while True:
            await asyncio.sleep(interval_sec)
            evicted = self.sweep()
            if evicted:
                print(f"[ratelimit] evicted {evicted} stale entries ({len(self)} left)")

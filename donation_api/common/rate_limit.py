"""In-memory fixed-window rate limiting.

One ``FixedWindowRateLimiter`` is built by the application factory and kept
on ``app.state``; routes reach it through ``get_rate_limiter``. State lives
for the process lifetime only and is not shared between workers.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import Request
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


@dataclass
class RateLimitEntry:
    window_start: int
    count: int = 1


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_ms: int = 0


class FixedWindowRateLimiter:
    """Counts checks per key in fixed, non-overlapping windows.

    The first check for a key (or the first after its window has elapsed)
    opens a new window with ``count = 1``. Every later check in the window
    increments the count, and checks beyond ``max_requests`` are refused.
    Refused checks still increment, so a key stays refused until the window
    ends.

    Memory is bounded two ways: ``sweep()`` drops entries whose window has
    elapsed (run periodically by ``run_sweeper``), and at most ``max_keys``
    entries are held; a new key at capacity evicts the oldest window.
    """

    def __init__(
        self,
        max_requests: int = 60,
        window_ms: int = 60_000,
        max_keys: int = 100_000,
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        if max_requests < 1 or window_ms < 1 or max_keys < 1:
            raise ValueError("max_requests, window_ms and max_keys must be positive")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self.max_keys = max_keys
        self._clock = clock
        # Ordered by window start: a key moves to the end when its window resets
        self._entries: OrderedDict[str, RateLimitEntry] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def _expired(self, entry: RateLimitEntry, now: int) -> bool:
        return now - entry.window_start > self.window_ms

    def check(self, key: str) -> RateLimitDecision:
        """Record one request for ``key`` and decide whether it may proceed."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)

            if entry is None or self._expired(entry, now):
                if entry is None and len(self._entries) >= self.max_keys:
                    self._make_room(now)
                self._entries[key] = RateLimitEntry(window_start=now)
                self._entries.move_to_end(key)
                return RateLimitDecision(allowed=True)

            entry.count += 1
            if entry.count > self.max_requests:
                retry_after = entry.window_start + self.window_ms - now
                return RateLimitDecision(allowed=False, retry_after_ms=max(retry_after, 0))
            return RateLimitDecision(allowed=True)

    def _make_room(self, now: int) -> None:
        # Caller holds the lock
        self._sweep_locked(now)
        while len(self._entries) >= self.max_keys:
            key, _ = self._entries.popitem(last=False)
            logger.debug("Rate limiter at capacity, evicted %s", key)

    def _sweep_locked(self, now: int) -> int:
        expired = [k for k, e in self._entries.items() if self._expired(e, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def sweep(self) -> int:
        """Drop entries whose window has elapsed. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            removed = self._sweep_locked(now)
        if removed:
            logger.debug("Rate limiter sweep removed %d expired keys", removed)
        return removed

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    async def run_sweeper(self, interval_ms: int | None = None) -> None:
        """Sweep expired entries forever; cancelled by the app lifespan."""
        interval = (interval_ms or self.window_ms) / 1000
        while True:
            await asyncio.sleep(interval)
            self.sweep()


# ── Key derivation ──────────────────────────────────────────────────

def rate_limit_key(payload: Any, request: Request) -> str:
    """Prefer the reported installId; fall back to the client address."""
    if isinstance(payload, dict):
        install_id = payload.get("installId")
        if isinstance(install_id, str) and install_id:
            return f"id:{install_id}"
    return f"ip:{get_remote_address(request)}"


async def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    """FastAPI dependency: the limiter built by ``create_app``."""
    return request.app.state.rate_limiter

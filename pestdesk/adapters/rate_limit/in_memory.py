"""In-memory dual-window rate limiter.

Each key is bounded twice: a rolling 60-second window (burst) and the UTC
calendar day (volume). The daily limit is evaluated first.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: check-and-consume runs under a single lock, so concurrent
  requests for one key can never both take the last unit of quota.
"""

from __future__ import annotations

import math
import threading
import time
from typing import Callable

from pestdesk.adapters.rate_limit.base import (
    DAILY_QUOTA_EXCEEDED,
    PER_MINUTE_QUOTA_EXCEEDED,
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitEntry,
    RateLimitResult,
    RateLimitStatus,
    RateLimitStore,
)
from pestdesk.utils.simple_cache import SimpleTTLCache

MINUTE_MS = 60_000
DAY_MS = 86_400_000


def next_utc_midnight_ms(now_ms: int) -> int:
    """Epoch ms of the first UTC midnight strictly after ``now_ms``.

    Epoch time has no leap seconds, so UTC days are exactly DAY_MS long.
    """
    return (now_ms // DAY_MS + 1) * DAY_MS


def _seconds_until(target_ms: int, now_ms: int) -> int:
    return max(0, int(math.ceil((target_ms - now_ms) / 1000)))


def _within_minute(timestamps: list[int], now_ms: int) -> list[int]:
    """Timestamps inside the rolling window ``[now - 60s, now]``."""
    horizon = now_ms - MINUTE_MS
    return [t for t in timestamps if t >= horizon]


class InMemoryRateLimitStore(RateLimitStore):
    """Bounded store: LRU eviction past ``max_keys``, TTL eviction of idle keys.

    An entry untouched for more than a day holds no live quota (its day has
    rolled over and its minute window is empty), so a TTL above one day never
    forgets usage that still matters.
    """

    def __init__(
        self,
        *,
        max_keys: int = 10_000,
        ttl_seconds: float = DAY_MS / 1000 + 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cache: SimpleTTLCache[RateLimitEntry] = SimpleTTLCache(
            ttl_seconds=ttl_seconds,
            max_entries=max_keys,
            clock=clock,
        )

    def get(self, key: str) -> RateLimitEntry | None:
        return self._cache.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        self._cache.set(key, entry)

    def __len__(self) -> int:
        return len(self._cache)


class InMemoryDualWindowRateLimiter(AbstractRateLimiter):
    """Per-key limiter over a rolling minute and the UTC calendar day."""

    def __init__(
        self,
        *,
        config: RateLimitConfig | Callable[[], RateLimitConfig],
        store: RateLimitStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            config: Fixed limits, or a zero-argument provider consulted on
                every call so limits can change at runtime.
            store: Entry store; defaults to a bounded in-memory store.
            clock: Time source returning UNIX time in seconds.
        """
        self._config = config
        self._clock = clock
        self._store = store if store is not None else InMemoryRateLimitStore(clock=clock)
        self._lock = threading.RLock()

    @property
    def store(self) -> RateLimitStore:
        return self._store

    def _limits(self) -> RateLimitConfig:
        if isinstance(self._config, RateLimitConfig):
            return self._config
        return self._config()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def check_and_consume(self, key: str) -> RateLimitResult:
        """Admit one request for ``key`` or explain why not.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        limits = self._limits()
        now_ms = self._now_ms()

        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                entry = RateLimitEntry(day_reset_at_ms=next_utc_midnight_ms(now_ms))

            if now_ms >= entry.day_reset_at_ms:
                entry.day_count = 0
                entry.day_reset_at_ms = next_utc_midnight_ms(now_ms)

            entry.minute_timestamps = _within_minute(entry.minute_timestamps, now_ms)

            rejection = self._evaluate(entry, limits, now_ms)
            if rejection is not None:
                # Rollover and pruning are written back; quota is not consumed
                self._store.set(key, entry)
                return rejection

            entry.minute_timestamps.append(now_ms)
            entry.day_count += 1
            self._store.set(key, entry)

            remaining = min(
                limits.per_day - entry.day_count,
                limits.per_minute - len(entry.minute_timestamps),
            )
            return RateLimitResult(ok=True, limit=limits.per_minute, remaining=max(0, remaining))

    @staticmethod
    def _evaluate(
        entry: RateLimitEntry,
        limits: RateLimitConfig,
        now_ms: int,
    ) -> RateLimitResult | None:
        """Return a rejection for a normalized entry, or None if admissible.

        The daily quota is checked before the minute window.
        """
        if entry.day_count >= limits.per_day:
            return RateLimitResult(
                ok=False,
                limit=limits.per_day,
                remaining=0,
                retry_after_seconds=_seconds_until(entry.day_reset_at_ms, now_ms),
                reason=DAILY_QUOTA_EXCEEDED,
            )

        if len(entry.minute_timestamps) >= limits.per_minute:
            oldest = entry.minute_timestamps[0]
            return RateLimitResult(
                ok=False,
                limit=limits.per_minute,
                remaining=0,
                retry_after_seconds=_seconds_until(oldest + MINUTE_MS, now_ms),
                reason=PER_MINUTE_QUOTA_EXCEEDED,
            )

        return None

    def get_status(self, key: str) -> RateLimitStatus:
        """Remaining capacity for ``key``; never mutates the stored entry."""
        limits = self._limits()
        now_ms = self._now_ms()

        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return RateLimitStatus(
                    per_minute_limit=limits.per_minute,
                    per_day_limit=limits.per_day,
                    day_remaining=limits.per_day,
                    minute_remaining=limits.per_minute,
                )

            day_count = entry.day_count
            day_reset_at_ms = entry.day_reset_at_ms
            if now_ms >= day_reset_at_ms:
                day_count = 0
                day_reset_at_ms = next_utc_midnight_ms(now_ms)
            minute_used = len(_within_minute(entry.minute_timestamps, now_ms))

        return RateLimitStatus(
            per_minute_limit=limits.per_minute,
            per_day_limit=limits.per_day,
            day_remaining=max(0, limits.per_day - day_count),
            minute_remaining=max(0, limits.per_minute - minute_used),
            day_reset_in_seconds=_seconds_until(day_reset_at_ms, now_ms),
        )

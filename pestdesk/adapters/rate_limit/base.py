"""Rate limiter interfaces.

The HTTP layer depends on these abstractions so the in-memory store can be
swapped for a shared one (e.g., Redis) without touching the routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Literal

RejectionReason = Literal["daily_quota_exceeded", "per_minute_quota_exceeded"]

DAILY_QUOTA_EXCEEDED: RejectionReason = "daily_quota_exceeded"
PER_MINUTE_QUOTA_EXCEEDED: RejectionReason = "per_minute_quota_exceeded"


@dataclass(frozen=True)
class RateLimitConfig:
    """Quota limits applied to every key."""

    per_minute: int
    per_day: int

    def __post_init__(self) -> None:
        if self.per_minute < 1:
            raise ValueError("per_minute must be >= 1")
        if self.per_day < 1:
            raise ValueError("per_day must be >= 1")


@dataclass
class RateLimitEntry:
    """Usage state tracked for one key.

    Attributes:
        minute_timestamps: Accepted request instants (epoch ms), oldest first.
        day_count: Accepted requests since the last UTC-midnight reset.
        day_reset_at_ms: Epoch ms of the next UTC midnight.
    """

    day_reset_at_ms: int
    day_count: int = 0
    minute_timestamps: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a check-and-consume call.

    Attributes:
        ok: Whether the request was admitted (and quota consumed).
        limit: The limit that applied to the decision (per-day on daily
            rejections, per-minute otherwise).
        remaining: Requests still available in the tighter window.
        retry_after_seconds: Whole seconds to wait before retrying (rejections only).
        reason: Rejection reason (rejections only).
    """

    ok: bool
    limit: int
    remaining: int
    retry_after_seconds: int | None = None
    reason: RejectionReason | None = None


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only snapshot of a key's remaining capacity."""

    per_minute_limit: int
    per_day_limit: int
    day_remaining: int
    minute_remaining: int
    day_reset_in_seconds: int | None = None


class RateLimitStore(ABC):
    """Key -> RateLimitEntry storage backend."""

    @abstractmethod
    def get(self, key: str) -> RateLimitEntry | None:
        """Return the entry for ``key`` or None if unknown/evicted."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, entry: RateLimitEntry) -> None:
        """Persist ``entry`` under ``key``."""
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check_and_consume(self, key: str) -> RateLimitResult:
        """Admit or reject one request for ``key``.

        Rejected calls must leave the key's quota untouched.
        """
        raise NotImplementedError

    @abstractmethod
    def get_status(self, key: str) -> RateLimitStatus:
        """Report remaining capacity for ``key`` without consuming anything."""
        raise NotImplementedError

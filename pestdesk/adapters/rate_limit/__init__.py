"""Rate limiting adapters.

A small abstraction layer so the service can start with an in-memory
limiter and later move to a shared store without changing the API layer.
"""

from pestdesk.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitEntry,
    RateLimitResult,
    RateLimitStatus,
    RateLimitStore,
)
from pestdesk.adapters.rate_limit.in_memory import (
    InMemoryDualWindowRateLimiter,
    InMemoryRateLimitStore,
)

__all__ = [
    "AbstractRateLimiter",
    "InMemoryDualWindowRateLimiter",
    "InMemoryRateLimitStore",
    "RateLimitConfig",
    "RateLimitEntry",
    "RateLimitResult",
    "RateLimitStatus",
    "RateLimitStore",
]

"""Free-tier rate limiting dependency for FastAPI routes.

Wires the dual-window limiter adapter into the HTTP layer:
- One process-wide limiter; its limits are re-read from FREE_TIER_* env
  vars on every check, so quota changes need no restart.
- Keyed per allow-listed X-API-Key (FREE_TIER_API_KEYS), else per client
  IP, or a single shared key when FREE_TIER_SCOPE=global.
- Rejections become HTTP 429 with Retry-After guidance.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Header, HTTPException, Request, status

from pestdesk.adapters.rate_limit.base import AbstractRateLimiter, RateLimitConfig
from pestdesk.adapters.rate_limit.in_memory import (
    InMemoryDualWindowRateLimiter,
    InMemoryRateLimitStore,
)
from pestdesk.core.config import load_rate_limit_settings, settings
from pestdesk.core.logging import hash_identifier

logger = logging.getLogger(__name__)

GLOBAL_KEY = "global:free-tier"

_limiter: AbstractRateLimiter | None = None


def current_rate_limit_config() -> RateLimitConfig:
    """Limits from the environment as of this call."""
    cfg = load_rate_limit_settings()
    return RateLimitConfig(per_minute=cfg.per_minute, per_day=cfg.per_day)


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide limiter, creating it on first use."""

    global _limiter

    if _limiter is None:
        _limiter = InMemoryDualWindowRateLimiter(
            config=current_rate_limit_config,
            store=InMemoryRateLimitStore(
                max_keys=settings.rate_limit.max_keys,
                ttl_seconds=settings.rate_limit.key_ttl_seconds,
            ),
        )
    return _limiter


def reset_rate_limiter() -> None:
    """Drop all tracked quota state (used by tests and admin tooling)."""

    global _limiter
    _limiter = None


def parse_api_keys(keys_string: str | None) -> frozenset[str]:
    """Parse a comma-separated allow-list into a set of trimmed keys.

    Examples:
        >>> sorted(parse_api_keys("key1, key2 ,"))
        ['key1', 'key2']
        >>> parse_api_keys(None)
        frozenset()
    """
    if not keys_string:
        return frozenset()
    return frozenset(key.strip() for key in keys_string.split(",") if key.strip())


def build_rate_limit_key(
    request: Request,
    x_api_key: str | None,
    *,
    scope: str = "client",
    allowed_keys: frozenset[str] = frozenset(),
) -> str:
    """Build the namespaced limiter key for the current request.

    ``X-API-Key`` only selects the quota bucket when it is on the configured
    allow-list; any other value is ignored and the caller is keyed by IP.
    """

    if scope == "global":
        return GLOBAL_KEY
    if x_api_key and x_api_key in allowed_keys:
        return f"api_key:{x_api_key}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


async def enforce_rate_limit(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """Consume one unit of the caller's free-tier quota.

    Usable as a FastAPI dependency or awaited directly from a handler once
    the request has been validated.

    Raises:
        HTTPException: 429 Too Many Requests when a quota is exhausted.
    """

    cfg = load_rate_limit_settings()
    if not cfg.enabled:
        return

    key = build_rate_limit_key(
        request,
        x_api_key,
        scope=cfg.scope,
        allowed_keys=parse_api_keys(cfg.api_keys),
    )
    key_hash = hash_identifier(key)

    result = get_rate_limiter().check_and_consume(key)
    if result.ok:
        logger.debug(
            "rate_limit.allowed",
            extra={"key_hash": key_hash, "remaining": result.remaining},
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "reason": result.reason,
            "limit": result.limit,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] = {}
    if cfg.include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)
        headers["X-RateLimit-Reason"] = str(result.reason)

    if result.reason == "daily_quota_exceeded":
        detail = f"Daily free quota reached. Try again in {retry_after} seconds."
    else:
        detail = f"Too many requests. Please wait {retry_after} seconds."

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=detail,
        headers=headers or None,
    )


def rate_limit_key_for(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str:
    """Dependency resolving the caller's limiter key without consuming quota."""

    cfg = load_rate_limit_settings()
    return build_rate_limit_key(
        request,
        x_api_key,
        scope=cfg.scope,
        allowed_keys=parse_api_keys(cfg.api_keys),
    )

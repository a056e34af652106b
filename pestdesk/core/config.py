"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Free-tier quotas (FREE_TIER_*) are re-read on every limiter check through
``load_rate_limit_settings()`` so they can be changed without a restart.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Production may inject everything via real env vars
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


class LLMSettings(BaseSettings):
    """Hosted LLM provider configuration.

    The API key is optional: without one the service runs in fallback-only
    mode and reports ``live: false`` on the status endpoint.
    """

    provider: str = Field(
        "openrouter",
        description="LLM provider name (openrouter or gemini)",
    )
    model: str | None = Field(
        None,
        description="Model identifier sent to the provider (each provider has its own default)",
    )
    api_key: str | None = Field(
        None,
        description="Provider API key (OpenRouter or Google AI)",
    )
    base_url: str | None = Field(
        None,
        description="Override the provider endpoint (e.g., a proxy or integration gateway)",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )
    temperature: float = Field(
        0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for chat completions",
    )
    http_referer: str = Field(
        "https://pest-ai-1.onrender.com",
        description="HTTP-Referer header OpenRouter uses for app attribution",
    )
    app_title: str = Field(
        "Pest AI Sales Desk",
        description="X-Title header OpenRouter uses for app attribution",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    fallback_safety_first: bool = Field(
        False,
        description="Evaluate dangerous-action keywords before pest topics in the local fallback",
    )
    max_message_chars: int = Field(
        8000,
        ge=1,
        description="Maximum accepted length of the text portion of a chat message",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Free-tier quota configuration (per-minute burst and per-UTC-day volume)."""

    enabled: bool = Field(
        True,
        description="Enable free-tier rate limiting on the chat endpoint",
    )
    per_minute: int = Field(
        1,
        ge=1,
        description="Maximum accepted requests per key in any rolling 60s window",
    )
    per_day: int = Field(
        20,
        ge=1,
        description="Maximum accepted requests per key per UTC calendar day",
    )
    scope: Literal["client", "global"] = Field(
        "client",
        description="'client' limits per allow-listed API key or IP, 'global' shares one quota across all callers",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated API keys that get their own quota; other callers are keyed by IP",
    )
    include_headers: bool = Field(
        True,
        description="Include Retry-After and X-RateLimit-* headers when throttling",
    )
    max_keys: int = Field(
        10000,
        ge=1,
        description="Maximum number of tracked keys before least-recently-used eviction",
    )
    key_ttl_seconds: int = Field(
        86460,
        ge=60,
        description="Evict keys not updated for this long (must exceed one day to keep quotas intact)",
    )

    model_config = SettingsConfigDict(
        env_prefix="FREE_TIER_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        ge=0,
        description="Rotate the log file at this size (0 disables rotation)",
    )
    backup_count: int = Field(5, ge=0, description="Rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def load_rate_limit_settings() -> RateLimitSettings:
    """Read free-tier quota settings from the current environment.

    Called per request so that quota changes apply without a restart.
    """

    return RateLimitSettings()


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=LLMSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()

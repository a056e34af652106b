"""Pytest configuration and fixtures shared across all test modules.

Environment defaults must be in place before anything imports
``pestdesk.core.config``, which reads settings at import time.
"""

import os

os.environ["APP_ENV"] = "testing"

os.environ.setdefault("LLM_PROVIDER", "openrouter")
os.environ.setdefault("LLM_MODEL", "google/gemini-2.0-flash-001")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("FREE_TIER_PER_MINUTE", "1")
os.environ.setdefault("FREE_TIER_PER_DAY", "20")

import pytest  # noqa: E402

from pestdesk.core import rate_limit  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_rate_limiter():
    """Every test starts with an empty quota store."""
    rate_limit.reset_rate_limiter()
    yield
    rate_limit.reset_rate_limiter()
